"""
Repeating task scheduling for the sampling controller.
"""
import asyncio
import contextlib
from typing import Callable, Optional

from attention_backend.services.logger_service import get_logger


class RepeatingTask:
    """
    Cancellable repeating timer running on the asyncio event loop.

    Every ``interval_ms`` the ``trigger`` callback is invoked. The callback is
    expected to return quickly (spawn its own task for slow work), so a slow
    cycle never delays the next tick.
    """

    def __init__(self, trigger: Callable[[], None], interval_ms: int, name: str = "repeating_task"):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self._trigger = trigger
        self._interval_ms = interval_ms
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._logger = get_logger()

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking. Requires a running event loop."""
        if self.is_running():
            return
        self._task = asyncio.create_task(self._run(), name=self._name)

    def cancel(self) -> None:
        """Stop ticking. No trigger fires after this returns."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def stop(self) -> None:
        """Cancel and wait for the timer task to finish."""
        task = self._task
        self.cancel()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(self) -> None:
        interval = self._interval_ms / 1000.0
        while True:
            await asyncio.sleep(interval)
            try:
                self._trigger()
            except Exception as e:
                self._logger.system(
                    "repeating_task_trigger_error",
                    {"task": self._name, "error": str(e), "error_type": type(e).__name__},
                    level="ERROR",
                )
