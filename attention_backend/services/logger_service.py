"""
Logger Service

Provides structured logging with two main categories:
1. Session Logging - Tracking events (judgments, samples, setting changes)
2. System Logging - Technical/debugging information

Supports configurable log levels and thresholds per category.
"""
import csv
from typing import Dict, Any, List, Optional
from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timezone
import json
from pathlib import Path
from attention_backend.api.serialization import json_safe


CATEGORIES = ("session", "system")


class LogLevel(Enum):
    """Log level hierarchy (ascending severity)."""
    ERROR = 4
    WARNING = 3
    INFO = 2
    DEBUG = 1


@dataclass
class LogEntry:
    """A single log entry."""
    timestamp: float
    level: str
    event_type: str
    data: Dict[str, Any]
    category: str  # "session" or "system"


class LoggerService:
    """
    Centralized logging service for session and system logs.
    """

    def __init__(
        self,
        session_level: str = "INFO",
        system_level: str = "INFO",
        max_entries: int = 10000,
        echo: bool = True,
    ):
        """
        Initialize the logger service.

        Args:
            session_level: Log level for session logs (DEBUG, INFO, WARNING, ERROR).
            system_level: Log level for system logs (DEBUG, INFO, WARNING, ERROR).
            max_entries: Maximum entries per category before rotating.
            echo: Print system entries to the console.
        """
        self._logs: Dict[str, List[LogEntry]] = {c: [] for c in CATEGORIES}
        self._levels: Dict[str, LogLevel] = {
            "session": LogLevel[session_level.upper()],
            "system": LogLevel[system_level.upper()],
        }
        self.max_entries = max_entries
        self.echo = echo

        # --- Console dedup state (system prints only) ---
        self._last_print_signature: Optional[str] = None
        self._last_print_line: Optional[str] = None
        self._last_print_repeat_count: int = 0

    def session(
        self,
        event_type: str,
        data: Optional[Dict[str, Any]] = None,
        level: str = "INFO",
    ) -> None:
        """
        Log a tracking-session event.

        Args:
            event_type: Type of event (e.g., "gaze_judged", "interval_updated").
            data: Event data as dictionary.
            level: Log level (DEBUG, INFO, WARNING, ERROR).
        """
        self._append("session", event_type, data, level)

    def system(
        self,
        event_type: str,
        data: Optional[Dict[str, Any]] = None,
        level: str = "INFO",
    ) -> None:
        """
        Log a system event.

        Args:
            event_type: Type of event (e.g., "server_started", "detector_error").
            data: Event data as dictionary.
            level: Log level (DEBUG, INFO, WARNING, ERROR).
        """
        entry = self._append("system", event_type, data, level)
        if entry is not None and self.echo:
            self._print_log(entry)

    def set_level(self, category: str, level: str) -> None:
        """
        Set log level threshold for a category.

        Args:
            category: "session" or "system".
            level: "DEBUG", "INFO", "WARNING", or "ERROR".
        """
        category = category.lower()
        if category not in self._levels:
            raise ValueError(f"Unknown category: {category}")
        self._levels[category] = LogLevel[level.upper()]

    def get_level(self, category: str) -> str:
        return self._levels[category.lower()].name

    def get_logs(
        self,
        category: str,
        event_type: Optional[str] = None,
        level: Optional[str] = None,
    ) -> List[LogEntry]:
        """
        Retrieve logs of a category with optional filtering.

        Args:
            category: "session" or "system".
            event_type: Filter by event type.
            level: Filter by log level.

        Returns:
            List of matching log entries.
        """
        logs = self._logs[category.lower()]

        if event_type:
            logs = [l for l in logs if l.event_type == event_type]

        if level:
            logs = [l for l in logs if l.level == level.upper()]

        return logs

    def get_session_logs(self, event_type: Optional[str] = None, level: Optional[str] = None) -> List[LogEntry]:
        return self.get_logs("session", event_type, level)

    def get_system_logs(self, event_type: Optional[str] = None, level: Optional[str] = None) -> List[LogEntry]:
        return self.get_logs("system", event_type, level)

    def clear_logs(self, category: str = "all") -> None:
        """
        Clear logs.

        Args:
            category: "session", "system", or "all".
        """
        for name in CATEGORIES:
            if category.lower() in (name, "all"):
                self._logs[name] = []

    def export_logs(self, category: str, filepath: str) -> bool:
        """
        Export one category of logs to a CSV file.

        Args:
            category: "session" or "system".
            filepath: Path to export file (".csv" is appended if missing).

        Returns:
            True if successful.
        """
        try:
            filepath = filepath if filepath.endswith(".csv") else f"{filepath}.csv"
            path = Path(filepath)

            # Ensure parent directories exist
            path.parent.mkdir(parents=True, exist_ok=True)

            entries = list(self._logs[category.lower()])
            with open(path, "w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                writer.writerow(["timestamp", "level", "event_type", "data"])

                for entry in entries:
                    dt = datetime.fromtimestamp(entry.timestamp, tz=timezone.utc)
                    timestamp_str = dt.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

                    writer.writerow([
                        timestamp_str,
                        entry.level,
                        entry.event_type,
                        json.dumps(json_safe(entry.data)),
                    ])

            self.system(
                f"export_{category.lower()}_logs",
                {"filepath": path, "count": len(entries)},
            )
            return True
        except (OSError, KeyError) as e:
            self.system(
                f"export_{category.lower()}_logs_error",
                {"error": str(e)},
                level="ERROR",
            )
            return False

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get logging statistics.

        Returns:
            Dictionary with log counts and levels.
        """
        stats: Dict[str, Any] = {}
        for name in CATEGORIES:
            by_level: Dict[str, int] = {}
            for entry in self._logs[name]:
                by_level[entry.level] = by_level.get(entry.level, 0) + 1
            stats[name] = {
                "total": len(self._logs[name]),
                "by_level": by_level,
                "level_threshold": self._levels[name].name,
            }
        return stats

    # --- Internal Methods ---

    def _append(
        self,
        category: str,
        event_type: str,
        data: Optional[Dict[str, Any]],
        level: str,
    ) -> Optional[LogEntry]:
        if not self._should_log(level, category):
            return None

        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).timestamp(),
            level=level.upper(),
            event_type=event_type,
            data=data or {},
            category=category,
        )

        logs = self._logs[category]
        logs.append(entry)

        # Rotate if exceeding max entries
        if len(logs) > self.max_entries:
            self._logs[category] = logs[-self.max_entries:]
        return entry

    def _should_log(self, level: str, category: str) -> bool:
        """
        Determine if a message should be logged based on level.

        Args:
            level: Message level.
            category: Log category, "session" or "system".

        Returns:
            True if message should be logged.
        """
        try:
            level_obj = LogLevel[level.upper()]
        except KeyError:
            return True  # Log unknown levels

        return level_obj.value >= self._levels[category].value

    def _print_log(self, entry: LogEntry) -> None:
        timestamp = datetime.fromtimestamp(entry.timestamp, tz=timezone.utc).strftime("%H:%M:%S")

        colors = {
            "DEBUG": "\033[36m",
            "INFO": "\033[32m",
            "WARNING": "\033[33m",
            "ERROR": "\033[31m",
        }
        reset = "\033[0m"
        color = colors.get(entry.level, "")

        data_obj = json_safe(entry.data) if entry.data else None
        data_str = json.dumps(data_obj) if data_obj else ""

        base_line = f"{color}[{timestamp}] [{entry.level}] {entry.event_type}{reset} {data_str}"

        signature = json.dumps(
            {
                "level": entry.level,
                "event_type": entry.event_type,
                "data": data_obj,
            },
            sort_keys=True,
        )

        # First line
        if self._last_print_signature is None:
            print(base_line, end="", flush=True)
            self._last_print_signature = signature
            self._last_print_line = base_line
            self._last_print_repeat_count = 1
            return

        # Same as previous → update same line
        if signature == self._last_print_signature:
            self._last_print_repeat_count += 1
            updated = f"{base_line} ×{self._last_print_repeat_count}"
            # Pad if shorter than previous
            padded = updated.ljust(len(self._last_print_line))
            print(f"\r{padded}", end="", flush=True)
            self._last_print_line = padded
            return

        # New message → end previous line
        print()
        print(base_line, end="", flush=True)

        self._last_print_signature = signature
        self._last_print_line = base_line
        self._last_print_repeat_count = 1


# Global logger instance
_logger: Optional[LoggerService] = None


def get_logger() -> LoggerService:
    """
    Get the global logger instance.

    Returns:
        Global LoggerService instance.
    """
    global _logger
    if _logger is None:
        _logger = LoggerService()
    return _logger


def initialize_logger(
    session_level: str = "INFO",
    system_level: str = "INFO",
    echo: bool = True,
) -> LoggerService:
    """
    Initialize the global logger service.

    Args:
        session_level: Log level for session logs.
        system_level: Log level for system logs.
        echo: Print system entries to the console.

    Returns:
        Initialized LoggerService instance.
    """
    global _logger
    _logger = LoggerService(
        session_level=session_level,
        system_level=system_level,
        echo=echo,
    )
    return _logger
