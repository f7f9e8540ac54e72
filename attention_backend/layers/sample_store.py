"""
Sample Store

Append-only bounded buffer of judged tracking samples. Once the capacity is
exceeded the oldest samples are dropped, so the store always holds the most
recent ``capacity`` samples in arrival order.
"""
from collections import deque
from typing import Optional, List, Dict, Any, Tuple

from attention_backend.types import TrackingSample

DEFAULT_CAPACITY = 1000


class SampleStore:
    """
    Holds tracking samples for later export.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        Initialize the sample store.

        Args:
            capacity: Maximum number of samples kept.
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._samples: deque[TrackingSample] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    def __len__(self) -> int:
        return len(self._samples)

    def append(self, sample: TrackingSample) -> int:
        """
        Append a sample, evicting the oldest one when full.

        Returns:
            Number of samples stored after the append.
        """
        self._samples.append(sample)
        return len(self._samples)

    def export_all(self) -> Tuple[TrackingSample, ...]:
        """Return an immutable snapshot, oldest first. Does not clear the store."""
        return tuple(self._samples)

    def to_json_list(self) -> List[Dict[str, Any]]:
        """Snapshot in the exported session-data format."""
        return [s.to_dict() for s in self._samples]

    def latest(self) -> Optional[TrackingSample]:
        return self._samples[-1] if self._samples else None

    def clear(self) -> None:
        self._samples.clear()
