# Tracking core: interpretation, sample storage and the sampling controller
from .interpretation import interpret
from .sample_store import SampleStore
from .scheduler import RepeatingTask
from .sampling_controller import SamplingController

__all__ = [
    "interpret",
    "SampleStore",
    "RepeatingTask",
    "SamplingController",
]
