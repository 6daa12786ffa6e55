"""OnboardGate engine - progress tracker and storage contract."""

from onboardgate.engine.core import ProgressTracker
from onboardgate.engine.errors import (
    ConflictError,
    InvalidPayloadError,
    InvalidStepError,
    OnboardGateError,
    StepRegistryError,
    StorageUnavailableError,
    UnknownStep,
)
from onboardgate.engine.storage import MemoryProgressStore, ProgressStore

__all__ = [
    "ConflictError",
    "InvalidPayloadError",
    "InvalidStepError",
    "MemoryProgressStore",
    "OnboardGateError",
    "ProgressStore",
    "ProgressTracker",
    "StepRegistryError",
    "StorageUnavailableError",
    "UnknownStep",
]
