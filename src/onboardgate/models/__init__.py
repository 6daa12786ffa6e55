"""OnboardGate data models."""

from onboardgate.models.enums import Role
from onboardgate.models.progress import SKIPPED_SENTINEL, ProgressRecord, ProgressResult
from onboardgate.models.step import StepDefinition

__all__ = [
    "ProgressRecord",
    "ProgressResult",
    "Role",
    "SKIPPED_SENTINEL",
    "StepDefinition",
]
