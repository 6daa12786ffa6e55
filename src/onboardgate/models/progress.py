"""Progress models - per-user onboarding state."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from onboardgate.models.enums import Role
from onboardgate.utils.time import utc_now

# Written in place of form data when a step is skipped.
SKIPPED_SENTINEL: dict[str, Any] = {"skipped": True}


class ProgressRecord(BaseModel):
    """Tracks one user's position and collected data through the wizard."""

    user_id: str
    role: Role | None = None
    current_step: int = 1
    completed_steps: set[int] = Field(default_factory=set)
    step_data: dict[int, Any] = Field(default_factory=dict)
    is_completed: bool = False
    version: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def default(cls, user_id: str) -> "ProgressRecord":
        """Return the initial record for a user that has never been seen."""
        return cls(user_id=user_id)

    def is_skipped(self, step_order: int) -> bool:
        """Check if the stored payload for a step is the skip sentinel."""
        return self.step_data.get(step_order) == SKIPPED_SENTINEL


class ProgressResult(BaseModel):
    """Outcome of a step commit or skip."""

    success: bool = True
    next_step: int
    completed: bool
