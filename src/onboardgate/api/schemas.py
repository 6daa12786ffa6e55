"""API request/response schemas.

Field names are camelCase on the wire; snake_case is accepted on input.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from onboardgate.models import ProgressRecord, ProgressResult, StepDefinition


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


# ============================================================================
# Step registry
# ============================================================================


class StepSchema(CamelModel):
    order: int
    id: str
    terminal: bool

    @classmethod
    def from_definition(cls, definition: StepDefinition) -> "StepSchema":
        return cls(order=definition.order, id=definition.id, terminal=definition.terminal)


class StepsResponse(CamelModel):
    """Ordered steps of a role's onboarding flow."""

    role: str
    steps: list[StepSchema]


# ============================================================================
# Progress
# ============================================================================


class ProgressResponse(CamelModel):
    """A user's onboarding progress."""

    user_id: str
    role: Optional[str] = None
    current_step: int
    completed_steps: list[int] = Field(..., description="Completed or skipped step orders, ascending")
    step_data: dict[int, Any] = Field(..., description="Last submitted document per step order")
    is_completed: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: ProgressRecord) -> "ProgressResponse":
        return cls(
            user_id=record.user_id,
            role=record.role.value if record.role else None,
            current_step=record.current_step,
            completed_steps=sorted(record.completed_steps),
            step_data=dict(sorted(record.step_data.items())),
            is_completed=record.is_completed,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class CommitStepResponse(CamelModel):
    """Commit step response."""

    success: bool
    next_step: int
    completed: bool

    @classmethod
    def from_result(cls, result: ProgressResult) -> "CommitStepResponse":
        return cls(success=result.success, next_step=result.next_step, completed=result.completed)


class SkipStepResponse(CamelModel):
    """Skip step response."""

    success: bool
    next_step: int

    @classmethod
    def from_result(cls, result: ProgressResult) -> "SkipStepResponse":
        return cls(success=result.success, next_step=result.next_step)


class MetricsResponse(BaseModel):
    counters: dict[str, float]
    histograms: dict[str, dict[str, Any]]
