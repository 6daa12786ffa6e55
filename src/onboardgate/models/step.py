"""Step definition model - one entry of a role's onboarding sequence."""

from pydantic import BaseModel, ConfigDict, Field

from onboardgate.models.enums import Role


class StepDefinition(BaseModel):
    """An immutable step in a role's ordered sequence."""

    model_config = ConfigDict(frozen=True)

    role: Role
    order: int = Field(..., ge=1, description="1-based position within the role's flow")
    id: str = Field(..., min_length=1, description="Stable step slug")
    terminal: bool = False
