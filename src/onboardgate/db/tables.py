"""SQLAlchemy table definitions."""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from onboardgate.db.base import Base, JSONType


class OnboardingProgressTable(Base):
    """Onboarding progress - one row per user."""

    __tablename__ = "onboarding_progress"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)

    # Role of the most recent commit
    role: Mapped[str | None] = mapped_column(String(50), nullable=True)

    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # Sorted list of step orders
    completed_steps: Mapped[list[int]] = mapped_column(JSONType, nullable=False, default=list)
    # Step order (as string key) -> submitted document
    step_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Optimistic concurrency token
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_onboarding_progress_completed", "is_completed", "updated_at"),
    )
