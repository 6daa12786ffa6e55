"""OnboardGate database layer."""

from onboardgate.db.base import Base, async_session_factory, close_db, init_db
from onboardgate.db.repositories import ProgressRepository
from onboardgate.db.tables import OnboardingProgressTable

__all__ = [
    "Base",
    "OnboardingProgressTable",
    "ProgressRepository",
    "async_session_factory",
    "close_db",
    "init_db",
]
