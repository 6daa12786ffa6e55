"""OnboardGate enumerations."""

from enum import Enum


class Role(str, Enum):
    """Account role that selects an onboarding flow."""

    CREATOR = "creator"
    ORGANIZATION = "organization"
