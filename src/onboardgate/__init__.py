"""OnboardGate - resumable onboarding progress service."""

__version__ = "0.1.0"
