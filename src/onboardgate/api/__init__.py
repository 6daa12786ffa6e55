"""OnboardGate REST API."""

from onboardgate.api.router import router

__all__ = ["router"]
