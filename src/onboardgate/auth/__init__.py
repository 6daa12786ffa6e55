"""Authentication for OnboardGate."""

from onboardgate.auth.context import AuthContext, Identity

__all__ = ["AuthContext", "Identity"]
