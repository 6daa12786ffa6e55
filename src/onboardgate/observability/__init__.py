"""Observability helpers for OnboardGate."""

from onboardgate.observability.metrics import metrics

__all__ = ["metrics"]
