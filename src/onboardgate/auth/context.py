"""Authentication and identity context helpers."""

from dataclasses import dataclass
from typing import Literal

from onboardgate.models import Role


@dataclass(frozen=True)
class AuthContext:
    """Authentication context for the current request."""

    auth_type: Literal["api_key", "insecure_dev"]


@dataclass(frozen=True)
class Identity:
    """
    Caller identity as asserted by the upstream identity provider.

    The service trusts these values; it performs no user lookup.
    """

    user_id: str
    role: Role | None = None
