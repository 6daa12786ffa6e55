"""API dependencies."""

import logging
import secrets
from functools import lru_cache

from fastapi import Header, HTTPException

from onboardgate.auth.context import AuthContext, Identity
from onboardgate.config import Environment, settings
from onboardgate.db import base as db_base
from onboardgate.db.repositories import ProgressRepository
from onboardgate.engine import ProgressTracker
from onboardgate.models import Role
from onboardgate.registry import StepRegistry, load_registry

logger = logging.getLogger("onboardgate.api")


@lru_cache(maxsize=1)
def get_registry() -> StepRegistry:
    """Step registry, loaded once per process."""
    return load_registry(settings.steps_file)


def get_tracker() -> ProgressTracker:
    """Progress tracker backed by the SQL store."""
    return ProgressTracker(
        store=ProgressRepository(db_base.async_session_factory),
        registry=get_registry(),
        max_attempts=settings.max_commit_attempts,
    )


async def get_identity(
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    x_user_role: str | None = Header(None, alias="X-User-Role"),
) -> Identity:
    """
    Extract caller identity from request headers.

    The identity provider in front of this service sets X-User-ID and
    X-User-Role after authenticating the end user.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing user identity")

    role = None
    if x_user_role:
        try:
            role = Role(x_user_role.strip().lower())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown role: {x_user_role}")

    return Identity(user_id=x_user_id.strip(), role=role)


async def verify_api_key(
    authorization: str | None = Header(None),
    x_api_key: str | None = Header(None, alias="X-API-Key"),
) -> AuthContext:
    """
    Verify the shared API key.

    Returns AuthContext on success. Raises HTTPException on failure.
    Fails closed: without a configured key every request is rejected unless
    insecure dev mode is explicitly enabled.
    """
    # Insecure dev mode bypass (must be explicitly enabled)
    if settings.allow_insecure_dev and settings.env == Environment.DEVELOPMENT:
        return AuthContext(auth_type="insecure_dev")

    api_key = None
    if authorization and authorization.startswith("Bearer "):
        api_key = authorization[7:]
    elif x_api_key:
        api_key = x_api_key

    if not api_key:
        raise HTTPException(
            status_code=401,
            detail="Missing authorization. Use Authorization: Bearer <key> or X-API-Key header",
        )

    if settings.api_key:
        if secrets.compare_digest(api_key, settings.api_key):
            return AuthContext(auth_type="api_key")
        raise HTTPException(status_code=401, detail="Invalid API key")

    logger.error("SECURITY VIOLATION: No API key configured. Set ONBOARDGATE_API_KEY.")
    raise HTTPException(
        status_code=503,
        detail="Server misconfigured: authentication not properly initialized",
    )


def validate_auth_config() -> None:
    """
    Validate authentication configuration at startup.

    Raises:
        RuntimeError: If configuration is insecure for the current environment
    """
    if settings.allow_insecure_dev and settings.env != Environment.DEVELOPMENT:
        raise RuntimeError(
            f"SECURITY ERROR: allow_insecure_dev=true is only permitted in development. "
            f"Current environment: {settings.env.value}. "
            f"Set ONBOARDGATE_ALLOW_INSECURE_DEV=false for {settings.env.value}."
        )

    if not settings.allow_insecure_dev and not settings.api_key:
        raise RuntimeError(
            "SECURITY ERROR: ONBOARDGATE_API_KEY is required unless "
            "ONBOARDGATE_ALLOW_INSECURE_DEV=true in development."
        )

    if settings.allow_insecure_dev:
        logger.warning(
            "=" * 80 + "\n"
            "WARNING: Running in INSECURE DEV MODE\n"
            "  - Authentication is DISABLED\n"
            "  - This mode is ONLY for local development\n"
            + "=" * 80
        )
    else:
        logger.info(f"Authentication enabled: shared API key for {settings.env.value}")
