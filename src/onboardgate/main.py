"""OnboardGate main application."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from onboardgate import __version__
from onboardgate.api import router
from onboardgate.api.deps import get_registry, validate_auth_config
from onboardgate.config import settings
from onboardgate.db.base import close_db, init_db

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("onboardgate")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting OnboardGate server...")
    logger.info(f"Environment: {settings.env.value}")

    # Fail fast on insecure auth config or a malformed step registry
    validate_auth_config()
    registry = get_registry()
    logger.info(f"Onboarding flows: {registry.describe()}")

    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down OnboardGate server...")
    await close_db()
    logger.info("Shutdown complete")


app = FastAPI(
    title="OnboardGate",
    description="Resumable multi-step onboarding progress service",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allowed_methods,
    allow_headers=settings.cors_allowed_headers,
)

app.include_router(router)


def main():
    """Entry point for the application."""
    uvicorn.run(
        "onboardgate.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
