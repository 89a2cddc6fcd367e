"""FastAPI application entry point for the Welcomely core service.

Health/version probes plus the session and default-workspace routers.
The provisioner registry is owned by the app (app.state.provisioners):
one DefaultWorkspaceProvisioner per principal session.
"""

import logging
from uuid import UUID

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from src.api.workspaces import router as workspaces_router
from src.api.workspaces import session_router
from src.config.settings import get_settings
from src.db.session import async_session_factory
from src.provisioning.gateway import SqlStoreGateway
from src.provisioning.provisioner import DefaultWorkspaceProvisioner
from src.provisioning.registry import ProvisionerRegistry

APP_VERSION = "0.1.0"

settings = get_settings()

_LOG_NAME_TO_LEVEL: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# --- Structured logging ---
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer() if settings.ENVIRONMENT == "dev"
        else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        _LOG_NAME_TO_LEVEL[settings.LOG_LEVEL.value],
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)
logging.basicConfig(level=_LOG_NAME_TO_LEVEL[settings.LOG_LEVEL.value])

logger: structlog.stdlib.BoundLogger = structlog.get_logger()


def _provisioner_for(user_id: UUID) -> DefaultWorkspaceProvisioner:
    gateway = SqlStoreGateway(async_session_factory, user_id)
    return DefaultWorkspaceProvisioner.from_settings(gateway, settings)


# --- FastAPI app ---
app = FastAPI(
    title="Welcomely Core API",
    description="Default workspace provisioning for the Welcomely onboarding client.",
    version=APP_VERSION,
)
app.state.provisioners = ProvisionerRegistry(_provisioner_for)

# --- CORS middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.ENVIRONMENT == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Routers ---
app.include_router(session_router)
app.include_router(workspaces_router)


# --- Infrastructure Endpoints (global) ---


@app.get("/health")
async def health_check() -> dict:
    """Liveness probe with component health checks.

    Returns 200 always (degraded status if components are down).
    """
    checks: dict[str, bool] = {"api": True}

    # Database connectivity check
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception:
        logger.warning("health_database_unreachable")
        checks["database"] = False

    all_ok = all(checks.values())

    return {
        "status": "ok" if all_ok else "degraded",
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT.value,
        "checks": checks,
    }


@app.get("/api/version")
async def get_version() -> dict[str, str]:
    """Return application name, version, and environment."""
    return {
        "name": "Welcomely Core",
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT.value,
    }
