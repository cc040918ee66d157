import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from cmsmail.adapters.sqlite.migrator import SQLiteMigrator
from cmsmail.api.deps import get_settings
from cmsmail.app_shell.config import validate_ops_rules
from cmsmail.rules.loader import load_rules

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules, validate and migrate on startup (fail-fast)
    try:
        rules = load_rules(settings.rules_path)
        validate_ops_rules(rules, settings.data_dir)
        logger.info("Rules loaded from %s", settings.rules_path)
        SQLiteMigrator(settings.db_path, str(settings.migrations_dir)).run_migrations()
    except Exception:
        logger.critical("Startup failed", exc_info=True)
        sys.exit(1)

    yield


app = FastAPI(
    title="CMS Mail API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from cmsmail.api.routes import (  # noqa: E402
    admin_contacts,
    public_captcha,
    public_subscription,
)

app.include_router(admin_contacts.router, prefix="/api/admin", tags=["Admin Contacts"])
app.include_router(public_captcha.router, prefix="/api/public", tags=["Public"])
app.include_router(public_subscription.router, prefix="/api/public", tags=["Public Subscription"])


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "cmsmail"}
