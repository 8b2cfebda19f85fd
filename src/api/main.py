import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.adapters.sqlite.migrator import DEFAULT_MIGRATIONS_DIR, SQLiteMigrator
from src.adapters.sqlite_db import SQLiteSubscriptionStore
from src.api.deps import close_notification_gateway, get_health_registry, get_settings
from src.api.routes import subscriptions
from src.app_shell.logging_config import configure_logging
from src.shell.http.health import (
    DatabaseCheck,
    StartupCheck,
    StartupTracker,
    create_health_router,
)

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    # Configuration errors propagate and abort startup (fail-fast).
    settings = get_settings()
    configure_logging(settings.logging.level)

    db_path = settings.database.path
    db_dir = os.path.dirname(db_path)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    migrations_dir = settings.database.migrations_dir or DEFAULT_MIGRATIONS_DIR
    SQLiteMigrator(db_path, migrations_dir).run_migrations()

    store = SQLiteSubscriptionStore(
        db_path, busy_timeout_seconds=settings.database.busy_timeout_seconds
    )
    registry = get_health_registry()
    registry.clear()
    registry.register(StartupCheck())
    registry.register(DatabaseCheck(store.ping))

    StartupTracker.mark_started()
    logger.info("Mailing list service started (database: %s)", db_path)

    yield

    close_notification_gateway()
    logger.info("Mailing list service stopped")


app = FastAPI(
    title="Mailing List API",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
app.include_router(create_health_router(get_health_registry(), version=VERSION))
app.include_router(subscriptions.router, tags=["Subscriptions"])


# CORS (permissive)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
