"""EventDesk API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map EventDeskError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - The EventDesk is built once in the lifespan and stored on app.state

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - create_app(settings) factory so tests can point the store at a temp directory
    - Desk-calling handlers are sync `def`: FastAPI runs them in its threadpool,
      keeping the RLock and file writes off the event loop
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eventdesk.api.error_handlers import register_error_handlers
from eventdesk.api.routes import events, health, inventory, me, reports, users
from eventdesk.config import Settings, get_settings
from eventdesk.infrastructure.flat_file_repository import FlatFileRepository
from eventdesk.infrastructure.observability import setup_logging
from eventdesk.services.event_desk import EventDesk

logger = logging.getLogger(__name__)


def build_desk(settings: Settings) -> EventDesk:
    """Load the record files named by `settings` into a ready EventDesk."""
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return EventDesk.open(
        FlatFileRepository.from_settings(settings),
        bootstrap_admin=(
            settings.bootstrap_admin_username, settings.bootstrap_admin_password,
        ),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        setup_logging(settings.log_level, settings.log_format)
        app.state.settings = settings
        app.state.desk = build_desk(settings)
        logger.info(f"EventDesk API started (data_dir={settings.data_dir})")
        yield
        logger.info("EventDesk API shutting down")

    app = FastAPI(title="EventDesk API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(events.router)
    app.include_router(inventory.router)
    app.include_router(me.router)
    app.include_router(reports.router)

    register_error_handlers(app)
    return app


app = create_app()
