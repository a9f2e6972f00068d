"""EntityMVC Sample — FastAPI application entry point (forum domain).

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - One EntityController per sample entity; each mounts its own router
    - Global error handlers map EntityMvcError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Schema creation is opt-in (auto_create_schema); alembic owns migrations
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from entitymvc.api.controller import EntityController
from entitymvc.api.error_handlers import register_error_handlers
from entitymvc.api.routes import health
from entitymvc.config import get_settings
from entitymvc.core.security import HeaderAuthenticationProvider
from entitymvc.db.base import Base
from entitymvc.infrastructure.database import init_db
from entitymvc.infrastructure.observability import log_requests, setup_logging
from entitymvc.models import Forum, Member, Post, Thread

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.auto_create_schema:
        await manager.create_all(Base.metadata)
        logger.info("Database schema created")
    logger.info("EntityMVC sample started")
    yield
    logger.info("EntityMVC sample shutting down")
    await manager.dispose()


app = FastAPI(
    title="EntityMVC Sample", version="1.0.0", lifespan=lifespan,
)

# CORS — configured from settings, not hardcoded
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.authentication_provider = HeaderAuthenticationProvider(
    settings.user_header, settings.roles_header,
)

app.middleware("http")(log_requests)
register_error_handlers(app)

# Routes — explicit registration
controllers = [
    EntityController(Member),
    EntityController(Forum),
    EntityController(Thread),
    EntityController(Post),
]

app.state.entities = [c.metadata.name for c in controllers]

app.include_router(health.router)
for controller in controllers:
    app.include_router(controller.router)
