"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS),
registers exception handlers and includes all API routers. It serves as the
root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agent_timeline.core.logging_config import get_logger, setup_logging
from agent_timeline.core.monitoring import initialize_logfire
from agent_timeline.timeline.service import create_timeline_service

from .api.v1 import events, health, replay
from .core import constant
from .core.config import settings
from .exception_handlers import setup_exception_handlers

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Builds the timeline service (engine, tables, store, replay engine) on
    startup and keeps it on ``app.state``; disposes the engine on shutdown.
    """
    logger.info("Starting up Agent Timeline Server...")
    try:
        service = await create_timeline_service(
            settings.database_url,
            config=settings.timeline,
            pricing=settings.pricing,
        )
    except Exception as e:
        logger.error(f"Timeline service initialization failed: {e}", exc_info=True)
        raise
    app.state.timeline_service = service
    logger.info("Timeline service initialized successfully")

    yield

    logger.info("Shutting down Agent Timeline Server...")
    await service.close()


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    Agent Timeline Server API

    Time-travel debugging for AI agents: an append-only event log per agent,
    point-in-time state reconstruction, and replays of recorded model calls
    against alternate models with cost and output comparison.
    """,
    version=constant.VERSION,
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

cors = settings.cors
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors.origins,
    allow_credentials=cors.allow_credentials,
    allow_methods=cors.allow_methods,
    allow_headers=cors.allow_headers,
)

setup_exception_handlers(app)
initialize_logfire(app)

app.include_router(health.router, tags=["health"])
app.include_router(events.router, prefix=f"{constant.API_V1_STR}/events", tags=["events"])
app.include_router(replay.router, prefix=f"{constant.API_V1_STR}/replay", tags=["replay"])


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run(app, host=settings.server_host, port=settings.server_port)
