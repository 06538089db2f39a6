"""FastAPI application factory.

Learn: App factory pattern — create_app() builds the long-lived components
(notifier, ingestion pipeline, generator supervisor), parks them on
app.state, and wires middleware, routers and error handlers. Lifespan only
does the things that need a running loop: schema creation, the delayed
generator autostart, and ordered shutdown.

Shutdown order matters: stop the generator first (no more ingests), then
close the notifier (disconnect clients), then dispose the engine — so no
write is ever attempted against a closed store.
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.exceptions import HTTPException

from houseboard import __version__
from houseboard.api import api_router, health_router
from houseboard.config import settings
from houseboard.db import engine as db_engine
from houseboard.errors import ProcessSpawnError
from houseboard.generator.source import LineSource, ProcessLineSource
from houseboard.generator.supervisor import GeneratorSupervisor
from houseboard.log_config import configure_logging
from houseboard.middleware.request_context import RequestContextMiddleware
from houseboard.realtime.notifier import Notifier
from houseboard.realtime.websocket import router as ws_router
from houseboard.services.ingestion import IngestionPipeline

logger = structlog.get_logger()


async def _autostart_generator(supervisor: GeneratorSupervisor, delay: float) -> None:
    await asyncio.sleep(delay)
    try:
        await supervisor.start()
    except ProcessSpawnError as e:
        # Server stays up; the generator can be started later via the API.
        logger.error("houseboard.generator_autostart_failed", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown.
    """
    configure_logging(settings.log_level, json_output=settings.log_json)
    logger.info(
        "houseboard.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    if settings.auto_create_schema:
        await db_engine.create_schema(app.state.engine)

    autostart: Optional[asyncio.Task] = None
    if settings.should_autostart_generator:
        autostart = asyncio.create_task(
            _autostart_generator(app.state.supervisor, settings.generator_autostart_delay_seconds)
        )

    yield

    logger.info("houseboard.shutdown")

    if autostart is not None:
        autostart.cancel()
        with suppress(asyncio.CancelledError):
            await autostart

    await app.state.supervisor.stop()
    app.state.notifier.close()
    await app.state.engine.dispose()


# ─── Error rendering ────────────────────────────────────────


async def _http_error(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        where = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{where}: {err.get('msg')}" if where else str(err.get("msg")))
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "; ".join(problems) or "Invalid request"},
    )


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("http.unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


def create_app(
    engine: Optional[AsyncEngine] = None,
    generator_source: Optional[LineSource] = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    `engine` and `generator_source` default to the configured database and
    generator command; tests pass their own.
    """
    app = FastAPI(
        title="Houseboard",
        description="Live house points leaderboard — ingestion, standings and real-time fan-out",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Core components ───────────────────────────────────────
    if engine is None:
        engine = db_engine.engine
        session_factory = db_engine.async_session_factory
    else:
        session_factory = db_engine.build_session_factory(engine)

    notifier = Notifier(queue_size=settings.subscriber_queue_size)
    pipeline = IngestionPipeline(session_factory, notifier)
    source = generator_source or ProcessLineSource(
        settings.generator_command, cwd=settings.generator_cwd
    )
    supervisor = GeneratorSupervisor(
        source, pipeline, stop_timeout=settings.generator_stop_timeout_seconds
    )

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.notifier = notifier
    app.state.pipeline = pipeline
    app.state.supervisor = supervisor

    # ── Middleware stack ──────────────────────────────────────
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # ── Error handlers ────────────────────────────────────────
    app.add_exception_handler(HTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(Exception, _unhandled_error)

    # ── Routes ────────────────────────────────────────────────
    app.include_router(health_router, tags=["health"])
    app.include_router(api_router)
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: houseboard.main:app)
app = create_app()
