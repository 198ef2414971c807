"""FastAPI application for the daily check-in streak service."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

import fastapi
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from core.config import get_settings
from core.database import (
    create_engine,
    create_schema,
    create_session_maker,
    dispose_engine,
    init_db,
)
from core.logger import configure_logging
from core.ratelimit import limiter, rate_limit_exceeded_handler
from core.telemetry import RequestTimingMiddleware
from routes import checkin_router, health_router
from services.checkin_session import CheckInSession
from services.streak_store import DatabaseStreakStore

configure_logging()
logger = logging.getLogger(__name__)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unhandled exceptions."""
    logger.exception(
        "unhandled.exception",
        extra={
            "exc_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again."},
    )


async def validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Handler for request validation errors."""
    if not isinstance(exc, RequestValidationError):
        return JSONResponse(status_code=500, content={"detail": "Unexpected error"})

    logger.warning(
        "request.validation_error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_count": len(exc.errors()),
        },
    )
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # ctx may hold exception instances, which JSONResponse cannot encode
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


async def _run_alembic_migrations() -> None:
    """Run Alembic migrations in a subprocess.

    Migrations use a blocking driver; a subprocess keeps them off the
    event loop and away from the app's async engine.
    """
    import subprocess
    import sys

    cmd = [sys.executable, "-m", "scripts.migrate", "upgrade", "head"]
    cwd = Path(__file__).parent

    result = await asyncio.to_thread(
        lambda: subprocess.run(
            cmd, cwd=cwd, capture_output=True, text=True, timeout=120
        )
    )

    if result.returncode != 0:
        stderr = result.stderr.strip()
        logger.error("migrations.failed", extra={"stderr": stderr})
        raise RuntimeError(f"Alembic migration failed:\n{stderr}")

    logger.info("migrations.complete")


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Create the engine, prepare the schema and load the streak at startup."""
    settings = get_settings()
    app.state.engine = create_engine()
    app.state.session_maker = create_session_maker(app.state.engine)

    app.state.init_done = False
    app.state.init_error = None
    app.state.checkin_session = None

    try:
        async with asyncio.timeout(60):
            await init_db(app.state.engine)

        if app.state.engine.dialect.name == "sqlite":
            await create_schema(app.state.engine)
        else:
            async with asyncio.timeout(120):
                await _run_alembic_migrations()

        session = CheckInSession(
            DatabaseStreakStore(app.state.session_maker, settings.checkin_user_key),
            settings.cooldown_policy,
            processing_delay=settings.processing_delay_seconds,
        )
        await session.load()
        app.state.checkin_session = session

        app.state.init_done = True
        logger.info(
            "init.complete",
            extra={
                "fast_mode": settings.checkin_fast_mode,
                "user_key": settings.checkin_user_key,
            },
        )
    except TimeoutError:
        logger.error(
            "init.timeout",
            extra={"hint": "Startup hung, check DB connectivity and migration state"},
        )
        raise RuntimeError("Application startup timed out")
    except Exception as e:
        app.state.init_error = str(e)
        logger.error("init.failed", extra={"error": str(e)}, exc_info=True)
        raise

    try:
        yield
    finally:
        if app.state.checkin_session is not None:
            app.state.checkin_session.close()
        await dispose_engine(app.state.engine)


_settings = get_settings()

app = fastapi.FastAPI(
    title="Check-In Streaks API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if _settings.enable_docs or _settings.debug else None,
    redoc_url="/redoc" if _settings.enable_docs or _settings.debug else None,
    openapi_url=("/openapi.json" if _settings.enable_docs or _settings.debug else None),
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(RequestTimingMiddleware)

app.include_router(health_router)
app.include_router(checkin_router)
