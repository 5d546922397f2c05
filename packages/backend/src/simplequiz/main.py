"""FastAPI application factory.

create_app() returns a configured FastAPI instance: logging, middleware,
CORS, routers and the single place where domain errors become HTTP
responses. Lifespan only logs and disposes the engine; there are no
background workers.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from simplequiz import __version__
from simplequiz.api import api_router
from simplequiz.config import settings
from simplequiz.errors import SimpleQuizError
from simplequiz.log import configure_logging

logger = structlog.get_logger()

INTERNAL_ERROR = {"detail": "Internal server error", "kind": "internal_error"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "simplequiz.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    yield

    logger.info("simplequiz.shutdown")
    from simplequiz.db.engine import engine
    await engine.dispose()


# ─── Error mapping ────────────────────────────────────────


async def _domain_error(request: Request, exc: SimpleQuizError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("http.dependency_failure", kind=exc.kind, error=repr(exc.__cause__))
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


async def _request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Only the location of the first problem is echoed back, never the input.
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    detail = f"Invalid value for {where}." if where else "Invalid request."
    return JSONResponse(
        status_code=400,
        content={"detail": detail, "kind": "validation_error"},
    )


async def _database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("http.database_error", path=request.url.path)
    return JSONResponse(status_code=500, content=INTERNAL_ERROR)


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("http.unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content=INTERNAL_ERROR)


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    configure_logging(
        debug=settings.debug,
        json_logs=settings.environment != "development",
    )

    app = FastAPI(
        title="simple-quiz",
        description="Sessions, two-phase signup and room ownership for simple-quiz",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration:
    # CORS → Security → RequestId → handler

    from simplequiz.middleware.request_id import RequestIdMiddleware
    from simplequiz.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Location", "X-Request-ID"],
    )

    app.add_exception_handler(SimpleQuizError, _domain_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(SQLAlchemyError, _database_error)
    app.add_exception_handler(Exception, _unhandled_error)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: simplequiz.main:app)
app = create_app()
