import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from jogata.api import (
    activations_router,
    auth_router,
    health_router,
    marketplace_router,
    matches_router,
    packs_router,
    styles_router,
    tournaments_router,
    users_router,
)
from jogata.config import settings
from jogata.db.database import async_session_factory, init_db
from jogata.models.failure import ErrorResponse, KnownError
from jogata.services.catalog import seed_catalog
from jogata.services.football_api import FootballApiError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    if settings.seed_catalog_on_startup:
        async with async_session_factory() as session:
            seeded = await seed_catalog(session)
            await session.commit()
        logger.info("Style catalog seeded: %d cards", seeded)
    yield


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("jogata"),
    lifespan=lifespan,
)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(styles_router)
app.include_router(packs_router)
app.include_router(marketplace_router)
app.include_router(tournaments_router)
app.include_router(activations_router)
app.include_router(matches_router)
app.include_router(health_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR ENVELOPE
# =============================================================================


def _error(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    return _error(exc.status_code, exc.to_response())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return _error(
        status.HTTP_400_BAD_REQUEST,
        ErrorResponse(error="Validation failed", code="VALIDATION_FAILED", details=details),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(exclude_none=True),
        headers=exc.headers,
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity violation: %s", exc.orig)
    return _error(
        status.HTTP_409_CONFLICT,
        ErrorResponse(error="Resource already exists", code="CONFLICT"),
    )


@app.exception_handler(FootballApiError)
async def provider_error_handler(_request: Request, exc: FootballApiError) -> JSONResponse:
    logger.error("Football provider failure: %s", exc)
    return _error(
        status.HTTP_502_BAD_GATEWAY,
        ErrorResponse(error="Football data provider unavailable", code="PROVIDER_ERROR"),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = ErrorResponse(error="Internal server error")
    if settings.debug:
        body.detail = f"{type(exc).__name__}: {exc}"
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, body)
