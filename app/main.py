"""FastAPI app factory, lifespan, and HTTP routes.

Public endpoints:

- GET  /                -> service metadata (message + endpoint templates)
- GET  /character       -> every character, projected to id/name/status/species
- POST /character       -> validate and insert a character
- GET  /character/{id}  -> one character by numeric id

Operational endpoints (/healthz, /healthcheck, /metrics, /docs) are hidden from
the metadata list.
"""

import logging
import time
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Any, List

import uvicorn
from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import metrics
from .crud import CharacterStore
from .errors import AppError, FieldError, NotFoundError, PersistenceError, ValidationError
from .logging_config import configure_logging
from .schemas import (
    CharacterCreated,
    CharacterOut,
    ErrorResponse,
    HealthcheckOut,
    ServiceInfo,
)
from .settings import Settings, settings as default_settings
from .validation import validate_create, validate_identifier

log = logging.getLogger(__name__)

SERVICE_INFO = {
    "message": "Rick and Morty API",
    "endpoints": ["/character", "/character/:id"],
}

CORS_METHODS = ["GET", "POST", "OPTIONS"]
CORS_HEADERS = ["Content-Type"]


def _error_response(exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.body())


# ---------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------


async def app_error_handler(_req: Request, exc: AppError):
    return _error_response(exc)


async def http_exception_handler(_req: Request, exc: StarletteHTTPException):
    detail = (
        exc.detail
        if isinstance(exc.detail, str)
        else HTTPStatus(exc.status_code).phrase
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": detail},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(_req: Request, exc: RequestValidationError):
    # Raised by FastAPI itself, e.g. for a body that is not valid JSON
    details = [
        FieldError(field=".".join(str(p) for p in err["loc"]), message=err["msg"])
        for err in exc.errors()
    ]
    return _error_response(ValidationError("Validation failed", details))


# ---------------------------------------------------------------------
# Dependencies + lifespan
# ---------------------------------------------------------------------


def get_store(request: Request) -> CharacterStore:
    """FastAPI dependency returning the store attached to the running app."""
    return request.app.state.store


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store (unless one was injected), create the schema, and
    dispose the engine on shutdown if this lifespan opened it."""
    cfg: Settings = app.state.settings
    owned = app.state.store is None
    if owned:
        app.state.store = CharacterStore.from_url(cfg.DATABASE_URL)
    store: CharacterStore = app.state.store

    try:
        try:
            await store.create_schema()
        except Exception as e:
            log.error("startup.db_init_failed error=%r", e)
            raise
        log.info("startup.db_init complete")
        yield
    finally:
        if owned:
            await store.close()
            app.state.store = None


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------

router = APIRouter()

_errors = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.get("/", response_model=ServiceInfo)
async def root():
    """Static service metadata."""
    return SERVICE_INFO


@router.get("/healthz", include_in_schema=False)
async def healthz():
    """In-process liveness check; never touches the database."""
    return {"status": "ok"}


@router.get("/healthcheck", response_model=HealthcheckOut, include_in_schema=False)
async def healthcheck(store: CharacterStore = Depends(get_store)):
    """Deep health check: database reachability and row count."""
    db_ok = await store.ping()
    total = 0
    if db_ok:
        try:
            total = await store.count()
        except PersistenceError as exc:
            db_ok = False
            log.debug("route.healthcheck.db_error error=%r", exc)
    metrics.observe_health(db_ok)

    status = "ok" if db_ok else "degraded"
    log.info(
        "route.healthcheck status=%s db_ok=%s character_count=%d",
        status,
        db_ok,
        total,
    )
    return {"status": status, "db_ok": db_ok, "character_count": total}


@router.get(
    "/character",
    response_model=List[CharacterOut],
    responses={500: {"model": ErrorResponse}},
)
async def list_characters(store: CharacterStore = Depends(get_store)):
    """Return every character (no filtering, no pagination)."""
    rows = await store.list_all()
    log.info("route.character.list returned=%d", len(rows))
    return rows


@router.post(
    "/character",
    status_code=201,
    response_model=CharacterCreated,
    responses=_errors,
)
async def create_character(
    payload: Any = Body(None),
    store: CharacterStore = Depends(get_store),
):
    """Validate the body and insert a new character.

    Every violated field is reported in a single 400 response.
    """
    result = validate_create(payload)
    if not result.ok:
        log.info(
            "route.character.create rejected fields=%s",
            ",".join(d.field for d in result.error.details),
        )
        return _error_response(result.error)

    new_id = await store.insert(result.value)
    metrics.record_character_created()
    log.info("route.character.create id=%d", new_id)
    return {"id": new_id, "message": "Character created successfully"}


@router.get(
    "/character/{character_id}",
    response_model=CharacterOut,
    responses={**_errors, 404: {"model": ErrorResponse}},
)
async def get_character(
    character_id: str, store: CharacterStore = Depends(get_store)
):
    """Return one character by its numeric id."""
    result = validate_identifier(character_id)
    if not result.ok:
        log.info("route.character.get invalid_id=%r", character_id)
        return _error_response(result.error)

    row = await store.get_by_id(result.value)
    if row is None:
        log.info("route.character.get id=%d found=False", result.value)
        return _error_response(NotFoundError("Character not found"))
    log.debug("route.character.get id=%d found=True", result.value)
    return row


# ---------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------


def create_app(
    store: CharacterStore | None = None, settings: Settings | None = None
) -> FastAPI:
    """Build the application.

    Args:
        store: Pre-built store to serve from. When omitted, the lifespan opens
            one from ``settings.DATABASE_URL`` and closes it on shutdown.
        settings: Configuration; defaults to the module-level settings.
    """
    cfg = settings or default_settings
    configure_logging(cfg.LOG_LEVEL, cfg.LOG_FILE_PATH)
    app = FastAPI(title="Rick and Morty API", version="1.0.0", lifespan=lifespan)
    app.state.settings = cfg
    app.state.store = store

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Middleware added first runs innermost.
    @app.middleware("http")
    async def _request_log(request: Request, call_next):
        t0 = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log.exception(
                "request.unhandled method=%s path=%s", request.method, request.url.path
            )
            response = JSONResponse(
                status_code=500, content={"error": "Internal server error"}
            )
        log.info(
            "request method=%s path=%s status=%d duration=%.3fs",
            request.method,
            request.url.path,
            response.status_code,
            time.perf_counter() - t0,
        )
        return response

    if cfg.METRICS_ENABLED:
        metrics.install(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=cfg.CORS_ALLOW_ORIGIN_REGEX,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )

    # Outermost, so CORS preflight responses get the header too
    @app.middleware("http")
    async def _private_network(request: Request, call_next):
        response = await call_next(request)
        response.headers["Access-Control-Allow-Private-Network"] = "true"
        return response

    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    """Serve ``app`` with uvicorn on the configured host/port."""
    uvicorn.run(
        app,
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_config=None,
        access_log=False,
    )
