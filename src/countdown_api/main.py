import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth import admin_gate
from .errors import NotFoundError, StorageReadError, StorageWriteError
from .routers import admin as admin_router
from .routers import countdowns as countdowns_router
from .routers import session as session_router
from .settings import get_settings
from .store import CountdownStore, close_store, get_store

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "countdowns", "description": "Public countdown board and read-only listing."},
    {"name": "session", "description": "Shared-secret admin login and logout."},
    {"name": "admin", "description": "Create, replace and delete countdowns."},
]

_settings = get_settings()

logging.basicConfig(
    level=_settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = get_store()
    await asyncio.to_thread(store.initialize)
    logger.info("Serving countdowns from %s (auth %s)", store.path,
                "enabled" if get_settings().auth_enabled else "disabled")
    yield
    # Close the store opened above even if the configured path changed since
    await asyncio.to_thread(close_store, store)


app = FastAPI(
    title="Countdown Backend",
    description="Backend API service for live countdowns backed by a durable JSON store.",
    version="0.1.0",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)

# Registered before CORS so CORS stays the outermost middleware
app.middleware("http")(admin_gate)

# Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handlers for consistent JSON on validation and storage errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": _jsonable_errors(exc),
        },
    )


def _jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold the raw ValueError raised by a validator
    errors = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        errors.append(err)
    return errors


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Countdown not found"})


@app.exception_handler(StorageReadError)
async def storage_read_handler(request: Request, exc: StorageReadError) -> JSONResponse:
    logger.error("Storage read failed for %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"error": "StorageReadError", "message": "Countdown data is unavailable"},
    )


@app.exception_handler(StorageWriteError)
async def storage_write_handler(request: Request, exc: StorageWriteError) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": "StorageWriteError", "message": "Failed to save countdowns"},
    )


# PUBLIC_INTERFACE
@app.get("/api/health", summary="Health Check", tags=["health"])
def health_check(store: CountdownStore = Depends(get_store)):
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health and whether the data file
        can be read. An unreadable file is reported here even though the
        board degrades to an empty list.
    """
    try:
        store.load()
        storage = "ok"
    except StorageReadError:
        storage = "unreadable"
    return {"message": "Healthy", "storage": storage}


# Include routers
app.include_router(countdowns_router.router)
app.include_router(session_router.router)
app.include_router(admin_router.router)
