import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import DataIntegrityError
from .routers import todos as todos_router
from .service import TodoServiceRegistry
from .settings import configure_logging, get_settings, request_id_var
from .store import get_kv_store
from .utils import describe_validation_errors, error_envelope

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "Per-user todos stored in a key-value store, with filtering, search and statistics.",
    },
]

app = FastAPI(
    title="KV Todo API",
    description="Per-user todo list API backed by a plain key-value store.",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

_settings = get_settings()
configure_logging(_settings)

# Composition root: one store handle for the process, one service per namespace
app.state.settings = _settings
app.state.registry = TodoServiceRegistry(get_kv_store(_settings))

# Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """
    Tag each request with an id (reusing X-Request-ID when the client sends
    one), expose it to log records, and log the request line and status.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
        logger.info("%s %s -> %s", request.method, request.url, response.status_code)
        response.headers["X-Request-ID"] = request_id
        return response
    finally:
        request_id_var.reset(token)


# Global exception handlers: every failure uses the {success, error} envelope
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Report request validation failures (empty task, bad enum, malformed body)
    as 400 with a flattened message.
    """
    return JSONResponse(
        status_code=400,
        content=error_envelope(describe_validation_errors(exc.errors())),
    )


@app.exception_handler(DataIntegrityError)
async def data_integrity_handler(request: Request, exc: DataIntegrityError) -> JSONResponse:
    logger.error("Data integrity failure on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content=error_envelope("Stored data is corrupt"))


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
@app.get("/h", summary="Health Check", tags=["health"], include_in_schema=False)
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"message": "Todo API is running!", "backend": _settings.kv_backend}


# Include routers
app.include_router(todos_router.router)
