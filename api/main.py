import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.middleware import SlowAPIMiddleware
from slowapi.errors import RateLimitExceeded

from common.core.config import settings
from common.core.constants import Environment
from common.core.exceptions import (
    AppException,
    ErrorKind,
    NoPaymentMethod,
    QuotaExceeded,
)
from api.v1.routes.router import api_router
from common.db.session import init_db
from common.providers.locking.factory import get_lock_provider
from common.providers.rate_limiter.limiter import limiter

# Initialize Axiom OpenTelemetry exporter (must be first)
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.asgi import OpenTelemetryMiddleware
from common.core.otel_axiom_exporter import (
    _initialize_telemetry,
    get_logger,
)  # noqa


_initialize_telemetry()
# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Get logger
logger = get_logger(__name__)

STATUS_BY_KIND = {
    ErrorKind.DOMAIN: 400,
    ErrorKind.INFRASTRUCTURE: 503,
    ErrorKind.SECURITY: 400,
    ErrorKind.PARTIAL_STATE: 502,
}
STATUS_BY_EXCEPTION = {
    QuotaExceeded: 429,
    NoPaymentMethod: 402,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting application...")
    await init_db()
    logger.info("Database initialized")
    yield
    # Shutdown
    logger.info("Shutting down application...")
    lock_provider = get_lock_provider()
    if hasattr(lock_provider, "disconnect"):
        await lock_provider.disconnect()


# Only expose OpenAPI docs in local development
docs_url = "/docs" if settings.environment == Environment.LOCAL else None
redoc_url = "/redoc" if settings.environment == Environment.LOCAL else None
openapi_url = "/openapi.json" if settings.environment == Environment.LOCAL else None

app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url=docs_url,
    redoc_url=redoc_url,
    openapi_url=openapi_url,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    status_code = next(
        (
            code
            for exc_type, code in STATUS_BY_EXCEPTION.items()
            if isinstance(exc, exc_type)
        ),
        STATUS_BY_KIND[exc.kind],
    )
    log = logger.warning if exc.kind == ErrorKind.DOMAIN else logger.error
    log(
        f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}",
        extra={"error_kind": exc.kind.value, "status_code": status_code},
    )
    # Internal detail stays in the log; clients only see the public message
    return JSONResponse(status_code=status_code, content={"error": exc.public_message})


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "detail": jsonable_encoder(exc.errors())},
    )


# Instrument FastAPI with OpenTelemetry
FastAPIInstrumentor.instrument_app(app)
# Add ASGI middleware for context propagation
app.add_middleware(OpenTelemetryMiddleware)

# Add gzip compression middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(api_router, prefix="/api/v1")


# Internal health endpoint for k8s probes - not under /api/v1 to avoid external spam
@app.get("/healthz", include_in_schema=False)
async def healthz():
    return {"status": "ok"}
