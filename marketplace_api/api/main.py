from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator
from uuid import uuid4

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace_api.core.deps import require_tenant_scope
from marketplace_api.core.errors import MarketplaceError
from marketplace_api.core.logging import configure_logging, correlation_id_var, tenant_id_var
from marketplace_api.core.settings import get_app_settings
from marketplace_api.core.tenancy import TenantScope
from marketplace_api.db.run_migrations import main as run_alembic
from marketplace_api.db.seed import seed_all
from marketplace_api.db.session import dispose_engine
from marketplace_api.schemas.common import ErrorInfo, ErrorResponse, MessageResponse, TenantEcho

from marketplace_api.api.routes.categories import router as categories_router
from marketplace_api.api.routes.onboarding import router as onboarding_router
from marketplace_api.api.routes.properties import router as properties_router

settings = get_app_settings()
configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


async def _prepare_database() -> None:
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            # env.py runs its own event loop
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
            logger.info("Database schema is at head")
        except Exception:
            # the service still starts; requests fail until the database is reachable
            logger.exception("Migrations failed")

    if settings.AUTO_SEED:
        try:
            await seed_all()
        except Exception:
            logger.exception("Seeding failed")


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    await _prepare_database()
    yield
    await dispose_engine()


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Health", "description": "Liveness and tenant resolution probes."},
        {"name": "Tenants", "description": "Tenant onboarding and activation."},
        {"name": "Categories", "description": "Listing categories and their attribute schemas."},
        {"name": "Properties", "description": "Property listings and search."},
    ],
)

# browsers reject credentialed requests to a wildcard origin
allow_credentials = settings.CORS_ALLOW_CREDENTIALS and settings.CORS_ORIGINS != ["*"]
if settings.CORS_ALLOW_CREDENTIALS and not allow_credentials:
    logger.warning("CORS credentials disabled: CORS_ORIGINS is '*'")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Bind a correlation id to the request and echo it in the response headers.

    The tenant log field starts empty and is filled by the tenant scope
    dependency. Both context variables are reset however the request ends.
    """
    corr = request.headers.get(CORRELATION_HEADER) or request.headers.get("X-Request-ID") or str(uuid4())
    request.state.correlation_id = corr
    request.state.tenant_id = None
    corr_token = correlation_id_var.set(corr)
    tenant_token = tenant_id_var.set(None)
    try:
        logger.info("%s %s", request.method, request.url.path)
        response = await call_next(request)
    finally:
        tenant_id_var.reset(tenant_token)
        correlation_id_var.reset(corr_token)
    response.headers[CORRELATION_HEADER] = corr
    return response


def error_response(request: Request, status_code: int, error_type: str, message: str, details: Any = None) -> JSONResponse:
    """Render the ErrorResponse envelope for the current request."""
    body = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details or None),
        correlation_id=getattr(request.state, "correlation_id", None),
        tenant_id=getattr(request.state, "tenant_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    logger.info("Rejected with %s: %s", exc.error_type, exc.message)
    return error_response(request, exc.status_code, exc.error_type, exc.message, exc.details)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc.detail, str):
        return error_response(request, exc.status_code, "http_error", exc.detail)
    return error_response(request, exc.status_code, "http_error", "HTTP error", exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # validator errors carry the raised exception in ctx
    return error_response(request, 422, "validation_error", "Request validation failed", jsonable_encoder(exc.errors()))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Log the traceback; the client only sees a generic internal_error."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, 500, "internal_error", "An unexpected error occurred")


api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get("/health", response_model=MessageResponse, summary="Liveness probe", tags=["Health"])
def health_check() -> MessageResponse:
    return MessageResponse(message="Healthy")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health/tenant",
    response_model=TenantEcho,
    summary="Tenant resolution probe",
    description="Echoes the tenant resolved from the bearer token or tenant header; 400 when none resolves.",
    tags=["Health"],
)
async def tenant_health_echo(scope: TenantScope = Depends(require_tenant_scope)) -> TenantEcho:
    return TenantEcho(tenant_id=scope.require())


api_v1.include_router(onboarding_router)
api_v1.include_router(categories_router)
api_v1.include_router(properties_router)
app.include_router(api_v1)
