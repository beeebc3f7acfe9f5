# backend/marketplace/main.py

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError, TimeoutError as SA_TimeoutError

from .api import api_booking, api_provider, api_review, api_service, api_user, auth
from .core.config import settings
from .core.observability import setup_logging, setup_tracer
from .database import Base, engine
from .utils.redis_cache import close_redis_client
from .utils.status_logger import register_status_listeners

setup_logging()
logger = logging.getLogger(__name__)

register_status_listeners()

app = FastAPI(title="Services Marketplace API", default_response_class=ORJSONResponse)

setup_tracer(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    # Browsers reject credentialed responses with a wildcard origin
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("CORS origins set to: %s", settings.CORS_ORIGINS)


@app.middleware("http")
async def catch_exceptions(request: Request, call_next):
    """Return JSON for errors that escape the route handlers."""
    try:
        return await call_next(request)
    except SA_TimeoutError as exc:  # pool exhausted -> 503 so clients back off
        logger.error("DB timeout at %s: %s", request.url.path, str(exc))
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Database busy, please retry"},
            headers={"Retry-After": "1"},
        )
    except Exception as exc:
        logger.exception("Unhandled error at %s: %s", request.url.path, exc)
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error"},
        )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return validation errors as ``{detail: {message, field_errors}}`` and log them."""
    field_errors = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field_errors[".".join(loc) or "body"] = err.get("msg", "invalid")
    logger.warning("Validation error at %s: %s", request.url.path, field_errors)
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": {"message": "Validation failed", "field_errors": field_errors}},
    )


@app.on_event("startup")
def create_tables() -> None:
    # Dev convenience; production schemas are managed by Alembic
    Base.metadata.create_all(bind=engine)


@app.on_event("shutdown")
def shutdown_redis() -> None:
    close_redis_client()


@app.get("/healthz", tags=["health"])
def healthz():
    """Liveness plus a database round trip."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Health check failed: %s", exc)
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "error"},
        )
    return {"status": "ok"}


api_prefix = settings.API_PREFIX

app.include_router(auth.router, prefix=f"{api_prefix}/auth")
app.include_router(api_booking.router, prefix=f"{api_prefix}/bookings")
app.include_router(api_service.router, prefix=f"{api_prefix}/services")
app.include_router(api_review.router, prefix=f"{api_prefix}/reviews")
app.include_router(api_provider.router, prefix=f"{api_prefix}/providers")
app.include_router(api_provider.me_router, prefix=f"{api_prefix}/provider")
app.include_router(api_user.router, prefix=f"{api_prefix}/user")
