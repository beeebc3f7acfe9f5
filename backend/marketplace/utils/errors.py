from typing import Dict, Optional
from fastapi import HTTPException, status
from fastapi.responses import ORJSONResponse
import logging

from ..errors import Forbidden, MarketplaceError, NotFound, TransientStoreError

logger = logging.getLogger(__name__)


def error_response(
    message: str,
    field_errors: Dict[str, str],
    code: int = status.HTTP_422_UNPROCESSABLE_ENTITY,
) -> HTTPException:
    """Return an HTTPException with a consistent structure and log details."""
    logger.error("%s %s", message, field_errors)
    detail = {"message": message, "field_errors": field_errors}
    return HTTPException(status_code=code, detail=detail)


def conflict_response(message: str) -> ORJSONResponse:
    """409 body for slot conflicts; the ``conflict`` flag lets clients offer another time."""
    logger.info("Slot conflict: %s", message)
    return ORJSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": message, "conflict": True},
    )


_STATUS_FOR = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (TransientStoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def domain_error_response(exc: MarketplaceError, field: Optional[str] = None) -> HTTPException:
    """Translate a domain error into the matching ``error_response``."""
    code = status.HTTP_400_BAD_REQUEST
    for exc_type, mapped in _STATUS_FOR:
        if isinstance(exc, exc_type):
            code = mapped
            break
    field_errors = {field: type(exc).__name__.lower()} if field else {}
    http_exc = error_response(exc.message, field_errors, code)
    if code == status.HTTP_503_SERVICE_UNAVAILABLE:
        http_exc.headers = {"Retry-After": "1"}
    return http_exc
