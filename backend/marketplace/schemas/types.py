from datetime import datetime, timedelta, timezone
from typing import Annotated

from pydantic import AfterValidator, HttpUrl, TypeAdapter, ValidationError

# Largest id or count the INTEGER columns accept on every supported backend.
INT32_MAX = 2**31 - 1

_http_url = TypeAdapter(HttpUrl)


def _as_utc(value: datetime) -> datetime:
    """Attach UTC to the naive timestamps read back from the database."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an incoming instant to the naive-UTC storage convention."""
    if value.tzinfo is None:
        return value
    try:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    except OverflowError:
        raise ValueError("datetime is out of range") from None


def require_window_in_range(value: datetime, margin: timedelta) -> datetime:
    """Reject instants whose ``[value - margin, value + margin]`` cannot be represented."""
    if value - datetime.min < margin or datetime.max - value < margin:
        raise ValueError("datetime is out of range")
    return value


def _check_image_url(value: str) -> str:
    value = value.strip()
    if value.startswith("data:image/"):
        return value
    try:
        _http_url.validate_python(value)
    except ValidationError:
        raise ValueError("must be an http(s) URL or a data:image URL") from None
    return value


# Response-side datetime that always serializes with an explicit UTC offset.
UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]

# Stored as the plain string the client sent once it is known to be a URL.
ImageURL = Annotated[str, AfterValidator(_check_image_url)]
