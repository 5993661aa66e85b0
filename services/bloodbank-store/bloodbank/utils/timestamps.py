from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Any:
    """Turn an ISO-8601 string back into a datetime; anything else passes through."""
    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value))
        except ValueError:
            return value
    return value


def encode_timestamp(value: Any) -> str:
    """JSON ``default`` hook for datetimes."""
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
