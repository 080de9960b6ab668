"""
Helpers for moving documents between MongoDB and the API.

BSON stores datetimes as naive UTC, so query bounds are built naive and
values read back are re-attached to UTC before they leave the service layer.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a naive datetime read back from the database."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def query_time(value: datetime) -> datetime:
    """Naive UTC datetime suitable for a range filter."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def since(delta: timedelta) -> datetime:
    """Naive UTC lower bound `delta` ago."""
    return query_time(utcnow() - delta)


def start_of_day() -> datetime:
    """Naive UTC midnight of the current day."""
    now = utcnow()
    return query_time(now.replace(hour=0, minute=0, second=0, microsecond=0))


def parse_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id string, returning None for anything malformed."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def _clean(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, dict):
        return {k: _clean(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_clean(v) for v in value]
    return value


def serialize(doc: Optional[dict], exclude: tuple[str, ...] = ()) -> Optional[dict]:
    """
    Convert a stored document into a JSON-ready dict.

    `_id` becomes `id`, nested ObjectIds become strings and datetimes
    are made timezone-aware.
    """
    if doc is None:
        return None
    out = {}
    for key, value in doc.items():
        if key in exclude:
            continue
        if key == "_id":
            out["id"] = str(value)
        else:
            out[key] = _clean(value)
    return out


def serialize_many(docs: list[dict], exclude: tuple[str, ...] = ()) -> list[dict]:
    return [serialize(d, exclude) for d in docs]
