"""
Time authority. Sweepers that age matches out ask the database server for "now" so every
worker agrees on the clock regardless of host skew; the engine stamps rows with UTC now.
"""
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes (SQLite, some drivers) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def database_now(db: Session) -> datetime:
    """Current time according to the database server."""
    value = db.execute(select(func.now())).scalar()
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return as_utc(value)
