from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime
from sqlmodel import Field


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def timestamp_field() -> Any:
    """A created/updated column stored as TIMESTAMP WITH TIME ZONE."""
    return Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
