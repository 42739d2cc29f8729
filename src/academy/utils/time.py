"""Timezone helpers.

SQLite drops tzinfo on round-trip, so every datetime read back from the
database goes through ``as_utc`` before it is compared or serialized.
"""

from datetime import UTC, datetime, tzinfo
from typing import Annotated
from zoneinfo import ZoneInfo

from pydantic import AfterValidator


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC and normalize aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def program_tz(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return UTC
    return ZoneInfo(name)


# Response-model datetime: naive values read back from SQLite are tagged as UTC
UTCDatetime = Annotated[datetime, AfterValidator(as_utc)]
