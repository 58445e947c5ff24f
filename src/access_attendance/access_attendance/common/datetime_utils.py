from __future__ import annotations

import math
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError("Invalid date (YYYY-MM-DD)")


def load_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown time zone: {name}")


class FacilityClock:
    """Canonical facility-local time.

    Every occurrence date and weekday is derived from facility-local wall time.
    Aware datetimes are converted to the facility zone and returned naive; naive
    datetimes are assumed to already be facility-local.
    """

    def __init__(self, tz: tzinfo):
        self._tz = tz

    @classmethod
    def named(cls, name: str) -> "FacilityClock":
        return cls(load_timezone(name))

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()

    def localize(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value
        return value.astimezone(self._tz).replace(tzinfo=None)

    def parse(self, value: Optional[str]) -> datetime:
        """Parse an ISO-8601 timestamp; empty input means "now"."""
        if value is None or not str(value).strip():
            return self.now()
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationError("Invalid timestamp (ISO-8601)")
        return self.localize(parsed)


def round_minutes(delta: timedelta) -> int:
    """Whole minutes in ``delta``, halves rounded up."""
    return int(math.floor(delta.total_seconds() / 60 + 0.5))


def next_weekday_on_or_after(start: date, weekday: int) -> date:
    return start + timedelta(days=(int(weekday) - start.weekday()) % 7)
