"""
Local business-hours window for time-sensitive message classes.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from .clock import ensure_utc

logger = structlog.get_logger(__name__)

DEFAULT_ZONE = "Asia/Jerusalem"
DEFAULT_START_HOUR = 8
DEFAULT_END_HOUR = 20


def resolve_zone(name: str) -> ZoneInfo:
    """Load an IANA zone, raising ValueError for unknown names."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown time zone '{name}'") from e


def _check_hours(start_hour: int, end_hour: int) -> None:
    if not 0 <= start_hour < end_hour <= 24:
        raise ValueError(
            f"Business hours must satisfy 0 <= start < end <= 24, got {start_hour}-{end_hour}"
        )


class BusinessHoursPolicy:
    """
    Checks whether an instant falls in ``[start_hour, end_hour)`` local time.

    Stateless apart from its fixed zone and hours.
    """

    def __init__(
        self,
        zone: str = DEFAULT_ZONE,
        start_hour: int = DEFAULT_START_HOUR,
        end_hour: int = DEFAULT_END_HOUR,
    ) -> None:
        _check_hours(start_hour, end_hour)
        self.zone_name = zone
        self.zone = resolve_zone(zone)
        self.start_hour = start_hour
        self.end_hour = end_hour

    def is_within_window(
        self,
        now_utc: datetime,
        zone: Optional[str] = None,
        start_hour: Optional[int] = None,
        end_hour: Optional[int] = None,
    ) -> bool:
        """
        Return True iff ``now_utc`` converted to the zone's wall clock has
        ``start_hour <= hour < end_hour``. Naive datetimes are read as UTC.
        """
        tz = resolve_zone(zone) if zone is not None else self.zone
        start = self.start_hour if start_hour is None else start_hour
        end = self.end_hour if end_hour is None else end_hour
        _check_hours(start, end)

        local_hour = ensure_utc(now_utc).astimezone(tz).hour
        return start <= local_hour < end

    def next_window_start(self, now_utc: datetime) -> datetime:
        """
        Earliest UTC instant at or after ``now_utc`` that is inside the window.

        Used to reschedule messages that were held back outside business hours.
        """
        now_utc = ensure_utc(now_utc)
        if self.is_within_window(now_utc):
            return now_utc

        local = now_utc.astimezone(self.zone)
        opening_day = local.date()
        if local.hour >= self.end_hour:
            opening_day = opening_day + timedelta(days=1)

        opening = datetime.combine(opening_day, time(hour=self.start_hour), tzinfo=self.zone)
        return opening.astimezone(timezone.utc)
