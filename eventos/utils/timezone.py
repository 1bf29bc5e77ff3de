"""
Wall-clock to instant conversion for event schedules.

Organizers type dates as local wall-clock values for the faculty's region.
They are stored as UTC instants using the IANA database (zoneinfo + tzdata).
"""
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from eventos.core.config import settings
from eventos.core.exceptions import ValidationError


@lru_cache(maxsize=16)
def get_zone(zone_id: str) -> ZoneInfo:
    try:
        return ZoneInfo(zone_id)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone '{zone_id}'", field="timezone")


def local_wall_clock_to_instant(civil: Union[datetime, str], zone_id: Optional[str] = None) -> datetime:
    """
    Convert a civil date-time entered in `zone_id` into an aware UTC datetime.

    - Values that already carry an offset are converted directly.
    - Ambiguous times (clocks set back) resolve to the first occurrence (fold=0).
    - Non-existent times (clocks set forward) keep the pre-transition offset,
      which lands them after the gap, e.g. 02:30 on the spring-forward day
      becomes 03:30 local.
    """
    if isinstance(civil, str):
        try:
            civil = datetime.fromisoformat(civil.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid date-time '{civil}'", field="date")

    if civil.tzinfo is not None:
        return civil.astimezone(timezone.utc)

    zone = get_zone(zone_id or settings.EVENT_TIMEZONE)
    return civil.replace(tzinfo=zone, fold=0).astimezone(timezone.utc)


def instant_to_local(instant: datetime, zone_id: Optional[str] = None) -> datetime:
    """Render a stored instant in the event timezone"""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(get_zone(zone_id or settings.EVENT_TIMEZONE))


def format_local(instant: Optional[datetime], zone_id: Optional[str] = None) -> str:
    """Human format used in notification bodies"""
    if instant is None:
        return "-"
    return instant_to_local(instant, zone_id).strftime("%d/%m/%Y %H:%M")
