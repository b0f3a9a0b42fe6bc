"""Member availability from check-in state and time windows."""

import logging
from datetime import datetime, time
from enum import Enum
from typing import Optional, Any, Set

from ..core.models import Member, CheckinWindow, AdvancedConfig

logger = logging.getLogger(__name__)


class DayOfWeek(Enum):
    """Days of the week, numbered like ``datetime.weekday()``."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


DAY_NAMES = {
    "mon": 0, "monday": 0, "seg": 0, "segunda": 0,
    "tue": 1, "tuesday": 1, "ter": 1, "terca": 1, "terça": 1,
    "wed": 2, "wednesday": 2, "qua": 2, "quarta": 2,
    "thu": 3, "thursday": 3, "qui": 3, "quinta": 3,
    "fri": 4, "friday": 4, "sex": 4, "sexta": 4,
    "sat": 5, "saturday": 5, "sab": 5, "sáb": 5, "sabado": 5, "sábado": 5,
    "sun": 6, "sunday": 6, "dom": 6, "domingo": 6,
}


def parse_day(value: Any) -> int:
    """Return the weekday number for a day entry. Raises ValueError."""
    if isinstance(value, DayOfWeek):
        return value.value
    if isinstance(value, bool):
        raise ValueError(f"Invalid day: {value!r}")
    if isinstance(value, int):
        if 0 <= value <= 6:
            return value
        raise ValueError(f"Invalid day: {value!r}")
    day = DAY_NAMES.get(str(value).strip().lower())
    if day is None:
        raise ValueError(f"Invalid day: {value!r}")
    return day


def parse_days(values) -> Set[int]:
    return {parse_day(v) for v in values}


def parse_minutes(value: str) -> int:
    """Minutes since midnight for an ``HH:MM`` or ``HH:MM:SS`` string."""
    parsed = time.fromisoformat(str(value).strip())
    return parsed.hour * 60 + parsed.minute


def minute_of_day(now: datetime) -> int:
    return now.hour * 60 + now.minute


def within_window(now: datetime, start: str, end: str) -> bool:
    """Inclusive minute comparison. Raises ValueError on bad times."""
    current = minute_of_day(now)
    return parse_minutes(start) <= current <= parse_minutes(end)


def within_business_hours(config: AdvancedConfig, now: datetime) -> bool:
    """True when business hours are unset or ``now`` falls inside them."""
    if not config.business_hours_start or not config.business_hours_end:
        return True
    try:
        return within_window(now, config.business_hours_start, config.business_hours_end)
    except (TypeError, ValueError) as e:
        logger.warning(f"Unparseable business hours: {e}")
        return False


class AvailabilityCalculator:
    """Decide whether a member may receive leads right now."""

    def is_available(
        self,
        member: Member,
        window: CheckinWindow,
        now: Optional[datetime] = None
    ) -> bool:
        """Short-circuit checks: active, window, check-in."""
        if not member.active:
            return False

        if not window.require_checkin and not window.enabled:
            return True

        now = now or datetime.now()

        if window.enabled:
            try:
                days = parse_days(window.days_of_week)
                if now.weekday() not in days:
                    return False
                if not within_window(now, window.start_time, window.end_time):
                    return False
            except (TypeError, ValueError) as e:
                logger.warning(f"Unparseable check-in window, member {member.id} unavailable: {e}")
                return False

        if window.require_checkin and not member.available_now:
            return False

        return True


_default_calculator = AvailabilityCalculator()


def is_available(member: Member, window: CheckinWindow, now: Optional[datetime] = None) -> bool:
    return _default_calculator.is_available(member, window, now)
