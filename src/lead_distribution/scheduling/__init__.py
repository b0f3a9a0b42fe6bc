"""Availability windows and check-in gating."""

from .availability import (
    AvailabilityCalculator,
    DayOfWeek,
    is_available,
    parse_day,
    within_business_hours,
)

__all__ = [
    "AvailabilityCalculator",
    "DayOfWeek",
    "is_available",
    "parse_day",
    "within_business_hours",
]
