"""Delivery date sequencing for subscription plans.

Pure functions only: the caller injects "today", so the same inputs always
produce the same dates.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

from src.api.middleware.error_handler import ValidationError

logger = logging.getLogger(__name__)

DAY_KEYS: tuple[str, ...] = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

# Named frequencies offered at checkout
NAMED_FREQUENCIES: dict[str, frozenset[int]] = {
    "mon-fri": frozenset(range(5)),
    "mon-sat": frozenset(range(6)),
    "mon-sun": frozenset(range(7)),
    "daily": frozenset(range(7)),
}

DEFAULT_CEILING_BUFFER_DAYS = 7


class PartialFulfillmentWarning(UserWarning):
    """Fewer delivery dates were produced than the plan promised.

    Logged, never raised: a paid order is fulfilled partially rather than
    rejected.
    """


@dataclass(frozen=True)
class DeliveryFrequency:
    """Set of weekdays (Monday=0) on which deliveries may happen."""

    weekdays: frozenset[int]

    @classmethod
    def every_day(cls) -> "DeliveryFrequency":
        return cls(NAMED_FREQUENCIES["daily"])

    @classmethod
    def parse(cls, value: str | Iterable[str] | None) -> "DeliveryFrequency":
        """Parse a checkout frequency.

        Accepts a named frequency ("mon-fri", "mon-sat", "mon-sun", "daily"),
        a comma-separated string of day keys ("mon,wed,fri"), or an iterable
        of day keys. None means every day.

        Raises:
            ValidationError: If the value names no valid weekday.
        """
        if value is None:
            return cls.every_day()

        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in NAMED_FREQUENCIES:
                return cls(NAMED_FREQUENCIES[normalized])
            keys = [part.strip().lower()[:3] for part in normalized.split(",") if part.strip()]
        else:
            keys = [str(part).strip().lower()[:3] for part in value if str(part).strip()]

        if not keys:
            raise ValidationError("Delivery frequency must name at least one weekday")

        unknown = sorted({key for key in keys if key not in DAY_KEYS})
        if unknown:
            raise ValidationError(f"Unknown delivery days: {', '.join(unknown)}")

        return cls(frozenset(DAY_KEYS.index(key) for key in keys))

    @property
    def days_per_week(self) -> int:
        return len(self.weekdays)

    @property
    def is_every_day(self) -> bool:
        return len(self.weekdays) == 7

    def accepts(self, day: date) -> bool:
        return day.weekday() in self.weekdays

    def to_mask(self) -> str:
        """Serialize as the comma-separated day keys stored on booking items."""
        return ",".join(DAY_KEYS[index] for index in sorted(self.weekdays))


@dataclass(frozen=True)
class DateSequence:
    """Result of sequencing: the dates plus what was asked for."""

    dates: tuple[date, ...]
    requested: int
    days_scanned: int

    @property
    def is_short(self) -> bool:
        return len(self.dates) < self.requested

    def __len__(self) -> int:
        return len(self.dates)

    def __iter__(self):
        return iter(self.dates)


def first_deliverable_date(start_date: date | None, today: date) -> date:
    """Clamp a requested start date to tomorrow at the earliest."""
    tomorrow = today + timedelta(days=1)
    if start_date is None or start_date < tomorrow:
        return tomorrow
    return start_date


def target_delivery_count(duration_days: int, frequency: DeliveryFrequency) -> int:
    """Number of delivery dates a plan of duration_days buys at this frequency.

    Every-day plans get one date per day. Filtered plans get the same count
    the checkout prices: weeks in the plan times delivery days per week,
    never more than duration_days and never fewer than one.
    """
    if frequency.is_every_day:
        return duration_days
    weekly = round(duration_days / 7 * frequency.days_per_week)
    return max(1, min(duration_days, weekly))


def sequence_delivery_dates(
    start_date: date | None,
    duration_days: int,
    frequency: DeliveryFrequency | None = None,
    *,
    today: date,
    target_count: int | None = None,
    ceiling_buffer_days: int = DEFAULT_CEILING_BUFFER_DAYS,
) -> DateSequence:
    """Generate ordered delivery dates for a plan.

    Walks forward one calendar day at a time from max(start_date, tomorrow)
    and keeps the days the frequency accepts, until target_count dates are
    collected. The scan is capped at duration_days * 3 + ceiling_buffer_days
    days; hitting the cap returns a short sequence instead of looping.

    Args:
        start_date: Requested first delivery date (None means tomorrow).
        duration_days: Plan duration; also the upper bound on dates returned.
        frequency: Weekday filter, every day when None.
        today: Current date, injected by the caller.
        target_count: Dates wanted; defaults to duration_days.
        ceiling_buffer_days: Extra days allowed in the scan ceiling.

    Returns:
        DateSequence: Dates in ascending order.

    Raises:
        ValidationError: If duration_days is not positive.
    """
    if duration_days < 1:
        raise ValidationError("Plan duration must be at least one day")

    frequency = frequency or DeliveryFrequency.every_day()
    requested = duration_days if target_count is None else max(0, min(target_count, duration_days))
    ceiling = duration_days * 3 + ceiling_buffer_days

    current = first_deliverable_date(start_date, today)
    dates: list[date] = []
    scanned = 0
    while len(dates) < requested and scanned < ceiling:
        if frequency.accepts(current):
            dates.append(current)
        current += timedelta(days=1)
        scanned += 1

    sequence = DateSequence(dates=tuple(dates), requested=requested, days_scanned=scanned)
    if sequence.is_short:
        message = (
            f"Sequenced {len(sequence)} of {requested} delivery dates "
            f"after scanning {scanned} days (weekdays={frequency.to_mask() or 'none'})"
        )
        logger.warning("%s: %s", PartialFulfillmentWarning.__name__, message)
    return sequence
