"""
Bucket boundaries.

A day is [00:00:00.000, 23:59:59.999] local time; a month runs from the
first to the last millisecond of the calendar month. Both ends are
inclusive. The end is computed as "start of the next bucket minus 1 ms"
so days with a DST shift still get exact bounds.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Union

from expense_tracker.ledger.errors import ValidationError

ONE_MS = 1

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MS = timedelta(milliseconds=1)

Instant = Union[int, datetime]


def to_epoch_ms(moment: datetime, tz: tzinfo) -> int:
    """Epoch milliseconds; naive datetimes are taken as local to `tz`."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=tz)
    return (moment - _EPOCH) // _MS


def from_epoch_ms(ms: int, tz: tzinfo) -> datetime:
    return (_EPOCH + ms * _MS).astimezone(tz)


def as_epoch_ms(instant: Instant, tz: tzinfo) -> int:
    if isinstance(instant, datetime):
        return to_epoch_ms(instant, tz)
    return int(instant)


def _local_midnight_ms(day: date, tz: tzinfo) -> int:
    return to_epoch_ms(datetime.combine(day, time.min, tzinfo=tz), tz)


def day_bounds(day: date, tz: tzinfo) -> tuple[int, int]:
    """Inclusive [first ms, last ms] of `day` in `tz`."""
    start = _local_midnight_ms(day, tz)
    end = _local_midnight_ms(day + timedelta(days=1), tz) - ONE_MS
    return start, end


def month_bounds(year: int, month: int, tz: tzinfo) -> tuple[int, int]:
    """Inclusive [first ms, last ms] of a calendar month in `tz`."""
    if not 1 <= month <= 12:
        raise ValidationError.single(
            "month", "invalid_value", f"Month must be between 1 and 12, got {month}"
        )
    first = date(year, month, 1)
    next_first = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    start = _local_midnight_ms(first, tz)
    end = _local_midnight_ms(next_first, tz) - ONE_MS
    return start, end
