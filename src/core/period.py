"""
Billing period calculation in the fixed UTC+8 civil calendar.
"""

from datetime import datetime, timedelta, timezone

from core.config import BILLING_UTC_OFFSET_HOURS
from core.errors import InvalidArgument
from models.events import BillingWindow

BILLING_TZ = timezone(timedelta(hours=BILLING_UTC_OFFSET_HOURS), name="UTC+08:00")


def _validate(year: int, month: int) -> None:
    if not isinstance(month, int) or not 1 <= month <= 12:
        raise InvalidArgument(f"Month must be between 1 and 12, got {month!r}")
    if not isinstance(year, int) or not 1 <= year < 9999:
        raise InvalidArgument(f"Year out of range: {year!r}")


def month_start(year: int, month: int) -> datetime:
    """First instant of the civil month at UTC+8."""
    _validate(year, month)
    return datetime(year, month, 1, tzinfo=BILLING_TZ)


def month_window(year: int, month: int) -> BillingWindow:
    """
    Billing window for one civil month at UTC+8.

    The end is the last whole second of the month, one second before the
    next month starts.
    """
    start = month_start(year, month)
    if month == 12:
        next_start = datetime(year + 1, 1, 1, tzinfo=BILLING_TZ)
    else:
        next_start = datetime(year, month + 1, 1, tzinfo=BILLING_TZ)
    return BillingWindow(start=start, end=next_start - timedelta(seconds=1))


def to_billing_tz(instant: datetime) -> datetime:
    """Re-express an aware instant in UTC+8."""
    return instant.astimezone(BILLING_TZ)


def now_in_billing_tz() -> datetime:
    return datetime.now(timezone.utc).astimezone(BILLING_TZ)


def previous_month(now: datetime | None = None) -> tuple[int, int]:
    """
    (year, month) of the civil month before `now` at UTC+8.

    Used by the scheduled run, which bills the month that just ended.
    """
    local = to_billing_tz(now) if now else now_in_billing_tz()
    if local.month == 1:
        return local.year - 1, 12
    return local.year, local.month - 1


def resolve_command_year(month: int, now: datetime | None = None) -> int:
    """
    Year for a manual "計算N月" command.

    A month later than the current one has not happened yet this year, so it
    refers to last year.
    """
    if not 1 <= month <= 12:
        raise InvalidArgument(f"Month must be between 1 and 12, got {month!r}")
    local = to_billing_tz(now) if now else now_in_billing_tz()
    if month > local.month:
        return local.year - 1
    return local.year
