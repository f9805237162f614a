"""
Calendar stepping for recurring templates.

Weekly cadences are fixed day counts; monthly, quarterly and annual cadences
are calendar-aware. Month-based steps keep the day-of-month of the template's
start date and clamp it to the length of the target month, so a template
started on Jan 31 runs Feb 29 (leap year), Mar 31, Apr 30, ...
"""
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

ONE_TIME = "one_time"

_WEEK_STEPS: dict[str, int] = {
    "weekly":   1,
    "biweekly": 2,
}

_MONTH_STEPS: dict[str, int] = {
    "monthly":   1,
    "quarterly": 3,
    "annual":    12,
}

FREQUENCIES = tuple(_WEEK_STEPS) + tuple(_MONTH_STEPS) + (ONE_TIME,)


def next_occurrence(current: date, frequency: str, anchor_day: int | None = None) -> date | None:
    """
    Return the occurrence after ``current`` for ``frequency``.

    ``anchor_day`` is the day-of-month to aim for on month-based steps
    (normally the start date's day); it defaults to ``current.day``.
    Returns None for one-time templates, which never advance.
    Raises ValueError for an unknown frequency.
    """
    if frequency == ONE_TIME:
        return None
    if frequency in _WEEK_STEPS:
        return current + timedelta(weeks=_WEEK_STEPS[frequency])
    if frequency in _MONTH_STEPS:
        # relativedelta clamps day=31 to the last day of shorter months
        day = anchor_day if anchor_day is not None else current.day
        return current + relativedelta(months=_MONTH_STEPS[frequency], day=day)
    raise ValueError(f"Unknown frequency: {frequency!r}")


def occurs_in_month(start: date, end: date | None, year: int, month: int) -> bool:
    """True if a template running [start, end] overlaps the given calendar month."""
    month_start = date(year, month, 1)
    month_end = month_start + relativedelta(months=1, days=-1)
    if start > month_end:
        return False
    return end is None or end >= month_start
