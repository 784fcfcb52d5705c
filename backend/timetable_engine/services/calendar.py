from __future__ import annotations

from datetime import date, timedelta

# date.weekday() order
DAY_ORDER = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def weekday_name(value: date) -> str:
    return DAY_ORDER[value.weekday()]


def week_dates(reference: date, week_days: list[str]) -> dict[str, date]:
    """Map each working day of ``reference``'s week to its calendar date.

    The week starts on ``week_days[0]``; a reference date outside the working
    days still maps to the week it falls in.
    """
    first = DAY_ORDER.index(week_days[0])
    start = reference - timedelta(days=(reference.weekday() - first) % 7)
    return {day: start + timedelta(days=(DAY_ORDER.index(day) - first) % 7) for day in week_days}
