from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
import re

from .errors import InvalidDate
from .model import OPEN_STATUSES, TaskStatus


DEFAULT_SOON_DAYS = 3

_ABSOLUTE_RE = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})$")
_RELATIVE_RE = re.compile(r"^(?P<count>\d+)\s+(?P<unit>days?|weeks?|months?)$", re.IGNORECASE)
_KEYWORDS = {"today": 0, "tomorrow": 1}


def add_months(start: date, months: int) -> date:
    """Calendar month addition, clamping to the last day of the target month."""

    index = start.month - 1 + months
    year = start.year + index // 12
    month = index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def resolve_due_date(raw: str, *, now: datetime | date | None = None) -> date:
    """Turn user input into a calendar date.

    Accepts `YYYY-MM-DD`, `<N> day(s)|week(s)|month(s)` with N >= 1, and the
    keywords `today` / `tomorrow`. Relative forms count from `now`.
    """

    text = (raw or "").strip()
    if not text:
        raise InvalidDate("empty date")

    absolute = _ABSOLUTE_RE.match(text)
    if absolute:
        try:
            return date(int(absolute.group("year")), int(absolute.group("month")), int(absolute.group("day")))
        except ValueError as exc:
            raise InvalidDate(f"no such date: {text}") from exc

    today = _reference_day(now)
    lowered = text.lower()
    if lowered in _KEYWORDS:
        return today + timedelta(days=_KEYWORDS[lowered])

    relative = _RELATIVE_RE.match(text)
    if not relative:
        raise InvalidDate(f"unrecognized date: {text}")
    count = int(relative.group("count"))
    if count < 1:
        raise InvalidDate("count must be at least 1")
    unit = relative.group("unit").lower().rstrip("s")
    try:
        if unit == "day":
            return today + timedelta(days=count)
        if unit == "week":
            return today + timedelta(weeks=count)
        return add_months(today, count)
    except (OverflowError, ValueError) as exc:
        raise InvalidDate(f"date out of range: {text}") from exc


def _reference_day(now: datetime | date | None) -> date:
    if now is None:
        return date.today()
    if isinstance(now, datetime):
        return now.date()
    return now


@dataclass(frozen=True)
class DueCountdown:
    days: int
    tier: str
    label: str


def due_countdown(
    due: date | None,
    today: date,
    status: TaskStatus | None,
    *,
    soon_days: int = DEFAULT_SOON_DAYS,
) -> DueCountdown | None:
    if due is None or status not in OPEN_STATUSES:
        return None
    days = (due - today).days
    if days < 0:
        overdue = abs(days)
        return DueCountdown(days, "overdue", f"{overdue} day{'s' if overdue != 1 else ''} over")
    if days == 0:
        return DueCountdown(days, "today", "due today")
    if days == 1:
        tier = "tomorrow"
    elif days <= soon_days:
        tier = "soon"
    elif days < 7:
        tier = "week"
    else:
        tier = "later"
    return DueCountdown(days, tier, f"{days} day{'s' if days != 1 else ''} left")
