# src/taskbell/tasks/dates.py

"""
Due-date normalization.

User input comes in several shapes (date pickers, typed dates in either order,
a bare day number). Everything is reduced to one canonical YYYY-MM-DD string
before it is stored or used for scheduling.

Accepted grammars, first match wins:
1. YYYY-M-D
2. D/M/YYYY
3. D-M-YYYY
4. a bare 1-2 digit day of the current month (clamped into the month)
5. anything python-dateutil can read as a calendar date with an explicit day
   and month (the year defaults to the current one)

A string that matches one of 1-3 but does not name a real date (2024-02-30,
31-04-2024) is rejected outright; it never falls through to the later grammars.
"""

from __future__ import annotations

import calendar
import logging
import re
from datetime import date, datetime

from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)

_YMD_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_DMY_SLASH_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_DMY_DASH_RE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")
_DAY_ONLY_RE = re.compile(r"^\d{1,2}$")
_YEAR_FIRST_RE = re.compile(r"^\d{4}\D")


def _calendar_date(year: int, month: int, day: int) -> date | None:
    # date() refuses out-of-range fields instead of rolling over into the next month.
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _day_of_current_month(day: int, today: date) -> date:
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=min(max(day, 1), last_day))


def _fallback_parse(raw: str, today: date) -> date | None:
    """
    Let dateutil read the input, but only accept it when the text itself names
    a day and a month. The year may be omitted and then comes from today.

    dateutil fills missing fields from `default`, so the input is parsed
    against two defaults that differ in month and day. Input without its own
    day and month ("12:30", "monday", "Dec") lands on different dates.

    Numeric dates are read day first, like the D/M/YYYY grammars, unless they
    open with a four-digit year.
    """
    dayfirst = _YEAR_FIRST_RE.match(raw) is None
    results = set()
    for month, day in ((1, 1), (12, 28)):
        default = datetime(today.year, month, day)
        try:
            parsed = dateutil_parser.parse(raw, default=default, dayfirst=dayfirst, ignoretz=True)
        except (ValueError, OverflowError):
            return None
        results.add(parsed.date())
    if len(results) != 1:
        return None
    return results.pop()


def parse_due_date(raw: str | None, *, today: date | None = None) -> date | None:
    """Parse free-form due-date input into a date, or None if it is not a date."""
    s = (raw or "").strip()
    if not s:
        return None

    m = _YMD_RE.match(s)
    if m:
        return _calendar_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    for pattern in (_DMY_SLASH_RE, _DMY_DASH_RE):
        m = pattern.match(s)
        if m:
            return _calendar_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))

    today = today or datetime.now().date()

    if _DAY_ONLY_RE.match(s):
        return _day_of_current_month(int(s), today)

    parsed = _fallback_parse(s, today)
    if parsed is None:
        logger.debug("Unparseable due date input: %r", s)
    return parsed


def normalize_due_date(raw: str | None, *, today: date | None = None) -> str | None:
    """Canonical YYYY-MM-DD for the input, or None ("no due date"). Never raises."""
    parsed = parse_due_date(raw, today=today)
    return parsed.isoformat() if parsed is not None else None


def parse_canonical(value: str | None) -> date | None:
    """Read back a stored canonical date."""
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def is_canonical(value: str | None) -> bool:
    d = parse_canonical(value)
    return d is not None and d.isoformat() == value


def format_display(value: str | None) -> str:
    """DD/MM/YYYY for display; empty string when there is no due date."""
    d = parse_canonical(value)
    return d.strftime("%d/%m/%Y") if d is not None else ""
