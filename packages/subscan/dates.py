"""Statement date parsing and calendar arithmetic.

:func:`parse_statement_date` accepts the notations seen in UK statement
exports and PDF text dumps, in priority order:

1. ``2025-08-03`` (ISO)
2. ``03/08/2025``, ``03-08-25`` (day first; two-digit years are ``20YY``)
3. ``ON 16-08-2025``
4. ``27th Jul 2025``, ``27 Jul``, ``27-Jul-25`` (missing year falls back to
   ``fallback_year`` or the current year)
5. ``2025/08/27``

Nothing here raises on bad input: a fragment that cannot be read as a real
calendar date yields ``None`` and callers skip the line.
"""

from __future__ import annotations

import calendar
import re
from collections.abc import Callable
from datetime import date, timedelta

MIN_YEAR = 1990
MAX_YEAR = 2099

_MONTHS: tuple[str, ...] = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)

_ISO_RE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
_DMY_RE = re.compile(r"\b(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})\b")
_ON_DMY_RE = re.compile(r"(?:^|\b)ON\s+(\d{1,2})-(\d{1,2})-(\d{2,4})\b", re.IGNORECASE)
# A trailing year must not be the integer part of an amount such as "10.99".
_DAY_MONTH_RE = re.compile(
    r"\b(\d{1,2})(?:st|nd|rd|th)?[\s\-]+([A-Za-z]{3,})\b(?:[\s\-]+(\d{2,4})\b(?![.,]\d))?"
)
_YMD_SLASH_RE = re.compile(r"\b(\d{4})/(\d{2})/(\d{2})\b")

_LEADING_DATE_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\s*\d{4}-\d{2}-\d{2}\b"),
    re.compile(r"^\s*\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}\b"),
    re.compile(r"^\s*ON\s+\d{1,2}-\d{1,2}-\d{2,4}\b", re.IGNORECASE),
    re.compile(r"^\s*\d{4}/\d{2}/\d{2}\b"),
)
_LEADING_DAY_MONTH_RE = re.compile(r"^\s*(\d{1,2})(?:st|nd|rd|th)?[\s\-]+([A-Za-z]{3,})\b")

_GREEDY_DAY_MONTH_RE = re.compile(r"^(\d{1,2})(?:st|nd|rd|th)?\s+([A-Za-z]{3,})\b")

# Removes the first date-looking token from a statement line.
_DATE_TOKEN_RE = re.compile(
    r"\b(?:\d{4}-\d{2}-\d{2}|\d{4}/\d{2}/\d{2}|\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}"
    r"|\d{1,2}(?:st|nd|rd|th)?[\s\-]+(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*"
    r"(?:[\s\-]+\d{2,4}(?![.,]\d))?)\b",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def month_index(name: str) -> int | None:
    """Return the 1-based month for a month name or abbreviation, else ``None``.

    ``"Jul"``, ``"July"``, ``"SEPT"`` are accepted; words that merely start with
    a month abbreviation (``"Marketing"``, ``"Decathlon"``) are not.
    """

    word = name.strip().lower()
    if len(word) < 3:
        return None
    for i, full in enumerate(_MONTHS, start=1):
        if full.startswith(word):
            return i
    return None


def _expand_year(raw: str | None, fallback_year: int | None) -> int:
    if raw is None:
        return fallback_year if fallback_year is not None else date.today().year
    y = int(raw)
    return y + 2000 if len(raw) <= 2 else y


def _safe_date(year: int, month: int, day: int) -> date | None:
    # Invalid calendar dates are rejected, never clamped.
    if not MIN_YEAR <= year <= MAX_YEAR:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Notation matchers (tried in order)
# ---------------------------------------------------------------------------


def _from_iso(text: str, _fallback_year: int | None) -> date | None:
    m = _ISO_RE.search(text)
    if not m:
        return None
    return _safe_date(int(m[1]), int(m[2]), int(m[3]))


def _from_dmy(text: str, fallback_year: int | None) -> date | None:
    m = _DMY_RE.search(text)
    if not m:
        return None
    return _safe_date(_expand_year(m[3], fallback_year), int(m[2]), int(m[1]))


def _from_on_marker(text: str, fallback_year: int | None) -> date | None:
    m = _ON_DMY_RE.search(text)
    if not m:
        return None
    return _safe_date(_expand_year(m[3], fallback_year), int(m[2]), int(m[1]))


def _from_day_month(text: str, fallback_year: int | None) -> date | None:
    for m in _DAY_MONTH_RE.finditer(text):
        month = month_index(m[2])
        if month is None:
            continue
        return _safe_date(_expand_year(m[3], fallback_year), month, int(m[1]))
    return None


def _from_ymd_slash(text: str, _fallback_year: int | None) -> date | None:
    m = _YMD_SLASH_RE.search(text)
    if not m:
        return None
    return _safe_date(int(m[1]), int(m[2]), int(m[3]))


_NOTATIONS: tuple[Callable[[str, int | None], date | None], ...] = (
    _from_iso,
    _from_dmy,
    _from_on_marker,
    _from_day_month,
    _from_ymd_slash,
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_statement_date(text: str, fallback_year: int | None = None) -> date | None:
    """Parse the first recognizable date in ``text``.

    Parameters
    ----------
    text:
        A cell value or a whole statement line.
    fallback_year:
        Year used for day-month forms without a year (``"27 Jul"``). Defaults
        to the current year.

    Returns
    -------
    datetime.date | None
        ``None`` when no notation yields a valid calendar date within
        ``MIN_YEAR..MAX_YEAR``.
    """

    if not text:
        return None
    for notation in _NOTATIONS:
        found = notation(text, fallback_year)
        if found is not None:
            return found
    return None


def starts_with_date(line: str) -> bool:
    """True when ``line`` begins with any supported date token."""

    if any(rx.match(line) for rx in _LEADING_DATE_RES):
        return True
    m = _LEADING_DAY_MONTH_RE.match(line)
    return bool(m and month_index(m[2]) is not None)


def looks_like_date(line: str) -> bool:
    """Looser anchor test used when merging noisy PDF text.

    Accepts a leading ``"27 Jul"`` style token, or a slash/dash date anywhere in
    the line.
    """

    m = _GREEDY_DAY_MONTH_RE.match(line)
    if m and month_index(m[2]) is not None:
        return True
    return bool(_DMY_RE.search(line))


def strip_date_token(text: str) -> str:
    """Remove the first date-looking token from ``text``."""

    return _DATE_TOKEN_RE.sub("", text, count=1)


def days_between(a: date, b: date) -> int:
    """Absolute number of days between two dates."""

    return abs((b - a).days)


def add_months(d: date, months: int) -> date:
    """Shift ``d`` by whole calendar months, snapping to month end.

    ``2025-01-31`` + 1 month is ``2025-02-28``; ``2024-01-31`` + 1 month is
    ``2024-02-29``.
    """

    total = d.year * 12 + (d.month - 1) + months
    year, month0 = divmod(total, 12)
    month = month0 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last_day))


def add_years(d: date, years: int) -> date:
    """Shift ``d`` by whole years (29 Feb maps to 28 Feb in common years)."""

    return add_months(d, years * 12)


def add_days(d: date, days: int) -> date:
    return d + timedelta(days=days)


__all__ = [
    "MAX_YEAR",
    "MIN_YEAR",
    "add_days",
    "add_months",
    "add_years",
    "days_between",
    "looks_like_date",
    "month_index",
    "parse_statement_date",
    "starts_with_date",
    "strip_date_token",
]
