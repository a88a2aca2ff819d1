"""Billing cadence inference and next-charge projection."""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import date

from .dates import add_days, add_months, add_years, days_between
from .merchants import MONTHLY_LIKELY, SINGLE_ANNUAL_MIN, YEARLY_OPTION_BRANDS
from .models import Frequency

# Inclusive day-gap windows per cadence.
WEEKLY_GAP = (6, 8)
MONTHLY_GAP = (26, 35)
ANNUAL_GAP = (360, 380)

ANNUALISH_RE = re.compile(
    r"\b(membership|annual|yearly|12\s*months|per\s*year|subscription|subscrip|plan|renewal)\b",
    re.IGNORECASE,
)


def infer_frequency(dates: Sequence[date]) -> Frequency:
    """Classify the median gap between consecutive charge dates.

    The median of an even number of gaps is the upper-middle value. Fewer
    than two dates yields ``"unknown"``.
    """

    if len(dates) < 2:
        return "unknown"
    ordered = sorted(dates)
    gaps = sorted(days_between(a, b) for a, b in zip(ordered, ordered[1:], strict=False))
    median = gaps[len(gaps) // 2]
    if WEEKLY_GAP[0] <= median <= WEEKLY_GAP[1]:
        return "weekly"
    if MONTHLY_GAP[0] <= median <= MONTHLY_GAP[1]:
        return "monthly"
    if ANNUAL_GAP[0] <= median <= ANNUAL_GAP[1]:
        return "annual"
    return "unknown"


def mentions_annualish(text: str) -> bool:
    return bool(ANNUALISH_RE.search(text))


def infer_singleton_frequency(
    *, name: str, description_blob: str, known: bool, count: int, cost: float
) -> Frequency:
    """Guess a cadence for a group that is not demonstrably recurring.

    - annual wording ("membership", "per year", "renewal" ...) → annual
    - one charge of a brand commonly sold yearly, at or above
      ``SINGLE_ANNUAL_MIN`` → annual
    - a known brand usually billed monthly → monthly
    """

    if mentions_annualish(description_blob):
        return "annual"
    if count == 1 and known and YEARLY_OPTION_BRANDS.search(name) and cost >= SINGLE_ANNUAL_MIN:
        return "annual"
    if known and MONTHLY_LIKELY.search(name):
        return "monthly"
    return "unknown"


def next_billing_date(last: date, frequency: Frequency) -> date | None:
    """Project the next charge after ``last``; ``None`` for unknown cadence."""

    if frequency == "monthly":
        return add_months(last, 1)
    if frequency == "weekly":
        return add_days(last, 7)
    if frequency == "annual":
        return add_years(last, 1)
    return None


__all__ = [
    "ANNUALISH_RE",
    "infer_frequency",
    "infer_singleton_frequency",
    "mentions_annualish",
    "next_billing_date",
]
