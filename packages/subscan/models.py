"""Data models and type aliases for ``subscan``.

Two records cross module boundaries:

- :class:`RawTransaction`: one ledger entry as extracted from a statement. A
  frozen dataclass because it is created in bulk by the parsers and only ever
  read afterwards.
- :class:`ParsedSubscription`: a detected recurring charge. A validated
  pydantic model because it is the hand-off point to the surrounding
  application (persistence, UI) and carries invariants that must hold for
  every instance.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

Frequency = Literal["monthly", "weekly", "annual", "unknown"]

CATEGORIES: tuple[str, ...] = (
    "Entertainment",
    "Music",
    "Video",
    "Software",
    "Cloud Storage",
    "Productivity",
    "Fitness",
    "Telecom",
    "Other",
)

BASE_CURRENCY = "GBP"


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawTransaction:
    """A single ledger entry in canonical form.

    ``amount`` is signed: negative values are debits (money leaving the
    account), positive values are credits. ``currency`` and
    ``exchange_rate`` are informational; when a foreign-currency line carries a
    rate, the parsers already convert ``amount`` to the base currency.
    """

    date: date
    description: str
    amount: float
    currency: str = BASE_CURRENCY
    exchange_rate: float | None = None

    @property
    def is_debit(self) -> bool:
        return self.amount < 0


type Transactions = Iterable[RawTransaction]
"""Any iterable of :class:`RawTransaction` records."""


class FxInfo(NamedTuple):
    """Foreign-exchange details found in a statement line."""

    currency: str
    amount: float | None = None
    rate: float | None = None


class KnownService(NamedTuple):
    """One row of the ordered known-service table."""

    pattern: re.Pattern[str]
    category: str
    service: str


class ServiceMatch(NamedTuple):
    """Result of mapping a raw description to a display name."""

    name: str
    merchant: str
    confidence: int
    category: str


# ---------------------------------------------------------------------------
# Detected subscriptions
# ---------------------------------------------------------------------------


class ParsedSubscription(BaseModel):
    """A recurring charge detected from one group of transactions.

    Serialized field names use camelCase (``serviceName``, ``billingDate``,
    ``nextBilling`` ...) to match what the surrounding application stores;
    Python code uses the snake_case attribute names.
    """

    model_config = ConfigDict(
        strict=True,
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    name: str
    merchant: str
    service_name: str
    category: str
    cost: float
    frequency: Frequency
    billing_date: int
    confidence: int
    source: Literal["bank_scan"] = "bank_scan"
    last_used: date
    sign_up_date: date | None = None
    next_billing: date | None = None
    day_of_month: int | None = None

    @field_validator("cost")
    @classmethod
    def _cost_positive(cls, v: float) -> float:
        if v > 0:
            return v
        raise ValueError("cost must be > 0")

    @field_validator("confidence")
    @classmethod
    def _confidence_in_range(cls, v: int) -> int:
        if 0 <= v <= 100:
            return v
        raise ValueError("confidence must be within [0,100]")

    @field_validator("billing_date", "day_of_month")
    @classmethod
    def _day_of_month_in_range(cls, v: int | None) -> int | None:
        if v is None or 1 <= v <= 31:
            return v
        raise ValueError("day of month must be within [1,31]")

    @model_validator(mode="after")
    def _unknown_frequency_has_no_projection(self) -> ParsedSubscription:
        if self.frequency == "unknown" and self.next_billing is not None:
            raise ValueError("next_billing must be absent when frequency is 'unknown'")
        return self

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-friendly camelCase mapping (ISO date strings)."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = [
    "BASE_CURRENCY",
    "CATEGORIES",
    "Frequency",
    "FxInfo",
    "KnownService",
    "ParsedSubscription",
    "RawTransaction",
    "ServiceMatch",
    "Transactions",
]
