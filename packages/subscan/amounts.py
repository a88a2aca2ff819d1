"""Money parsing: CSV cells, free-text lines and foreign-exchange fragments.

Two different problems live here:

- :func:`parse_money` reads one cell whose whole content is an amount
  (CSV exports). Sign is preserved.
- :func:`extract_amount` picks the transaction amount out of a statement line
  that may also carry a running balance, a money-in column or reference
  numbers. It returns a magnitude; the caller decides the sign.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .models import BASE_CURRENCY, FxInfo

# ---- Tunables ----------------------------------------------------------------

TAIL_WINDOW = 140
GREEDY_TAIL_WINDOW = 200
MIN_PLAUSIBLE_SPEND = 5.0
MAX_PLAUSIBLE_AMOUNT = 200_000.0
BALANCE_JUMP_RATIO = 1.5

_MINUS_CHARS = "-−–"

# Optional "(", sign, "£"; thousands-grouped or plain digits; optional pence.
_MONEY_TOKEN_RE = re.compile(
    r"\(?[-−–]?\s*£?\s*(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{2}(?!\d))?\)?"
)
_TWO_DP_RE = re.compile(r"\.\d{2}\b")

_TRAILING_AMOUNTS_RE = re.compile(
    r"(?:(?:^|[\s,]+)\(?[-−–]?\s*£?\s*(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{2})?\)?)+\s*$"
)

# A line "closes" a transaction when it ends with a money-shaped token.
TERMINAL_MONEY_RE = re.compile(
    r"£?\s*\(?\d{1,3}(?:,\d{3})*\.\d{2}\)?\s*(?:CR|DR)?\s*$", re.IGNORECASE
)

_FX_RE = re.compile(
    r"[, ](\d+(?:\.\d{2})?)\s*(USD|EUR|AUD|CAD)\b.*?(?:FX\s*RATE|RATE)[:\s]*([\d.]+)\s*/?\s*GBP",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Cell parsing
# ---------------------------------------------------------------------------


def parse_money(raw: str | None) -> float | None:
    """Parse a standalone money cell into a signed float.

    Accepts ``"£1,234.56"``, ``"-9.99"``, ``"−9.99"`` (Unicode minus),
    ``"(5.00)"`` (negative) and combinations such as ``"-£(3.00)"``. Returns
    ``None`` for empty or unparseable cells and for non-finite values.
    """

    if raw is None:
        return None
    s = raw.strip().strip('"').strip()
    if not s:
        return None

    negative = False
    # Strip leading sign, currency symbol and surrounding parentheses in any
    # order until stable.
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        elif s and s[0] in _MINUS_CHARS:
            negative = True
            s = s[1:].lstrip()
            changed = True
        if s.startswith("£"):
            s = s[1:].lstrip()
            changed = True
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1].strip()
            changed = True
        if not changed:
            break

    s = s.replace(",", "").replace(" ", "")
    try:
        d = Decimal(s)
    except InvalidOperation:
        return None
    if not d.is_finite():
        return None
    value = float(d)
    if not math.isfinite(value):
        return None
    return -abs(value) if negative else value


def round_pennies(value: float) -> float:
    """Round half-up to two decimal places."""

    q = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(q)


# ---------------------------------------------------------------------------
# Line extraction
# ---------------------------------------------------------------------------


def _token_value(raw: str) -> float:
    cleaned = re.sub(r"[()£,\s]", "", raw)
    for ch in _MINUS_CHARS:
        cleaned = cleaned.replace(ch, "")
    try:
        return float(cleaned)
    except ValueError:
        return math.nan


def _candidates(text: str) -> list[tuple[float, bool]]:
    """Return ``(value, priced)`` pairs for plausible money tokens in order."""

    out: list[tuple[float, bool]] = []
    for m in _MONEY_TOKEN_RE.finditer(text):
        token = m.group(0)
        value = _token_value(token)
        if not math.isfinite(value) or value <= 0 or value > MAX_PLAUSIBLE_AMOUNT:
            continue
        priced = "£" in token or bool(_TWO_DP_RE.search(token))
        out.append((value, priced))
    return out


def extract_amount(line: str, *, tail: int = TAIL_WINDOW) -> float:
    """Return the most likely transaction amount in ``line``, or ``0.0``.

    Only the last ``tail`` characters are scanned. Candidates without a pound
    sign and without pence are treated as noise (reference numbers, dates,
    page numbers). UK ledgers print ``description amount balance`` or
    ``description in out balance``, so a trailing larger figure is read as the
    running balance rather than the charge.
    """

    window = line[-tail:] if tail > 0 else line
    tokens = _candidates(window)
    if not tokens:
        return 0.0

    priced = [value for value, is_priced in tokens if is_priced]
    if not priced:
        return 0.0

    if any(v >= MIN_PLAUSIBLE_SPEND for v in priced):
        priced = [v for v in priced if v >= MIN_PLAUSIBLE_SPEND]

    if len(priced) == 3:
        a, b, c = priced
        if c >= max(a, b):
            return b

    if len(priced) >= 2:
        prev, last = priced[-2:]
        if last > prev * BALANCE_JUMP_RATIO:
            return prev
        return min(prev, last)

    return priced[0]


def strip_trailing_amounts(text: str) -> str:
    """Drop the run of money tokens at the end of ``text``."""

    return _TRAILING_AMOUNTS_RE.sub("", text).strip()


# ---------------------------------------------------------------------------
# Foreign exchange
# ---------------------------------------------------------------------------


def extract_fx_info(text: str) -> FxInfo:
    """Detect a ``"<amount> <CCY> ... RATE <rate>/GBP"`` fragment.

    Handles ``",24.00 USD, RATE 0.7400/GBP"`` and ``", 9.99 AUD FX RATE: 0.52/GBP"``
    style variants. Returns ``FxInfo("GBP")`` when absent.
    """

    m = _FX_RE.search(text)
    if not m:
        return FxInfo(BASE_CURRENCY)
    try:
        rate = float(m.group(3).rstrip("."))
    except ValueError:
        return FxInfo(BASE_CURRENCY)
    return FxInfo(m.group(2).upper(), float(m.group(1)), rate)


def convert_to_base(amount: float, currency: str, rate: float | None) -> float:
    """Convert ``amount`` into GBP by simple rate multiplication."""

    if currency != BASE_CURRENCY and rate:
        return amount * rate
    return amount


def strip_fx_suffix(text: str) -> str:
    """Remove the FX fragment (if any) from a description."""

    return _FX_RE.sub(" ", text, count=1).strip()


__all__ = [
    "GREEDY_TAIL_WINDOW",
    "MIN_PLAUSIBLE_SPEND",
    "TAIL_WINDOW",
    "TERMINAL_MONEY_RE",
    "convert_to_base",
    "extract_amount",
    "extract_fx_info",
    "parse_money",
    "round_pennies",
    "strip_fx_suffix",
    "strip_trailing_amounts",
]
