"""Turn statement text into :class:`~subscan.models.RawTransaction` lists.

Two input shapes are recognised:

- CSV exports with a header row. Columns are located by header wording, so
  the same code handles "Date,Description,Amount" exports as well as
  "Transaction Date,Details,Money In,Money Out" variants.
- Free text (statement lines or a PDF text dump). Lines are first merged into
  logical records by :mod:`subscan.lines`; each record then yields at most one
  debit.

Malformed rows are skipped and logged at DEBUG; nothing here raises on bad
content.
"""

from __future__ import annotations

import csv
import io
import math
import re
from collections.abc import Callable, Iterable, Sequence
from typing import NamedTuple

from .amounts import (
    GREEDY_TAIL_WINDOW,
    TAIL_WINDOW,
    convert_to_base,
    extract_amount,
    extract_fx_info,
    parse_money,
    round_pennies,
    strip_fx_suffix,
    strip_trailing_amounts,
)
from .dates import parse_statement_date, strip_date_token
from .lines import greedy_reconstruct_lines, is_excluded_line, reconstruct_lines, split_lines
from .logging_setup import get_logger
from .merchants import UNKNOWN_SERVICE
from .models import BASE_CURRENCY, RawTransaction

_logger = get_logger("subscan.transactions")

_CSV_HINT_RE = re.compile(r"date|description|amount|merchant|details", re.IGNORECASE)

# Header wording per logical column; the first matching header wins.
_HEADER_RES: dict[str, re.Pattern[str]] = {
    "date": re.compile(r"(^| )date( |$)|transaction date|posted date"),
    "description": re.compile(r"description|details|merchant|narrative|transaction description|name"),
    "amount": re.compile(r"amount(?!.*(in|out))"),
    "money_in": re.compile(r"money in|credit amount|paid in|deposit"),
    "money_out": re.compile(r"money out|debit amount|paid out|withdrawal"),
    "currency": re.compile(r"currency"),
    "rate": re.compile(r"rate|exchange"),
}


class CsvColumns(NamedTuple):
    """Zero-based positions of the recognised CSV columns (``None`` if absent)."""

    date: int | None
    description: int | None
    amount: int | None
    money_in: int | None
    money_out: int | None
    currency: int | None
    rate: int | None


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


def is_csv(text: str) -> bool:
    """True when the first line looks like a CSV header."""

    first = text.lstrip().split("\n", 1)[0]
    return "," in first and bool(_CSV_HINT_RE.search(first))


def _normalize_header(cell: str) -> str:
    return re.sub(r"\s+", " ", cell.strip().strip('"').lower())


def locate_columns(header: Sequence[str]) -> CsvColumns:
    """Map header cells to logical columns by their wording."""

    normalized = [_normalize_header(h) for h in header]

    def find(key: str, *, unless: tuple[str, ...] = ()) -> int | None:
        rx = _HEADER_RES[key]
        for i, h in enumerate(normalized):
            if rx.search(h) and not any(_HEADER_RES[u].search(h) for u in unless):
                return i
        return None

    return CsvColumns(
        date=find("date"),
        description=find("description"),
        # "Debit Amount" / "Credit Amount" are split columns, not a signed one.
        amount=find("amount", unless=("money_in", "money_out")),
        money_in=find("money_in"),
        money_out=find("money_out"),
        currency=find("currency"),
        rate=find("rate"),
    )


def _cell(row: Sequence[str], idx: int | None) -> str | None:
    if idx is None or idx >= len(row):
        return None
    value = row[idx].strip()
    return value or None


def _row_amount(row: Sequence[str], cols: CsvColumns) -> float | None:
    if cols.amount is not None:
        return parse_money(_cell(row, cols.amount))
    money_in = parse_money(_cell(row, cols.money_in)) or 0.0
    money_out = parse_money(_cell(row, cols.money_out)) or 0.0
    return money_in - abs(money_out)


def parse_csv(text: str, fallback_year: int | None = None) -> list[RawTransaction]:
    """Parse a CSV export with a header row.

    ``amount`` comes from a single signed amount column when present,
    otherwise from ``money_in - money_out``. Rows lacking a valid date, a
    description or a finite amount are skipped.
    """

    rows = [r for r in csv.reader(io.StringIO(text.strip())) if any(c.strip() for c in r)]
    if not rows:
        return []
    cols = locate_columns(rows[0])
    _logger.debug("parse_csv:columns %s", cols)

    out: list[RawTransaction] = []
    skipped = 0
    for row in rows[1:]:
        raw_date = _cell(row, cols.date)
        description = _cell(row, cols.description)
        parsed = parse_statement_date(raw_date, fallback_year) if raw_date else None
        amount = _row_amount(row, cols)
        if parsed is None or not description or amount is None or not math.isfinite(amount):
            skipped += 1
            continue
        rate_cell = _cell(row, cols.rate)
        rate = parse_money(rate_cell) if rate_cell else None
        out.append(
            RawTransaction(
                date=parsed,
                description=description,
                amount=amount,
                currency=(_cell(row, cols.currency) or BASE_CURRENCY).upper(),
                exchange_rate=rate,
            )
        )
    if skipped:
        _logger.debug("parse_csv:rows_skipped count=%d", skipped)
    return out


# ---------------------------------------------------------------------------
# Free text
# ---------------------------------------------------------------------------


def _describe(line: str) -> str:
    cleaned = strip_trailing_amounts(strip_fx_suffix(strip_date_token(line)))
    cleaned = re.sub(r"\s+", " ", cleaned).strip(" ,;")
    return cleaned or UNKNOWN_SERVICE


def transaction_from_line(
    line: str, *, fallback_year: int | None = None, tail: int = TAIL_WINDOW
) -> RawTransaction | None:
    """Build one debit from a logical statement line, or ``None`` to skip it."""

    parsed = parse_statement_date(line, fallback_year)
    if parsed is None:
        _logger.debug("line:skip reason=no_date line=%r", line[:80])
        return None
    amount = extract_amount(line, tail=tail)
    if amount == 0:
        _logger.debug("line:skip reason=no_amount line=%r", line[:80])
        return None

    fx = extract_fx_info(line)
    spend = amount
    if fx.currency != BASE_CURRENCY and fx.amount:
        spend = convert_to_base(fx.amount, fx.currency, fx.rate)

    return RawTransaction(
        date=parsed,
        description=_describe(line),
        amount=-abs(round_pennies(spend)),
        currency=fx.currency,
        exchange_rate=fx.rate,
    )


def _build_from_lines(
    lines: Iterable[str], *, fallback_year: int | None, tail: int
) -> list[RawTransaction]:
    out: list[RawTransaction] = []
    for line in lines:
        if is_excluded_line(line):
            _logger.debug("line:skip reason=excluded line=%r", line[:80])
            continue
        tx = transaction_from_line(line, fallback_year=fallback_year, tail=tail)
        if tx is not None:
            out.append(tx)
    return out


def parse_plain(text: str, fallback_year: int | None = None) -> list[RawTransaction]:
    """Parse statement lines with strict record reconstruction."""

    merged = reconstruct_lines(split_lines(text))
    return _build_from_lines(merged, fallback_year=fallback_year, tail=TAIL_WINDOW)


def parse_greedy(text: str, fallback_year: int | None = None) -> list[RawTransaction]:
    """Parse a noisy PDF text dump with greedy record reconstruction."""

    merged = greedy_reconstruct_lines(text)
    return _build_from_lines(merged, fallback_year=fallback_year, tail=GREEDY_TAIL_WINDOW)


def build_transactions(text: str, fallback_year: int | None = None) -> list[RawTransaction]:
    """Dispatch to the CSV or free-text parser based on the first line."""

    parser: Callable[[str, int | None], list[RawTransaction]]
    parser = parse_csv if is_csv(text) else parse_plain
    txs = parser(text, fallback_year)
    _logger.debug("build_transactions:done parser=%s count=%d", parser.__name__, len(txs))
    return txs


__all__ = [
    "CsvColumns",
    "build_transactions",
    "is_csv",
    "locate_columns",
    "parse_csv",
    "parse_greedy",
    "parse_plain",
    "transaction_from_line",
]
