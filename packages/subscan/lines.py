"""Re-join statement rows that PDF extraction split across physical lines.

Two strategies are offered:

- :func:`reconstruct_lines` (strict): a row that starts with a date opens a
  record; following rows are appended until the record ends with a money
  token.
- :func:`greedy_reconstruct_lines` (fallback): tolerant of page furniture and
  regulatory boilerplate, anchors on looser date shapes, and eagerly absorbs
  the row after an anchor. Used when the strict pass finds too little.

:func:`is_excluded_line` filters balance and credit rows from either result.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from .amounts import TERMINAL_MONEY_RE
from .dates import looks_like_date, starts_with_date
from .logging_setup import get_logger
from .merchants import is_known_service_line

_logger = get_logger("subscan.lines")

BALANCE_LINE_RE = re.compile(
    r"(balance\s*(carried|brought)\s*forward|opening\s*balance|closing\s*balance"
    r"|balance\s*[cb]/f|\bb/f\b|\bc/f\b|balance\s+forward|carried\s+forward)",
    re.IGNORECASE,
)

CREDIT_HINTS: tuple[str, ...] = (
    "refund",
    "reversal",
    "chargeback",
    "interest",
    "paid in",
    "credit",
    "deposit",
    "cashback",
    "faster payments receipt",
    "faster payments received",
    "transfer from",
    "incoming",
    "salary",
    "wages",
    "hmrc",
    "benefit",
    "rebate",
    "receipt",
)

# Statement furniture and regulatory text dropped by the greedy strategy.
NOISE_PHRASES: tuple[str, ...] = (
    "important information",
    "compensation",
    "fscs",
    "account name",
    "sort code",
    "statement number",
    "page number",
    "date description money in money out balance",
    "authorised by the prudential regulation authority",
    "financial conduct authority",
    "registered office",
    "gross rate",
    "aer",
    "ear",
    "overdraft",
    "terms and conditions",
)

_PAGE_MARKER_RE = re.compile(r"^--- Page \d+ ---$", re.IGNORECASE)
_LONG_PROSE_LEN = 180
_LONG_PROSE_MIN_DIGITS = 6


def split_lines(text: str) -> list[str]:
    """Split ``text`` into trimmed, non-empty lines."""

    return [s.strip() for s in re.split(r"\r?\n", text) if s.strip()]


def is_balance_line(text: str) -> bool:
    return bool(BALANCE_LINE_RE.search(text))


def has_credit_hint(text: str) -> bool:
    lo = text.lower()
    return any(h in lo for h in CREDIT_HINTS)


def is_excluded_line(text: str) -> bool:
    """True for balance boilerplate or credit rows.

    A row naming a known subscription service is always kept, so a refund-like
    word next to a real service name does not hide the charge.
    """

    if is_known_service_line(text):
        return False
    return is_balance_line(text) or has_credit_hint(text)


def _is_stray_balance(line: str) -> bool:
    return is_balance_line(line) and not is_known_service_line(line)


def reconstruct_lines(lines: Iterable[str]) -> list[str]:
    """Merge physical rows into one logical row per date anchor (strict).

    An undated balance row closes the open record and is dropped, so its
    figure never becomes part of a charge.
    """

    merged: list[str] = []
    current: str | None = None
    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        if starts_with_date(line):
            if current is not None:
                merged.append(current)
            current = line
        elif _is_stray_balance(line):
            if current is not None:
                merged.append(current)
                current = None
            continue
        elif current is not None:
            current = f"{current} {line}"
        else:
            # Header rows before the first dated record.
            continue
        if TERMINAL_MONEY_RE.search(current):
            merged.append(current)
            current = None
    if current is not None:
        merged.append(current)
    return merged


def _is_noise(line: str) -> bool:
    lo = line.lower()
    if any(phrase in lo for phrase in NOISE_PHRASES):
        return True
    digits = sum(ch.isdigit() for ch in lo)
    return len(lo) > _LONG_PROSE_LEN and digits < _LONG_PROSE_MIN_DIGITS


def greedy_reconstruct_lines(text: str) -> list[str]:
    """Merge rows of a noisy PDF text dump into logical records."""

    rows = [ln for ln in split_lines(text) if not _PAGE_MARKER_RE.match(ln)]
    kept = [ln for ln in rows if not _is_noise(ln)]
    if len(kept) != len(rows):
        _logger.debug("greedy:noise_dropped count=%d", len(rows) - len(kept))

    merged: list[str] = []
    current = ""
    i = 0
    while i < len(kept):
        line = kept[i]
        nxt = kept[i + 1] if i + 1 < len(kept) else ""
        if looks_like_date(line):
            if current:
                merged.append(current.strip())
            current = line
            if nxt and not looks_like_date(nxt) and not _is_stray_balance(nxt):
                current = f"{current} {nxt}"
                i += 1
            i += 1
            continue
        if _is_stray_balance(line):
            if current:
                merged.append(current.strip())
                current = ""
            i += 1
            continue
        if current:
            current = f"{current} {line}"
            if TERMINAL_MONEY_RE.search(line):
                merged.append(current.strip())
                current = ""
        i += 1
    if current:
        merged.append(current.strip())
    return merged


__all__ = [
    "BALANCE_LINE_RE",
    "CREDIT_HINTS",
    "NOISE_PHRASES",
    "greedy_reconstruct_lines",
    "has_credit_hint",
    "is_balance_line",
    "is_excluded_line",
    "reconstruct_lines",
    "split_lines",
]
