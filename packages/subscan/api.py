"""Public entry points for subscription detection.

- :func:`parse_statement_text` takes raw statement text (CSV export, statement
  lines or a PDF text dump) and returns detected subscriptions. When the
  regular parse finds fewer than :data:`FALLBACK_THRESHOLD` subscriptions, the
  greedy PDF strategy runs on the same text and both result sets are merged.
- :func:`parse_transactions` runs detection on an already-built transaction
  list.

Both validate their arguments up front and raise
:class:`~subscan.errors.StatementInputError` for structurally invalid input.
An empty result is a valid answer, not an error.
"""

from __future__ import annotations

from collections.abc import Iterable

from .detect import detect_subscriptions
from .errors import StatementInputError
from .logging_setup import get_logger
from .models import ParsedSubscription, RawTransaction, Transactions
from .transactions import build_transactions, parse_greedy

_logger = get_logger("subscan.api")

FALLBACK_THRESHOLD = 3

type MergeKey = tuple[str, int, str]


def _merge_key(sub: ParsedSubscription) -> MergeKey:
    return (sub.name.lower(), round(sub.cost * 100), sub.frequency)


def merge_subscriptions(*batches: Iterable[ParsedSubscription]) -> list[ParsedSubscription]:
    """Merge subscription lists keyed by ``(name, cost in pence, frequency)``.

    A later entry with the same key replaces the earlier one but keeps the
    earlier position.
    """

    merged: dict[MergeKey, ParsedSubscription] = {}
    for batch in batches:
        for sub in batch:
            merged[_merge_key(sub)] = sub
    return list(merged.values())


def _validate_transactions(transactions: Transactions) -> list[RawTransaction]:
    if isinstance(transactions, (str, bytes)) or not isinstance(transactions, Iterable):
        raise StatementInputError(
            f"transactions must be an iterable of RawTransaction, got {type(transactions).__name__}"
        )
    items = list(transactions)
    for i, tx in enumerate(items):
        if not isinstance(tx, RawTransaction):
            raise StatementInputError(
                f"transactions[{i}] must be a RawTransaction, got {type(tx).__name__}"
            )
    return items


def parse_transactions(transactions: Transactions) -> list[ParsedSubscription]:
    """Detect subscriptions in an already-built transaction list."""

    items = _validate_transactions(transactions)
    subs = detect_subscriptions(items)
    _logger.info(
        "parse_transactions:done num_transactions=%d num_subscriptions=%d",
        len(items),
        len(subs),
    )
    return subs


def parse_statement_text(
    text: str, *, fallback_year: int | None = None
) -> list[ParsedSubscription]:
    """Detect subscriptions in raw statement text.

    Parameters
    ----------
    text:
        CSV export with a header row, statement lines, or a PDF text dump.
    fallback_year:
        Year assumed for dates printed without one (``"27 Jul"``). Defaults to
        the current year.

    Returns
    -------
    list[ParsedSubscription]
        Possibly empty. Never contains two entries with the same
        ``(name, cost, frequency)``.
    """

    if not isinstance(text, str):
        raise StatementInputError(f"text must be str, got {type(text).__name__}")
    if fallback_year is not None and (
        isinstance(fallback_year, bool) or not isinstance(fallback_year, int)
    ):
        raise StatementInputError(
            f"fallback_year must be int or None, got {type(fallback_year).__name__}"
        )

    txs = build_transactions(text, fallback_year)
    subs = detect_subscriptions(txs)
    _logger.info(
        "parse_statement_text:primary num_transactions=%d num_subscriptions=%d",
        len(txs),
        len(subs),
    )
    if len(subs) >= FALLBACK_THRESHOLD:
        return subs

    greedy_txs = parse_greedy(text, fallback_year)
    greedy_subs = detect_subscriptions(greedy_txs)
    merged = merge_subscriptions(subs, greedy_subs)
    _logger.info(
        "parse_statement_text:greedy_fallback num_transactions=%d num_subscriptions=%d merged=%d",
        len(greedy_txs),
        len(greedy_subs),
        len(merged),
    )
    return merged


__all__ = [
    "FALLBACK_THRESHOLD",
    "merge_subscriptions",
    "parse_statement_text",
    "parse_transactions",
]
