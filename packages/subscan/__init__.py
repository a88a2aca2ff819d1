"""Public interface for the ``subscan`` package.

This module exposes the package's entry points and public models/types as the
stable import surface. There is no runtime logic here, only symbol
re-exports.
"""

from .api import FALLBACK_THRESHOLD, merge_subscriptions, parse_statement_text, parse_transactions
from .detect import detect_subscriptions
from .errors import StatementInputError
from .models import (
    CATEGORIES,
    Frequency,
    ParsedSubscription,
    RawTransaction,
    Transactions,
)
from .transactions import build_transactions

__all__ = [
    # API
    "parse_statement_text",
    "parse_transactions",
    "detect_subscriptions",
    "build_transactions",
    "merge_subscriptions",
    "FALLBACK_THRESHOLD",
    # Errors
    "StatementInputError",
    # Models / types
    "CATEGORIES",
    "Frequency",
    "ParsedSubscription",
    "RawTransaction",
    "Transactions",
]
