"""Group debits by merchant and score each group as a possible subscription.

Public API:
    - :func:`detect_subscriptions`
    - :func:`group_by_merchant`

Each group goes through a short series of guards (person-to-person mandates,
credits), a price-stability test and an acceptance rule; survivors become
:class:`~subscan.models.ParsedSubscription` records with a cost, a cadence,
a confidence value and a projected next charge. Rejections are logged at
DEBUG with the group key and the reason.
"""

from __future__ import annotations

import re
import statistics
from collections.abc import Iterable

from .amounts import round_pennies
from .billing import (
    infer_frequency,
    infer_singleton_frequency,
    mentions_annualish,
    next_billing_date,
)
from .logging_setup import get_logger
from .merchants import (
    UNKNOWN_SERVICE,
    is_aggregator,
    is_known_service_line,
    match_service,
    sanitize_merchant,
)
from .models import ParsedSubscription, RawTransaction

_logger = get_logger("subscan.detect")

# ---- Tunables ----------------------------------------------------------------

KNOWN_THRESHOLD = 90
STABLE_VARIANCE = 0.06
KNOWN_OR_MANDATE_VARIANCE = 0.12
MIN_STABILITY_BAND = 1.0
MIN_KNOWN_SINGLETON = 2.0
HIGH_VALUE = 500.0
FREQUENCY_BONUS = 5
DIRECT_DEBIT_BONUS = 5
MAX_CONFIDENCE = 100

_MANDATE_RE = re.compile(r"\bmandate\s*no\b", re.IGNORECASE)
_GROUP_CREDIT_RE = re.compile(r"(refund|reversal|chargeback|interest|paid in|credit|deposit)")
_STRONG_SUB_RE = re.compile(
    r"(subscription|subscrip|premium|membership|plan|renewal|direct\s*debit|mandate\s*no"
    r"|autor?enew|annual|yearly)",
    re.IGNORECASE,
)
_DIRECT_DEBIT_RE = re.compile(r"\b(direct\s*debit|mandate\s*no)\b", re.IGNORECASE)


def group_key(tx: RawTransaction) -> str | None:
    """Return the grouping key for a debit, or ``None`` when unusable.

    Aggregator descriptors (Apple bill, Google Play, PayPal ...) are split by
    amount in pence so that different subscriptions billed through the same
    descriptor stay apart.
    """

    name = sanitize_merchant(tx.description)
    if not name or name == UNKNOWN_SERVICE:
        return None
    key = name.lower()
    if is_aggregator(tx.description):
        key = f"{key}__{round(abs(tx.amount) * 100)}"
    return key


def group_by_merchant(transactions: Iterable[RawTransaction]) -> dict[str, list[RawTransaction]]:
    """Group debits by merchant key, preserving first-seen order."""

    groups: dict[str, list[RawTransaction]] = {}
    for tx in transactions:
        if not tx.is_debit:
            continue
        key = group_key(tx)
        if key is None:
            continue
        groups.setdefault(key, []).append(tx)
    return groups


def _is_stable(amounts_sorted: list[float], base: float, variance: float) -> bool:
    band = max(MIN_STABILITY_BAND, base * variance)
    return all(abs(v - base) <= band for v in amounts_sorted)


def _score_group(key: str, members: list[RawTransaction]) -> ParsedSubscription | None:
    sample = members[0].description
    blob = " ".join(m.description for m in members).lower()
    is_mandate = bool(_MANDATE_RE.search(blob))

    looks_p2p = is_mandate and not is_known_service_line(blob)
    if looks_p2p and len(members) < 2:
        _logger.debug("detect:skip key=%r reason=p2p_single", key)
        return None
    if _GROUP_CREDIT_RE.search(blob):
        _logger.debug("detect:skip key=%r reason=credit_wording", key)
        return None

    match = match_service(sample)
    known = match.confidence >= KNOWN_THRESHOLD

    amounts = sorted(abs(m.amount) for m in members)
    base = amounts[len(amounts) // 2]
    variance = KNOWN_OR_MANDATE_VARIANCE if known or is_mandate else STABLE_VARIANCE
    recurring = len(members) >= 2 and _is_stable(amounts, base, variance)

    if known and len(members) < 2 and base < MIN_KNOWN_SINGLETON:
        _logger.debug("detect:skip key=%r reason=tiny_known_singleton base=%.2f", key, base)
        return None

    annualish = mentions_annualish(blob)
    strong_not_mandate = bool(_STRONG_SUB_RE.search(blob)) and not is_mandate
    high_value = base >= HIGH_VALUE
    accept = recurring or known or strong_not_mandate or (high_value and (annualish or known))

    if looks_p2p and not known and not recurring and base < HIGH_VALUE:
        _logger.debug("detect:skip key=%r reason=p2p_mandate", key)
        return None
    if not accept:
        _logger.debug(
            "detect:skip key=%r reason=not_subscription count=%d base=%.2f",
            key,
            len(members),
            base,
        )
        return None

    raw_cost = statistics.median(amounts) if recurring else abs(members[0].amount)
    cost = round_pennies(raw_cost)
    if cost <= 0:
        _logger.debug("detect:skip key=%r reason=zero_cost", key)
        return None

    if recurring:
        frequency = infer_frequency([m.date for m in members])
    else:
        frequency = infer_singleton_frequency(
            name=match.name,
            description_blob=blob,
            known=known or is_known_service_line(sample),
            count=len(members),
            cost=cost,
        )

    confidence = match.confidence
    if frequency != "unknown":
        confidence += FREQUENCY_BONUS
    if _DIRECT_DEBIT_RE.search(blob):
        confidence += DIRECT_DEBIT_BONUS

    dates = sorted(m.date for m in members)
    first, last = dates[0], dates[-1]
    return ParsedSubscription(
        name=match.name,
        merchant=match.merchant,
        service_name=match.name,
        category=match.category,
        cost=cost,
        frequency=frequency,
        billing_date=last.day,
        day_of_month=last.day,
        confidence=min(MAX_CONFIDENCE, confidence),
        last_used=last,
        sign_up_date=first,
        next_billing=next_billing_date(last, frequency),
    )


def detect_subscriptions(transactions: Iterable[RawTransaction]) -> list[ParsedSubscription]:
    """Detect recurring charges among ``transactions``.

    Only debits are considered. Output order follows the first appearance of
    each merchant group in the input.
    """

    groups = group_by_merchant(transactions)
    subs: list[ParsedSubscription] = []
    for key, members in groups.items():
        sub = _score_group(key, members)
        if sub is not None:
            subs.append(sub)
    _logger.debug("detect:done groups=%d subscriptions=%d", len(groups), len(subs))
    return subs


__all__ = ["detect_subscriptions", "group_by_merchant", "group_key"]
