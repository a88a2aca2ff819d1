"""Merchant normalization and the known-service table.

The table is an ordered tuple of :class:`~subscan.models.KnownService` rows
and the first matching row wins, so specific patterns must precede broader
ones ("Prime Video" before "Amazon Prime"). It is process-wide, read-only
data.
"""

from __future__ import annotations

import re

from .models import KnownService, ServiceMatch

KNOWN_SERVICE_CONFIDENCE = 95
FALLBACK_CONFIDENCE = 60
UNKNOWN_SERVICE = "Unknown Service"
OTHER_CATEGORY = "Other"

# Typical floor for an annual lump-sum payment.
SINGLE_ANNUAL_MIN = 60.0


def _svc(pattern: str, category: str, service: str) -> KnownService:
    return KnownService(re.compile(pattern, re.IGNORECASE), category, service)


SERVICE_PATTERNS: tuple[KnownService, ...] = (
    # Streaming & media
    _svc(r"netflix", "Entertainment", "Netflix"),
    _svc(r"spotify", "Music", "Spotify"),
    _svc(r"prime\s*video", "Video", "Prime Video"),
    _svc(r"amazon\s*prime(?!\s*video)", "Video", "Amazon Prime"),
    _svc(r"disney", "Video", "Disney+"),
    _svc(r"youtube.*premium", "Video", "YouTube Premium"),
    # Software / tech
    _svc(
        r"(?:apple(?:\s*\.?\s*com)?\s*/?\s*bill|itunes|apple\s*services|app\s*store)",
        "Software",
        "Apple",
    ),
    _svc(r"adobe", "Software", "Adobe"),
    _svc(r"microsoft|office 365", "Software", "Microsoft"),
    _svc(r"google.*one", "Cloud Storage", "Google One"),
    _svc(r"dropbox", "Cloud Storage", "Dropbox"),
    _svc(r"notion", "Productivity", "Notion"),
    _svc(r"github", "Software", "GitHub"),
    _svc(r"zoom", "Software", "Zoom"),
    _svc(r"openai", "Software", "OpenAI"),
    _svc(r"shopify", "Software", "Shopify"),
    _svc(r"docker", "Software", "Docker"),
    # Fitness
    _svc(r"virgin.*active", "Fitness", "Virgin Active"),
    _svc(r"puregym", "Fitness", "PureGym"),
    # Telecom
    _svc(r"\b(?:three|h3g)\b", "Telecom", "Three"),
    _svc(r"vodafone", "Telecom", "Vodafone"),
    _svc(r"\bee\b", "Telecom", "EE"),
    _svc(r"\bo2\b", "Telecom", "O2"),
    # Productivity / education
    _svc(r"skillshare", "Software", "Skillshare"),
    _svc(r"interview\s*query", "Productivity", "Interview Query"),
    _svc(r"\bihsc\b", "Other", "IHSC Membership"),
    _svc(r"startup\s*plan", "Software", "Startup Plan"),
    _svc(
        r"\b(?:linkedin|linked\s*in|lnkd)\b.*\b(?:premium|prem|subscription|subs|navigator|recruiter)\b",
        "Productivity",
        "LinkedIn Premium",
    ),
    # Dev tools
    _svc(r"cursor.*ai", "Software", "Cursor"),
    _svc(r"overleaf|sharelatex", "Software", "Overleaf"),
    _svc(r"\bindesign\b", "Software", "InDesign"),
)

# Billing descriptors that front many unrelated subscriptions.
AGGREGATOR_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"apple(\s*\.?\s*com)?\s*/?\s*bill",
        r"apple\s*services|app\s*store",
        r"google\s*(one|play|storage)",
        r"amazon\s*digital",
        r"\b(three|vodafone|o2|ee)\b",
        r"paypal",
    )
)

MONTHLY_LIKELY = re.compile(
    r"(netflix|prime\s*video|amazon\s*prime|spotify|google\s*one|apple|openai|three"
    r"|virgin\s*active|skillshare|notion|docker|overleaf|cursor|shopify|indesign|adobe"
    r"|interview\s*query|linkedin\s*premium)",
    re.IGNORECASE,
)

YEARLY_OPTION_BRANDS = re.compile(
    r"(amazon\s*prime|prime\s*video|skillshare|linkedin\s*premium|dropbox|adobe|microsoft"
    r"|github|notion|zoom)",
    re.IGNORECASE,
)

# Ordered (pattern, replacement) cleanup steps applied by sanitize_merchant.
_BOILERPLATE: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bfaster\s*payments\s*(receipt|received|to|from)\b", re.IGNORECASE), ""),
    (
        re.compile(
            r"^(CARD PAYMENT TO|BILL PAYMENT VIA FASTER PAYMENT TO|DIRECT DEBIT PAYMENT TO)\s*",
            re.IGNORECASE,
        ),
        "",
    ),
    (re.compile(r"\(VIA (APPLE|GOOGLE) PAY\)", re.IGNORECASE), ""),
    # PayPal wrappers
    (re.compile(r"\bpaypal(?:\s*\*|\s+payment|\s+ecom|\s+intl)?\s*", re.IGNORECASE), ""),
    (re.compile(r"\bpp\*\s*", re.IGNORECASE), ""),
    (
        re.compile(r"\b(REF|REFERENCE|CARD|POS|CONTACTLESS|ONLINE|ECOM|E-COMMERCE)\b", re.IGNORECASE),
        "",
    ),
    (re.compile(r"\b(UK|GB|GBP)\b", re.IGNORECASE), ""),
    (re.compile(r"\b(LTD|LIMITED|PLC|LLC|INC)\b", re.IGNORECASE), ""),
    (re.compile(r"[0-9]{2,}"), ""),
    (re.compile(r"[^a-zA-Z\s+]"), " "),
    (re.compile(r"\s+"), " "),
)


def _title_word(word: str) -> str:
    return word[0].upper() + word[1:].lower() if word else ""


def sanitize_merchant(raw: str | None) -> str:
    """Strip payment-rail boilerplate and title-case what is left.

    ``"CARD PAYMENT TO NETFLIX.COM LONDON"`` becomes ``"Netflix Com London"``.
    Returns ``"Unknown Service"`` when nothing readable remains.
    """

    s = (raw or "").strip()
    for pattern, replacement in _BOILERPLATE:
        s = pattern.sub(replacement, s)
    s = s.strip()
    cleaned = " ".join(_title_word(w) for w in s.split(" "))
    return cleaned or UNKNOWN_SERVICE


def find_known_service(text: str) -> KnownService | None:
    for entry in SERVICE_PATTERNS:
        if entry.pattern.search(text):
            return entry
    return None


def is_known_service_line(text: str) -> bool:
    return find_known_service(text) is not None


def is_aggregator(text: str) -> bool:
    """True for billing descriptors that can hide several subscriptions."""

    return any(rx.search(text) for rx in AGGREGATOR_PATTERNS)


def categorize(name: str) -> str:
    entry = find_known_service(name)
    return entry.category if entry else OTHER_CATEGORY


def match_service(description: str) -> ServiceMatch:
    """Map a raw description to a display name, category and confidence.

    The raw text is tried against the table first, then the sanitized text.
    A hit yields the canonical service with confidence 95; otherwise the
    sanitized text is used with confidence 60 and category ``"Other"``.
    """

    cleaned = description.strip()
    sanitized = sanitize_merchant(cleaned)
    entry = find_known_service(cleaned) or find_known_service(sanitized)
    if entry is not None:
        return ServiceMatch(entry.service, cleaned, KNOWN_SERVICE_CONFIDENCE, entry.category)
    return ServiceMatch(sanitized, cleaned, FALLBACK_CONFIDENCE, OTHER_CATEGORY)


__all__ = [
    "AGGREGATOR_PATTERNS",
    "FALLBACK_CONFIDENCE",
    "KNOWN_SERVICE_CONFIDENCE",
    "MONTHLY_LIKELY",
    "SERVICE_PATTERNS",
    "SINGLE_ANNUAL_MIN",
    "UNKNOWN_SERVICE",
    "YEARLY_OPTION_BRANDS",
    "categorize",
    "find_known_service",
    "is_aggregator",
    "is_known_service_line",
    "match_service",
    "sanitize_merchant",
]
