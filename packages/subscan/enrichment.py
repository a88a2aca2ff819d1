"""Optional merchant-name cleanup via the OpenAI Responses API.

Public API:
    - :func:`clean_merchant_name_fallback`
    - :func:`clean_merchant_name`
    - :func:`enrich_subscriptions`

Detection never depends on this module. Only subscriptions whose name was not
resolved from the known-service table are sent to the model, and any failure
(network, API, empty output) falls back to deterministic rules so a result is
always produced. No side effects occur at import time.
"""

from __future__ import annotations

import os
import re
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import openai
from openai import OpenAI

from .logging_setup import get_logger
from .merchants import KNOWN_SERVICE_CONFIDENCE, UNKNOWN_SERVICE
from .models import ParsedSubscription

_logger = get_logger("subscan.enrichment")

# ---- Tunables ----------------------------------------------------------------

_DEFAULT_MODEL: str = "gpt-5"
_DEFAULT_MAX_WORKERS: int = 4
_MAX_WORKERS_CAP: int = 16

_INSTRUCTIONS = (
    "You turn raw bank transaction descriptions into the proper name of the "
    "service that was paid. Return only the clean name, no explanation."
)

_EXAMPLES: tuple[tuple[str, str], ...] = (
    ("NETFLIX.COM AMSTERDAM", "Netflix"),
    ("SPOTIFY UK LONDON", "Spotify Premium"),
    ("ADOBE CREATIVE CLOUD", "Adobe Creative Cloud"),
    ("AMZN PRIME UK MEMBERSHIP", "Amazon Prime"),
    ("MSFT*OFFICE365 PERSONAL", "Microsoft 365"),
    ("GYM GROUP PLC MONTHLY", "The Gym Group"),
    ("HELLOFRESH UK LIMITED", "HelloFresh"),
    ("DISNEY PLUS UK", "Disney+"),
    ("ZOOM.US 888-799-9666", "Zoom Pro"),
    ("APPLE.COM/BILL ITUNES", "Apple Services"),
)

# Checked against the upper-cased description; first hit wins.
_FALLBACK_RULES: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(p), name)
    for p, name in (
        (r"SPOTIFY.*", "Spotify Premium"),
        (r"NETFLIX.*", "Netflix"),
        (r"ADOBE.*", "Adobe Creative Cloud"),
        (r"AMAZON.*PRIME.*", "Amazon Prime"),
        (r"MICROSOFT.*365.*|MSFT.*OFFICE.*", "Microsoft 365"),
        (r"APPLE.*", "Apple Services"),
        (r"DISNEY.*", "Disney+"),
        (r"ZOOM.*", "Zoom"),
        (r"GYM.*GROUP.*", "The Gym Group"),
        (r"HELLO.*FRESH.*", "HelloFresh"),
        (r"GOOGLE.*", "Google Services"),
        (r"DROPBOX.*", "Dropbox"),
    )
)

_GENERIC_CLEANUP: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[0-9]{4,}"), ""),
    (re.compile(r"\*+"), ""),
    (re.compile(r"\b(LTD|PLC|LIMITED|INC|CORP)\b"), ""),
    (re.compile(r"\b(LONDON|UK|GB|AMSTERDAM|DUBLIN)\b"), ""),
    (re.compile(r"\s+"), " "),
)


# ---- Deterministic fallback --------------------------------------------------


def clean_merchant_name_fallback(description: str) -> str:
    """Clean a description without calling a model.

    Well-known brands map to a fixed display name; anything else loses long
    digit runs, asterisks, corporate suffixes and city or country words and is
    title-cased.
    """

    upper = description.upper()
    for pattern, name in _FALLBACK_RULES:
        if pattern.search(upper):
            return name
    cleaned = upper
    for pattern, replacement in _GENERIC_CLEANUP:
        cleaned = pattern.sub(replacement, cleaned)
    cleaned = cleaned.strip()
    if not cleaned:
        return UNKNOWN_SERVICE
    return " ".join(w[:1].upper() + w[1:].lower() for w in cleaned.split(" "))


# ---- Model-backed cleanup ----------------------------------------------------


def _create_client() -> OpenAI:
    return OpenAI()


def _resolve_model(model: str | None) -> str:
    return model or os.getenv("SUBSCAN_ENRICH_MODEL") or _DEFAULT_MODEL


def _resolve_max_workers(max_workers: int | None, n_items: int) -> int:
    """Resolve the thread-pool size from the argument or the environment.

    Honors ``SUBSCAN_ENRICH_MAX_WORKERS`` when no argument is given, caps to
    ``n_items`` and ``_MAX_WORKERS_CAP``, and ensures a minimum of 1.
    """

    if max_workers is None:
        env_workers = os.getenv("SUBSCAN_ENRICH_MAX_WORKERS")
        try:
            max_workers = int(env_workers) if env_workers else _DEFAULT_MAX_WORKERS
        except ValueError:
            _logger.warning("enrich:bad_max_workers value=%r", env_workers)
            max_workers = _DEFAULT_MAX_WORKERS
    return max(1, min(max_workers, n_items, _MAX_WORKERS_CAP))


def build_user_content(description: str) -> str:
    """Return the few-shot user prompt for one description."""

    examples = "\n".join(f'"{raw}" -> "{clean}"' for raw, clean in _EXAMPLES)
    return (
        f'Clean this bank transaction description into a proper service name: "{description}"\n\n'
        f"Examples:\n{examples}\n\n"
        "Return only the clean name, no explanation:"
    )


def _response_text(resp: Any) -> str:
    text = getattr(resp, "output_text", None)
    if not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")
    return text.strip().strip('"').strip()


def clean_merchant_name(
    description: str, *, client: OpenAI | None = None, model: str | None = None
) -> str:
    """Ask the model for a clean service name, falling back on any failure."""

    try:
        client = client or _create_client()
        resp = client.responses.create(
            model=_resolve_model(model),
            instructions=_INSTRUCTIONS,
            input=build_user_content(description),
        )
        name = _response_text(resp)
    except (openai.OpenAIError, ValueError) as e:
        _logger.warning(
            "enrich:model_failed error=%s description=%r", e.__class__.__name__, description[:80]
        )
        return clean_merchant_name_fallback(description)
    if not name:
        _logger.warning("enrich:empty_output description=%r", description[:80])
        return clean_merchant_name_fallback(description)
    return name


def _needs_enrichment(sub: ParsedSubscription) -> bool:
    # Table hits start at KNOWN_SERVICE_CONFIDENCE; bonuses only add to it.
    return sub.confidence < KNOWN_SERVICE_CONFIDENCE


def enrich_subscriptions(
    subs: Sequence[ParsedSubscription],
    *,
    client: OpenAI | None = None,
    model: str | None = None,
    max_workers: int | None = None,
) -> list[ParsedSubscription]:
    """Return copies of ``subs`` with cleaned names for unrecognised merchants.

    Subscriptions resolved from the known-service table are returned
    unchanged. Order is preserved.
    """

    todo = [i for i, s in enumerate(subs) if _needs_enrichment(s)]
    if not todo:
        return list(subs)

    if client is None:
        try:
            client = _create_client()
        except openai.OpenAIError as e:
            # Typically a missing OPENAI_API_KEY.
            _logger.warning("enrich:client_unavailable error=%s", e.__class__.__name__)
    workers = _resolve_max_workers(max_workers, len(todo))
    _logger.info("enrich:start num_subscriptions=%d workers=%d", len(todo), workers)

    def _clean(i: int) -> str:
        if client is None:
            return clean_merchant_name_fallback(subs[i].merchant)
        return clean_merchant_name(subs[i].merchant, client=client, model=model)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        names = list(pool.map(_clean, todo))

    out = list(subs)
    for i, name in zip(todo, names, strict=True):
        out[i] = subs[i].model_copy(update={"name": name, "service_name": name})
    return out


__all__ = [
    "build_user_content",
    "clean_merchant_name",
    "clean_merchant_name_fallback",
    "enrich_subscriptions",
]
