# ruff: noqa: I001
import logging
from datetime import date
from typing import Any

import openai
import pytest

import subscan.enrichment as enrichment_mod
from subscan.enrichment import (
    build_user_content,
    clean_merchant_name,
    clean_merchant_name_fallback,
    enrich_subscriptions,
)
from subscan.models import ParsedSubscription
from tests.helpers.openai_stub import OpenAIStub, extract_description


def _sub(name: str, merchant: str, confidence: int) -> ParsedSubscription:
    return ParsedSubscription(
        name=name,
        merchant=merchant,
        service_name=name,
        category="Other",
        cost=9.99,
        frequency="monthly",
        billing_date=1,
        confidence=confidence,
        last_used=date(2025, 7, 1),
        next_billing=date(2025, 8, 1),
    )


# ---- Deterministic fallback --------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("SPOTIFY UK LONDON", "Spotify Premium"),
        ("netflix.com amsterdam", "Netflix"),
        ("AMAZON UK PRIME MEMBERSHIP", "Amazon Prime"),
        ("MSFT*OFFICE365 PERSONAL", "Microsoft 365"),
        ("THE GYM GROUP PLC", "The Gym Group"),
        ("HELLO FRESH UK", "HelloFresh"),
        ("GOOGLE *YOUTUBE", "Google Services"),
    ],
)
def test_fallback_brand_rules(raw: str, expected: str) -> None:
    assert clean_merchant_name_fallback(raw) == expected


def test_fallback_generic_cleanup() -> None:
    assert clean_merchant_name_fallback("WINE CLUB LTD 12345678 LONDON") == "Wine Club"
    assert clean_merchant_name_fallback("**CORNER*BAKERY** UK") == "Cornerbakery"


def test_fallback_empty_result() -> None:
    assert clean_merchant_name_fallback("12345 LTD") == "Unknown Service"


# ---- Model-backed cleanup ----------------------------------------------------


def test_prompt_embeds_description_and_examples() -> None:
    content = build_user_content("WINE CLUB 0042")
    assert extract_description(content) == "WINE CLUB 0042"
    assert '"NETFLIX.COM AMSTERDAM" -> "Netflix"' in content


def test_clean_merchant_name_uses_model_output() -> None:
    calls: list[dict[str, Any]] = []
    stub = OpenAIStub(lambda _d: '  "Wine Society"  ', calls)
    assert clean_merchant_name("WINE SOC 0042", client=stub, model="gpt-test") == "Wine Society"
    assert calls[0]["model"] == "gpt-test"
    assert "instructions" in calls[0]


def test_model_defaults_to_env_then_gpt5(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict[str, Any]] = []
    stub = OpenAIStub(lambda _d: "X", calls)
    clean_merchant_name("A", client=stub)
    monkeypatch.setenv("SUBSCAN_ENRICH_MODEL", "gpt-env")
    clean_merchant_name("B", client=stub)
    assert [c["model"] for c in calls] == ["gpt-5", "gpt-env"]


def test_empty_output_falls_back(caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logging.getLogger("subscan"), "propagate", True)
    caplog.set_level(logging.WARNING, logger="subscan")
    stub = OpenAIStub(lambda _d: "   ")
    assert clean_merchant_name("SPOTIFY P1234", client=stub) == "Spotify Premium"
    assert any("enrich:empty_output" in r.getMessage() for r in caplog.records)


def test_api_error_falls_back() -> None:
    stub = OpenAIStub(lambda _d: openai.APIConnectionError(request=None))  # type: ignore[arg-type]
    assert clean_merchant_name("NETFLIX.COM", client=stub) == "Netflix"


def test_unexpected_response_shape_falls_back() -> None:
    class _Responses:
        def create(self, **_kw):
            return object()

    class _Client:
        responses = _Responses()

    assert clean_merchant_name("DROPBOX*ABC", client=_Client()) == "Dropbox"  # type: ignore[arg-type]


# ---- Batch enrichment --------------------------------------------------------


def test_enrich_only_renames_unrecognised_merchants() -> None:
    calls: list[dict[str, Any]] = []
    stub = OpenAIStub(lambda d: "Wine Society" if "WINE" in d else "Other Thing", calls)
    subs = [
        _sub("Netflix", "NETFLIX.COM", 100),
        _sub("Wine Soc", "WINE SOC 0042", 65),
    ]
    out = enrich_subscriptions(subs, client=stub, max_workers=2)
    assert out[0] is subs[0]
    assert out[1].name == "Wine Society"
    assert out[1].service_name == "Wine Society"
    assert out[1].merchant == "WINE SOC 0042"
    assert len(calls) == 1


def test_enrich_preserves_order_across_workers() -> None:
    stub = OpenAIStub(lambda d: d.title())
    subs = [_sub(f"M{i}", f"MERCHANT {i}", 60) for i in range(6)]
    out = enrich_subscriptions(subs, client=stub, max_workers=3)
    assert [s.name for s in out] == [f"Merchant {i}" for i in range(6)]


def test_enrich_without_candidates_makes_no_client(monkeypatch: pytest.MonkeyPatch) -> None:
    def _boom():
        raise AssertionError("client should not be created")

    monkeypatch.setattr(enrichment_mod, "_create_client", _boom)
    subs = [_sub("Netflix", "NETFLIX.COM", 100)]
    assert enrich_subscriptions(subs) == subs


def test_enrich_without_api_key_uses_fallback() -> None:
    # OPENAI_API_KEY is removed by the autouse fixture, so the real client
    # constructor fails and every name comes from the deterministic rules.
    subs = [_sub("Hellofresh", "HELLOFRESH UK LIMITED", 60)]
    (out,) = enrich_subscriptions(subs)
    assert out.name == "HelloFresh"


def test_max_workers_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUBSCAN_ENRICH_MAX_WORKERS", "2")
    assert enrichment_mod._resolve_max_workers(None, 10) == 2
    monkeypatch.setenv("SUBSCAN_ENRICH_MAX_WORKERS", "lots")
    assert enrichment_mod._resolve_max_workers(None, 10) == 4
    assert enrichment_mod._resolve_max_workers(50, 100) == 16
    assert enrichment_mod._resolve_max_workers(None, 1) == 1
