import math

import pytest

from subscan.amounts import (
    convert_to_base,
    extract_amount,
    extract_fx_info,
    parse_money,
    round_pennies,
    strip_fx_suffix,
    strip_trailing_amounts,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("£18.99", 18.99),
        ("18.99", 18.99),
        ("-9.99", -9.99),
        ("−9.99", -9.99),
        ("(5.00)", -5.00),
        ("£1,234.56", 1234.56),
        ('"12.00"', 12.00),
        ("+3.50", 3.50),
    ],
)
def test_parse_money(raw: str, expected: float) -> None:
    assert parse_money(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", "   ", "abc", "nan", "inf", "sNaN", "-sNaN", "1e400"])
def test_parse_money_rejects_unusable_cells(raw: str | None) -> None:
    assert parse_money(raw) is None


def test_round_pennies_rounds_half_up() -> None:
    assert round_pennies(2.675) == 2.68
    assert round_pennies(9.994) == 9.99
    assert round_pennies(0.005) == 0.01


def test_extract_amount_single_priced_value() -> None:
    assert extract_amount("03/08/2025 SPOTIFY £18.99") == pytest.approx(18.99)


def test_extract_amount_parenthesised_is_a_magnitude() -> None:
    assert extract_amount("03/08/2025 GYM (5.00)") == pytest.approx(5.00)


def test_extract_amount_ignores_unpriced_numbers() -> None:
    # Reference numbers and card suffixes have neither "£" nor pence.
    assert extract_amount("03/08/2025 NETFLIX REF 123456 CARD 4421 10.99") == pytest.approx(10.99)
    assert extract_amount("03/08/2025 TRANSFER REF 123456") == 0.0


def test_extract_amount_prefers_charge_over_running_balance() -> None:
    # description, amount, balance: the balance is much larger.
    assert extract_amount("03/08/2025 NETFLIX.COM 10.99 1,204.55") == pytest.approx(10.99)


def test_extract_amount_three_columns_takes_money_out() -> None:
    assert extract_amount("03/08/2025 ADOBE 12.00 19.97 850.20") == pytest.approx(19.97)


def test_extract_amount_drops_small_noise_when_larger_values_exist() -> None:
    assert extract_amount("03/08/2025 ITEM x 1.00 PRICE 29.99") == pytest.approx(29.99)


def test_extract_amount_last_two_similar_keeps_smaller() -> None:
    assert extract_amount("03/08/2025 SHOP 20.00 25.00") == pytest.approx(20.00)


def test_extract_amount_only_scans_the_tail() -> None:
    line = "£99.99 " + "x" * 200 + " NOTHING PRICED"
    assert extract_amount(line, tail=140) == 0.0


def test_extract_amount_empty_line() -> None:
    assert extract_amount("") == 0.0


def test_strip_trailing_amounts() -> None:
    assert strip_trailing_amounts("NETFLIX.COM 10.99 1,204.55") == "NETFLIX.COM"
    assert strip_trailing_amounts("SPOTIFY £18.99") == "SPOTIFY"


def test_fx_fragment_is_detected_and_converted() -> None:
    text = "OPENAI *CHATGPT SUBSCR,24.00 USD, RATE 0.7400/GBP"
    fx = extract_fx_info(text)
    assert fx.currency == "USD"
    assert fx.amount == pytest.approx(24.00)
    assert fx.rate == pytest.approx(0.74)
    assert math.isclose(convert_to_base(fx.amount, fx.currency, fx.rate), 17.76)
    assert strip_fx_suffix(text) == "OPENAI *CHATGPT SUBSCR"


def test_fx_absent_defaults_to_base_currency() -> None:
    fx = extract_fx_info("NETFLIX.COM 10.99")
    assert fx.currency == "GBP"
    assert fx.amount is None
    assert convert_to_base(10.99, "GBP", None) == 10.99
