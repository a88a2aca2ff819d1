from datetime import date

import pytest

from subscan.billing import infer_frequency, infer_singleton_frequency, next_billing_date


@pytest.mark.parametrize(
    ("dates", "expected"),
    [
        ([date(2025, 6, 1), date(2025, 6, 8), date(2025, 6, 15)], "weekly"),
        ([date(2025, 6, 1), date(2025, 7, 1), date(2025, 7, 31)], "monthly"),
        ([date(2023, 5, 1), date(2024, 5, 1)], "annual"),
        ([date(2025, 6, 1), date(2025, 6, 15)], "unknown"),
        ([date(2025, 6, 1)], "unknown"),
        ([], "unknown"),
    ],
)
def test_infer_frequency(dates: list[date], expected: str) -> None:
    assert infer_frequency(dates) == expected


def test_infer_frequency_sorts_input() -> None:
    assert infer_frequency([date(2025, 7, 31), date(2025, 6, 1), date(2025, 7, 1)]) == "monthly"


def test_infer_frequency_even_gap_count_uses_upper_middle() -> None:
    # Gaps 7, 30, 30, 7 -> sorted 7, 7, 30, 30 -> upper middle is 30.
    dates = [date(2025, 1, 1), date(2025, 1, 8), date(2025, 2, 7), date(2025, 3, 9), date(2025, 3, 16)]
    assert infer_frequency(dates) == "monthly"


def test_singleton_annual_wording() -> None:
    freq = infer_singleton_frequency(
        name="Corner Club", description_blob="corner club membership", known=False, count=1, cost=40.0
    )
    assert freq == "annual"


def test_singleton_yearly_brand_above_threshold() -> None:
    kwargs = dict(name="Amazon Prime", description_blob="amzn prime", known=True, count=1)
    assert infer_singleton_frequency(cost=95.0, **kwargs) == "annual"
    # Below the annual floor a monthly-billed brand stays monthly.
    assert infer_singleton_frequency(cost=8.99, **kwargs) == "monthly"


def test_singleton_unknown_merchant() -> None:
    freq = infer_singleton_frequency(
        name="Corner Bakery", description_blob="corner bakery", known=False, count=1, cost=4.5
    )
    assert freq == "unknown"


def test_next_billing_date() -> None:
    assert next_billing_date(date(2025, 1, 31), "monthly") == date(2025, 2, 28)
    assert next_billing_date(date(2025, 1, 31), "weekly") == date(2025, 2, 7)
    assert next_billing_date(date(2024, 2, 29), "annual") == date(2025, 2, 28)
    assert next_billing_date(date(2025, 1, 31), "unknown") is None
