import pytest

from basketswap.orders.fees import add_fees, fees_for, remove_fees

RATE = 30


def test_fees_without_rounding_error() -> None:
    # 30 * 10_000 is divisible by 10_000
    assert fees_for(10_000, RATE) == 30


def test_fees_with_rounding_error() -> None:
    # 30 * 10_010 = 300_300 is not
    assert fees_for(10_010, RATE) == 30


def test_add_fees() -> None:
    assert add_fees(10_000, RATE) == 10_030
    assert add_fees(10_001, RATE) == 10_031


def test_remove_fees_exact_preimage() -> None:
    assert remove_fees(10_030, RATE) == 10_000
    assert remove_fees(10_031, RATE) == 10_001


def test_remove_fees_without_exact_preimage_underspends() -> None:
    without_fees = remove_fees(9953, 80)

    assert add_fees(without_fees, 80) == 9952


@pytest.mark.parametrize("amount", [0, -5])
def test_remove_fees_degenerate_amounts(amount: int) -> None:
    assert remove_fees(amount, RATE) == 0


@pytest.mark.parametrize("rate", [0, 1, 30, 80, 250])
def test_remove_fees_is_largest_preimage(rate: int) -> None:
    for total in range(1, 3000, 7):
        result = remove_fees(total, rate)
        assert add_fees(result, rate) <= total
        assert add_fees(result + 1, rate) > total
