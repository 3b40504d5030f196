"""Tests for odds parsing and book math helpers."""

from __future__ import annotations

from decimal import Decimal

import pytest

from surebet.utils.odds import (
    decimal_to_implied,
    equal_payout_profit,
    implied_sum,
    implied_to_decimal,
    is_valid_odd,
    overround,
    remove_vig,
    spread_pct,
    to_decimal,
    weighted_average_odd,
)


class TestToDecimal:
    """Lenient parsing of typed or OCR'd numbers."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("2.10", Decimal("2.10")),
            ("2,10", Decimal("2.10")),
            (" 100 ", Decimal("100")),
            ("1.234,56", Decimal("1234.56")),
            ("1,234.56", Decimal("1234.56")),
            (3, Decimal("3")),
            (2.5, Decimal("2.5")),
        ],
    )
    def test_parses(self, raw: object, expected: Decimal) -> None:
        assert to_decimal(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", "NaN", "inf", True, [1]])
    def test_unparsable_is_none(self, raw: object) -> None:
        assert to_decimal(raw) is None


class TestValidity:
    def test_min_odd_boundary(self) -> None:
        assert is_valid_odd(Decimal("1.01"))
        assert not is_valid_odd(Decimal("1.00"))
        assert not is_valid_odd(Decimal("0"))
        assert not is_valid_odd(None)

    def test_custom_min_odd(self) -> None:
        assert not is_valid_odd(Decimal("1.10"), min_odd=Decimal("1.20"))


class TestConversions:
    def test_implied_round_trip_values(self) -> None:
        assert decimal_to_implied(Decimal("2")) == Decimal("0.5")
        assert implied_to_decimal(Decimal("0.25")) == Decimal("4")

    def test_non_positive_odds_rejected(self) -> None:
        with pytest.raises(ValueError):
            decimal_to_implied(Decimal("0"))

    def test_probability_out_of_range_rejected(self) -> None:
        with pytest.raises(ValueError):
            implied_to_decimal(Decimal("1.5"))

    def test_overround_and_remove_vig(self) -> None:
        probs = [Decimal("0.55"), Decimal("0.55")]
        assert overround(probs) == Decimal("1.10")
        fair = remove_vig(probs)
        assert fair == [Decimal("0.5"), Decimal("0.5")]

    def test_empty_probabilities_rejected(self) -> None:
        with pytest.raises(ValueError):
            overround([])
        with pytest.raises(ValueError):
            remove_vig([])


class TestBookMath:
    def test_implied_sum_below_one_is_arbitrage(self) -> None:
        assert implied_sum([Decimal("2.10"), Decimal("2.05")]) < 1

    def test_spread_pct_ignores_invalid_odds(self) -> None:
        # 1/2 + 1/2 = 1 → 0% spread; the 0 odd is dropped
        assert spread_pct([Decimal("2"), Decimal("2"), Decimal("0")]) == Decimal(0)
        assert spread_pct([]) == Decimal(0)

    def test_spread_pct_negative_for_arbitrage(self) -> None:
        assert spread_pct([Decimal("2.10"), Decimal("2.05")]) < 0

    def test_equal_payout_profit_worked_example(self) -> None:
        """100 @ 2.10 balanced against 2.05 pays 210 everywhere for ~7.56 profit."""
        profit = equal_payout_profit(Decimal("210"), [Decimal("2.10"), Decimal("2.05")])
        assert abs(profit - Decimal("7.5610")) < Decimal("0.0001")


class TestWeightedAverageOdd:
    def test_single_fill(self) -> None:
        assert weighted_average_odd([(Decimal("2.0"), Decimal("100"))]) == Decimal("2.0")

    def test_stake_weighted(self) -> None:
        # (2.0*100 + 2.3*50) / 150 = 2.1
        avg = weighted_average_odd([(Decimal("2.0"), Decimal("100")), (Decimal("2.3"), Decimal("50"))])
        assert avg == Decimal("2.1")

    def test_no_stakes_returns_first_valid_odd(self) -> None:
        assert weighted_average_odd([(Decimal("0"), None), (Decimal("1.8"), None)]) == Decimal("1.8")

    def test_no_valid_odd(self) -> None:
        assert weighted_average_odd([(None, Decimal("10")), (Decimal("1"), Decimal("5"))]) is None
