"""Tests for the stake solver.

Tests verify:
1. Equalized: every leg pays the reference payout (2.10 / 2.05 → 102.44)
2. Reference invariance of the guaranteed profit
3. Locked legs are left alone
4. Target total splits by 1/odd
5. Directed profit: directed legs never earn less than the others
6. Missing data degrades without raising
"""

from __future__ import annotations

from decimal import Decimal

from conftest import approx, make_ticket

from surebet.core.evaluator import evaluate
from surebet.core.legs import StakeOrigin, Ticket
from surebet.core.solver import SolveMode, SolveStatus, solve


def _profits(ticket: Ticket) -> list[Decimal]:
    analysis = evaluate(ticket)
    return [s.profit for s in analysis.scenarios if s.profit is not None]


class TestEqualized:
    def test_two_leg_example(self, two_leg_ticket: Ticket) -> None:
        result = solve(two_leg_ticket)
        assert result.status is SolveStatus.SOLVED
        assert result.mode is SolveMode.EQUALIZED
        assert result.changed == frozenset({1})
        stake = result.ticket.legs[1].stake
        assert approx(stake, "102.43902439", Decimal("1e-6"))
        assert result.ticket.legs[1].stake_origin is StakeOrigin.REFERENCE

    def test_every_leg_pays_the_same(self) -> None:
        ticket = make_ticket(["2.5", "3.8", "4.4"], ["100", None, None])
        result = solve(ticket)
        payouts = [leg.stake * leg.odd for leg in result.ticket.legs]
        assert all(approx(p, payouts[0]) for p in payouts)

    def test_equal_profit_matches_identity(self) -> None:
        """profit = total * (1/Σ − 1) for any arbitrage book."""
        odds = ["2.5", "3.8", "4.4"]
        result = solve(make_ticket(odds, ["100", None, None]))
        analysis = evaluate(result.ticket)
        sigma = sum(Decimal(1) / Decimal(o) for o in odds)
        expected = analysis.total_stake * (Decimal(1) / sigma - Decimal(1))
        for s in analysis.scenarios:
            assert approx(s.profit, expected)

    def test_reference_invariance(self) -> None:
        odds = ["2.5", "3.8", "4.4"]
        from_first = solve(make_ticket(odds, ["100", None, None], reference=0)).ticket
        # Same total, driven from the last leg instead
        third_stake = from_first.legs[2].stake
        from_last = solve(make_ticket(odds, [None, None, str(third_stake)], reference=2)).ticket

        a, b = evaluate(from_first), evaluate(from_last)
        assert approx(a.total_stake, b.total_stake)
        assert approx(a.min_profit, b.min_profit)
        assert approx(a.min_roi, b.min_roi)

    def test_reference_zero_zeroes_dependents(self) -> None:
        result = solve(make_ticket(["2", "2"], ["0", "50"]))
        assert result.ticket.legs[1].stake == Decimal(0)

    def test_locked_leg_untouched(self) -> None:
        ticket = make_ticket(["2", "3", "4"], ["100", None, None]).update_stake(1, "10")
        result = solve(ticket)
        assert result.ticket.legs[1].stake == Decimal("10")
        assert approx(result.ticket.legs[2].stake, "50")
        assert 1 not in result.changed

    def test_invalid_odd_leg_skipped(self) -> None:
        ticket = make_ticket(["2", "0", "4"], ["100", "7", None])
        result = solve(ticket)
        assert result.ticket.legs[1].stake == Decimal("7")
        assert approx(result.ticket.legs[2].stake, "50")

    def test_implicit_reference(self) -> None:
        ticket = make_ticket(["2", "4"], [None, "25"], reference=None)
        result = solve(ticket)
        assert result.reference_index == 1
        assert approx(result.ticket.legs[0].stake, "50")

    def test_non_arbitrage_reports_loss(self) -> None:
        """1.9 / 3.6 / 4.2 overround: the loss is reported, not hidden."""
        result = solve(make_ticket(["1.9", "3.6", "4.2"], ["100", None, None]))
        analysis = evaluate(result.ticket)
        assert analysis.min_profit is not None and analysis.min_profit < 0
        assert not analysis.is_valid_arbitrage


class TestDegradation:
    def test_single_valid_odd(self) -> None:
        ticket = make_ticket(["2", None], ["100", None])
        result = solve(ticket)
        assert result.status is SolveStatus.INSUFFICIENT_DATA
        assert result.ticket is ticket

    def test_unparsed_reference_stake(self) -> None:
        result = solve(make_ticket(["2", "2"], [None, None]))
        assert result.status is SolveStatus.INSUFFICIENT_DATA
        assert not result.is_solved

    def test_no_reference_found(self) -> None:
        result = solve(make_ticket(["2", "2"], [None, None], reference=None))
        assert result.status is SolveStatus.NO_REFERENCE

    def test_reference_with_invalid_odd(self) -> None:
        result = solve(make_ticket(["1", "2", "3"], ["100", None, None]))
        assert result.status is SolveStatus.NO_REFERENCE


class TestTargetTotal:
    def test_split_by_inverse_odds(self) -> None:
        result = solve(make_ticket(["2", "2"], [None, None]), target_total=Decimal("300"))
        assert result.mode is SolveMode.TARGET_TOTAL
        assert [leg.stake for leg in result.ticket.legs] == [Decimal("150"), Decimal("150")]

    def test_locked_stakes_held(self) -> None:
        ticket = make_ticket(["2", "3", "6"], [None, None, None]).update_stake(2, "20")
        result = solve(ticket, target_total=Decimal("200"))
        stakes = [leg.stake for leg in result.ticket.legs]
        # 180 over 1/2 and 1/3 → 108 / 72
        assert approx(stakes[0], "108")
        assert approx(stakes[1], "72")
        assert stakes[2] == Decimal("20")
        assert approx(sum(stakes), "200")


class TestDirected:
    def test_single_directed_leg_takes_surplus(self) -> None:
        ticket = make_ticket(["3.0", "3.5", "4.0"], ["100", None, None]).set_directed([0])
        result = solve(ticket)
        assert result.mode is SolveMode.DIRECTED
        assert not result.directed_fallback
        profits = _profits(result.ticket)
        assert profits[0] > 0
        assert approx(profits[1], "0")
        assert approx(profits[2], "0")

    def test_unstaked_directed_leg_filled_from_anchor(self) -> None:
        ticket = make_ticket(["3.0", "3.5", "4.0"], ["100", None, None]).set_directed([0, 1])
        result = solve(ticket)
        assert approx(result.ticket.legs[1].stake * Decimal("3.5"), "300")
        profits = _profits(result.ticket)
        assert approx(profits[0], profits[1])
        assert approx(profits[2], "0")

    def test_profit_floor(self) -> None:
        ticket = make_ticket(["3.0", "3.5", "4.0"], ["100", None, None]).set_directed([0])
        result = solve(ticket, profit_floor=Decimal("5"))
        profits = _profits(result.ticket)
        assert approx(profits[1], "5")
        assert approx(profits[2], "5")
        assert profits[0] >= Decimal("5")

    def test_infeasible_falls_back_to_equalized(self) -> None:
        # 1/1.5 + 1/1.8 > 1: the non-directed legs cannot be covered
        ticket = make_ticket(["5.0", "1.5", "1.8"], ["100", None, None]).set_directed([0])
        result = solve(ticket)
        assert result.directed_fallback
        assert result.status is SolveStatus.SOLVED
        profits = _profits(result.ticket)
        assert all(approx(p, profits[0]) for p in profits)

    def test_all_directed_is_equalized(self) -> None:
        ticket = make_ticket(["2.10", "2.05"], ["100", None]).set_directed([0, 1])
        result = solve(ticket)
        assert result.mode is SolveMode.EQUALIZED

    def test_directed_exclusivity(self) -> None:
        """A non-directed winner never beats a directed winner."""
        cases = [
            (["3.0", "3.5", "4.0"], [0]),
            (["3.0", "3.5", "4.0"], [2]),
            (["2.2", "3.9", "7.5"], [1, 2]),
            (["5.0", "1.5", "1.8"], [0]),
            (["2.10", "2.05"], [1]),
        ]
        for odds, directed in cases:
            stakes = ["100"] + [None] * (len(odds) - 1)
            ticket = make_ticket(odds, stakes).set_directed(directed)
            analysis = evaluate(solve(ticket).ticket)
            inside = [s.profit for s in analysis.scenarios if s.is_directed]
            outside = [s.profit for s in analysis.scenarios if not s.is_directed]
            assert max(outside) <= min(inside) + Decimal("1e-9"), (odds, directed)
