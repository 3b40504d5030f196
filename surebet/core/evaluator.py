"""Scenario evaluator.

Hypothetical mode treats each leg in turn as the winning outcome and reports
payout, profit and ROI against the whole ticket's stake; the guaranteed
figures are the minimum across those scenarios. Realized mode uses each
leg's settlement result instead.

All aggregates are in the dominant currency. "No data" is None.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from surebet.core.currency import (
    RateTable,
    RateUnavailable,
    dominant_currency,
    from_dominant,
    is_multi_currency,
    to_dominant,
)
from surebet.core.legs import Leg, LegResult, Ticket
from surebet.core.settlement import leg_payout
from surebet.utils.odds import MIN_ODD, is_valid_odd

HUNDRED = Decimal(100)


class LegIssue(str, Enum):
    INVALID_ODD = "invalid_odd"
    INVALID_STAKE = "invalid_stake"
    RATE_UNAVAILABLE = "rate_unavailable"
    INSUFFICIENT_BALANCE = "insufficient_balance"


class TicketIssue(str, Enum):
    NO_REFERENCE_LEG = "no_reference_leg"
    DEGENERATE_TICKET = "degenerate_ticket"
    INCOMPLETE_RATES = "incomplete_rates"


@dataclass(frozen=True)
class LegScenario:
    """The "this leg wins" scenario of one leg."""

    index: int
    selection_label: str
    currency: str
    stake: Decimal | None
    odd: Decimal | None
    payout: Decimal | None
    stake_dominant: Decimal | None = None
    payout_dominant: Decimal | None = None
    profit: Decimal | None = None
    roi: Decimal | None = None
    profit_native: Decimal | None = None
    is_directed: bool = False
    is_reference: bool = False
    issues: frozenset[LegIssue] = field(default_factory=frozenset)

    @property
    def has_scenario(self) -> bool:
        return self.profit is not None

    @property
    def is_positive(self) -> bool:
        return self.profit is not None and self.profit >= 0


@dataclass(frozen=True)
class TicketAnalysis:
    dominant_currency: str
    is_multi_currency: bool
    num_legs: int
    scenarios: tuple[LegScenario, ...]
    total_stake: Decimal | None = None
    min_profit: Decimal | None = None
    max_profit: Decimal | None = None
    min_roi: Decimal | None = None
    max_roi: Decimal | None = None
    implied_sum: Decimal | None = None
    valid_odds_count: int = 0
    complete_count: int = 0
    issues: frozenset[TicketIssue] = field(default_factory=frozenset)

    @property
    def is_valid_arbitrage(self) -> bool:
        """Every leg filled in and no outcome loses money."""
        return (
            self.complete_count >= self.num_legs
            and self.min_profit is not None
            and self.min_profit >= 0
        )

    @property
    def is_partial(self) -> bool:
        """Some, but not all, outcomes are covered."""
        return 2 <= self.complete_count < self.num_legs

    @property
    def is_complete(self) -> bool:
        """False when a missing rate left the aggregates unavailable."""
        return TicketIssue.INCOMPLETE_RATES not in self.issues

    def scenario(self, index: int) -> LegScenario:
        return self.scenarios[index]


@dataclass(frozen=True)
class RealizedAnalysis:
    """Profit once results arrive; pending legs keep their guaranteed figure."""

    dominant_currency: str
    settled_count: int
    pending_count: int
    settled_profit: Decimal | None
    pending_profit: Decimal | None
    profit: Decimal | None
    total_stake: Decimal | None
    roi: Decimal | None
    overall_result: LegResult
    leg_payouts: tuple[Decimal | None, ...] = ()
    issues: frozenset[TicketIssue] = field(default_factory=frozenset)

    @property
    def is_final(self) -> bool:
        return self.pending_count == 0 and self.settled_count > 0


def leg_issues(leg: Leg, min_odd: Decimal = MIN_ODD) -> frozenset[LegIssue]:
    issues: set[LegIssue] = set()
    if not is_valid_odd(leg.average_odd, min_odd):
        issues.add(LegIssue.INVALID_ODD)
    stake = leg.total_stake
    if stake is None or stake < 0:
        issues.add(LegIssue.INVALID_STAKE)
    return frozenset(issues)


def ticket_dominant_currency(ticket: Ticket, fallback: str = "BRL") -> str:
    """Majority currency of the legs placed at a bookmaker."""
    placed = [leg.currency for leg in ticket.legs if leg.bookmaker_id]
    return dominant_currency(placed or ticket.currencies, fallback)


def evaluate(
    ticket: Ticket,
    rates: RateTable | None = None,
    *,
    dominant: str | None = None,
    fallback_dominant: str = "BRL",
    min_odd: Decimal = MIN_ODD,
) -> TicketAnalysis:
    """Hypothetical "leg i wins" table plus the guaranteed (minimum) figures."""
    dominant = dominant or ticket_dominant_currency(ticket, fallback_dominant)
    rates = rates or RateTable(base=dominant)

    partial: list[dict] = []
    ticket_issues: set[TicketIssue] = set()
    usable_count = 0
    implied = Decimal(0)

    for i, leg in enumerate(ticket.legs):
        issues = set(leg_issues(leg, min_odd))
        stake = leg.total_stake
        odd = leg.average_odd
        row: dict = {
            "index": i,
            "selection_label": leg.selection_label,
            "currency": leg.currency,
            "stake": stake,
            "odd": odd if is_valid_odd(odd, min_odd) else None,
            "payout": None,
            "is_directed": leg.is_directed_profit,
            "is_reference": ticket.is_reference(i),
            "usable": False,
        }
        if not issues and stake is not None and odd is not None and stake > 0:
            row["usable"] = True
            usable_count += 1
            implied += Decimal(1) / odd
            row["payout"] = stake * odd
            try:
                row["stake_dominant"] = to_dominant(stake, leg.currency, dominant, rates)
                row["payout_dominant"] = to_dominant(stake * odd, leg.currency, dominant, rates)
            except RateUnavailable:
                issues.add(LegIssue.RATE_UNAVAILABLE)
                ticket_issues.add(TicketIssue.INCOMPLETE_RATES)
        row["issues"] = frozenset(issues)
        partial.append(row)

    if ticket.implicit_reference_index(min_odd) is None:
        ticket_issues.add(TicketIssue.NO_REFERENCE_LEG)
    if usable_count < 2:
        ticket_issues.add(TicketIssue.DEGENERATE_TICKET)

    common = {
        "dominant_currency": dominant,
        "is_multi_currency": is_multi_currency(
            leg.currency for leg in ticket.legs if leg.bookmaker_id
        ),
        "num_legs": len(ticket.legs),
        "valid_odds_count": sum(1 for leg in ticket.legs if is_valid_odd(leg.average_odd, min_odd)),
        "complete_count": ticket.complete_count(min_odd),
        "implied_sum": implied if usable_count else None,
        "issues": frozenset(ticket_issues),
    }

    total = sum(
        (r["stake_dominant"] for r in partial if r["usable"] and "stake_dominant" in r),
        Decimal(0),
    )
    no_data = (
        TicketIssue.INCOMPLETE_RATES in ticket_issues
        or TicketIssue.DEGENERATE_TICKET in ticket_issues
        or total == 0
    )
    if no_data:
        scenarios = tuple(_scenario(r) for r in partial)
        return TicketAnalysis(scenarios=scenarios, **common)

    scenarios_list: list[LegScenario] = []
    for r in partial:
        if r["usable"]:
            profit = r["payout_dominant"] - total
            r["profit"] = profit
            r["roi"] = profit / total * HUNDRED
            r["profit_native"] = from_dominant(profit, r["currency"], dominant, rates)
        scenarios_list.append(_scenario(r))

    profits = [s.profit for s in scenarios_list if s.profit is not None]
    min_profit = min(profits)
    max_profit = max(profits)
    return TicketAnalysis(
        scenarios=tuple(scenarios_list),
        total_stake=total,
        min_profit=min_profit,
        max_profit=max_profit,
        min_roi=min_profit / total * HUNDRED,
        max_roi=max_profit / total * HUNDRED,
        **common,
    )


def _scenario(row: dict) -> LegScenario:
    return LegScenario(
        index=row["index"],
        selection_label=row["selection_label"],
        currency=row["currency"],
        stake=row["stake"],
        odd=row["odd"],
        payout=row["payout"],
        stake_dominant=row.get("stake_dominant"),
        payout_dominant=row.get("payout_dominant"),
        profit=row.get("profit"),
        roi=row.get("roi"),
        profit_native=row.get("profit_native"),
        is_directed=row["is_directed"],
        is_reference=row["is_reference"],
        issues=row["issues"],
    )


def evaluate_realized(
    ticket: Ticket,
    rates: RateTable | None = None,
    *,
    dominant: str | None = None,
    fallback_dominant: str = "BRL",
    min_odd: Decimal = MIN_ODD,
) -> RealizedAnalysis:
    """Realized profit from settlement results.

    Settled legs contribute payout(result) − stake. Still-pending legs
    contribute the guaranteed profit of the pending subset: the minimum over
    pending legs of (that leg's payout − Σ pending stakes).
    """
    dominant = dominant or ticket_dominant_currency(ticket, fallback_dominant)
    rates = rates or RateTable(base=dominant)

    settled_profit = Decimal(0)
    settled_count = 0
    total_stake = Decimal(0)
    pending: list[tuple[Decimal, Decimal]] = []  # (stake, payout-if-wins), dominant
    payouts: list[Decimal | None] = []

    try:
        for leg in ticket.legs:
            stake = leg.total_stake
            odd = leg.average_odd
            if odd is None or not is_valid_odd(odd, min_odd) or stake is None or stake <= 0:
                payouts.append(None)
                continue
            stake_dom = to_dominant(stake, leg.currency, dominant, rates)
            total_stake += stake_dom
            payout = leg_payout(leg.result, stake, odd)
            if payout is not None:
                payouts.append(payout)
                settled_profit += to_dominant(payout, leg.currency, dominant, rates) - stake_dom
                settled_count += 1
            else:
                payouts.append(None)
                pending.append((stake_dom, to_dominant(stake * odd, leg.currency, dominant, rates)))
    except RateUnavailable:
        return RealizedAnalysis(
            dominant_currency=dominant,
            settled_count=0,
            pending_count=0,
            settled_profit=None,
            pending_profit=None,
            profit=None,
            total_stake=None,
            roi=None,
            overall_result=LegResult.PENDING,
            issues=frozenset({TicketIssue.INCOMPLETE_RATES}),
        )

    pending_profit: Decimal | None = None
    if pending:
        pending_total = sum((s for s, _ in pending), Decimal(0))
        pending_profit = min(payout - pending_total for _, payout in pending)

    issues: set[TicketIssue] = set()
    if settled_count + len(pending) == 0:
        issues.add(TicketIssue.DEGENERATE_TICKET)
        profit = None
    else:
        profit = settled_profit + (pending_profit or Decimal(0))

    if pending or profit is None:
        overall = LegResult.PENDING
    elif profit > 0:
        overall = LegResult.GREEN
    elif profit < 0:
        overall = LegResult.RED
    else:
        overall = LegResult.VOID

    return RealizedAnalysis(
        dominant_currency=dominant,
        settled_count=settled_count,
        pending_count=len(pending),
        settled_profit=settled_profit if settled_count else None,
        pending_profit=pending_profit,
        profit=profit,
        total_stake=total_stake if total_stake > 0 else None,
        roi=profit / total_stake * HUNDRED if profit is not None and total_stake > 0 else None,
        overall_result=overall,
        leg_payouts=tuple(payouts),
        issues=frozenset(issues),
    )
