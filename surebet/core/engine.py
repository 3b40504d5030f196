"""Surebet engine facade — the boundary between the UI/persistence layer and
the pure allocation and settlement functions.

Usage:
    engine = SurebetEngine()
    state = engine.recompute(ticket, directory, rates)
    if state.can_submit:
        ticket, request = engine.confirm(state.ticket, directory, sink, rates)
    ...
    ticket, settlement, realized = engine.settle(ticket, 0, LegResult.GREEN, rates, sink)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from pydantic import BaseModel

from surebet.config.settings import SurebetConfig, get_config
from surebet.core.balance_guard import BalanceReport, BookmakerAccount, check_balances
from surebet.core.currency import RateTable
from surebet.core.evaluator import (
    LegIssue,
    RealizedAnalysis,
    TicketAnalysis,
    evaluate,
    evaluate_realized,
)
from surebet.core.legs import LegResult, Ticket, TicketError
from surebet.core.rounding import RoundingOutcome, apply_rounding, round_stakes
from surebet.core.settlement import Settlement, settle as settle_leg
from surebet.core.solver import SolveResult, solve
from surebet.utils.logger import get_logger

logger = get_logger("surebet_engine")

CENT = Decimal("0.01")


def money(value: Decimal) -> Decimal:
    """Quantize to cents for persistence."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# ================================================================
# Collaborator interfaces
# ================================================================


class BookmakerDirectory(Protocol):
    def get_bookmaker(self, bookmaker_id: str) -> BookmakerAccount | None: ...


class BetSink(Protocol):
    """Persistence boundary: bet creation and per-leg liquidation."""

    def create_bets(self, request: CreateBetsRequest) -> list[str] | None: ...

    def liquidate_leg(self, request: LiquidationRequest) -> None: ...


class LegPayload(BaseModel):
    bookmaker_id: str
    odd: Decimal
    stake: Decimal
    currency: str
    selection_label: str = ""


class CreateBetsRequest(BaseModel):
    legs: list[LegPayload]
    projected_profit: Decimal
    projected_roi: Decimal
    currency: str
    model: str


class LiquidationRequest(BaseModel):
    leg_id: str
    result: LegResult
    payout: Decimal
    profit: Decimal
    currency: str


def ticket_model(num_legs: int) -> str:
    if num_legs == 2:
        return "1-2"
    if num_legs == 3:
        return "1-X-2"
    return f"{num_legs}-way"


# ================================================================
# Derived state
# ================================================================


@dataclass(frozen=True)
class TicketState:
    """Everything derived from one ticket mutation."""

    ticket: Ticket
    solve: SolveResult
    analysis: TicketAnalysis
    balances: BalanceReport

    @property
    def can_submit(self) -> bool:
        return (
            self.analysis.complete_count == self.analysis.num_legs
            and self.analysis.is_complete
            and self.analysis.total_stake is not None
            and not self.balances.has_insufficient_balance
        )


class SurebetEngine:
    """Stateless apart from its configuration."""

    def __init__(self, config: SurebetConfig | None = None) -> None:
        self._config = config or get_config()

    @property
    def config(self) -> SurebetConfig:
        return self._config

    def _eval_kwargs(self) -> dict:
        return {
            "fallback_dominant": self._config.currency.fallback_dominant,
            "min_odd": self._config.ticket.min_odd,
        }

    def _rates(self, rates: RateTable | None) -> RateTable:
        return rates or RateTable(base=self._config.currency.rate_base)

    def accounts_for(
        self,
        ticket: Ticket,
        directory: BookmakerDirectory,
    ) -> dict[str, BookmakerAccount]:
        """Look up every bookmaker referenced by the ticket."""
        ids = {leg.bookmaker_id for leg in ticket.legs if leg.bookmaker_id}
        ids.update(
            e.bookmaker_id for leg in ticket.legs for e in leg.additional_entries if e.bookmaker_id
        )
        accounts: dict[str, BookmakerAccount] = {}
        for bookmaker_id in sorted(ids):
            account = directory.get_bookmaker(bookmaker_id)
            if account is not None:
                accounts[bookmaker_id] = account
        return accounts

    def recompute(
        self,
        ticket: Ticket,
        directory: BookmakerDirectory,
        rates: RateTable | None = None,
        *,
        target_total: Decimal | None = None,
        committed: Mapping[str, Decimal] | None = None,
    ) -> TicketState:
        """Solve → (round, when enabled) → evaluate → guard."""
        solved = solve(
            ticket,
            target_total=target_total,
            profit_floor=self._config.directed.profit_floor,
            min_odd=self._config.ticket.min_odd,
        )
        rounding = self._config.rounding
        if rounding.enabled and solved.is_solved:
            rounded = round_stakes(solved.ticket, rounding.increment, rounding.min_stake)
            solved = replace(
                solved,
                ticket=rounded,
                stakes=tuple(leg.total_stake for leg in rounded.legs),
            )

        analysis = evaluate(solved.ticket, self._rates(rates), **self._eval_kwargs())
        balances = check_balances(
            solved.ticket,
            self.accounts_for(solved.ticket, directory),
            committed,
            self._rates(rates),
        )
        analysis = _flag_insufficient(analysis, balances)

        logger.debug(
            "ticket_recomputed",
            legs=len(ticket.legs),
            mode=solved.mode.value,
            status=solved.status.value,
            directed_fallback=solved.directed_fallback,
            min_profit=analysis.min_profit,
            insufficient=sorted(balances.insufficient_legs),
        )
        return TicketState(
            ticket=solved.ticket,
            solve=solved,
            analysis=analysis,
            balances=balances,
        )

    def round(
        self,
        ticket: Ticket,
        rates: RateTable | None = None,
        increment: Decimal | None = None,
    ) -> RoundingOutcome:
        """Round stakes to the configured (or given) increment and re-evaluate."""
        cfg = self._config.rounding
        outcome = apply_rounding(
            ticket,
            increment if increment is not None else cfg.increment,
            min_stake=cfg.min_stake,
            rates=self._rates(rates),
            **self._eval_kwargs(),
        )
        if outcome.guarantee_lost:
            logger.warning(
                "rounding_broke_guarantee",
                increment=outcome.increment,
                before=outcome.min_profit_before,
                after=outcome.min_profit_after,
            )
        return outcome

    def confirm(
        self,
        ticket: Ticket,
        directory: BookmakerDirectory,
        sink: BetSink,
        rates: RateTable | None = None,
        committed: Mapping[str, Decimal] | None = None,
    ) -> tuple[Ticket, CreateBetsRequest]:
        """Hand the finalized legs to the persistence sink.

        Raises:
            TicketError: a leg is incomplete, an aggregate is unavailable, or
                a bookmaker cannot fund its leg.
        """
        analysis = evaluate(ticket, self._rates(rates), **self._eval_kwargs())
        if analysis.complete_count < analysis.num_legs:
            raise TicketError(
                f"Fill in all {analysis.num_legs} legs ({analysis.complete_count} complete)"
            )
        if analysis.min_profit is None or analysis.min_roi is None:
            raise TicketError(f"Ticket cannot be evaluated: {sorted(i.value for i in analysis.issues)}")

        balances = check_balances(
            ticket, self.accounts_for(ticket, directory), committed, self._rates(rates)
        )
        if balances.has_insufficient_balance:
            legs = ", ".join(str(i + 1) for i in sorted(balances.insufficient_legs))
            raise TicketError(f"Insufficient balance on leg(s) {legs}")

        request = CreateBetsRequest(
            legs=[
                LegPayload(
                    bookmaker_id=leg.bookmaker_id,
                    odd=leg.average_odd,
                    stake=money(leg.total_stake),
                    currency=leg.currency,
                    selection_label=leg.selection_label,
                )
                for leg in ticket.legs
                if leg.average_odd is not None and leg.total_stake is not None
            ],
            projected_profit=money(analysis.min_profit),
            projected_roi=money(analysis.min_roi),
            currency=analysis.dominant_currency,
            model=ticket_model(len(ticket.legs)),
        )
        leg_ids = sink.create_bets(request)
        if leg_ids:
            for i, leg_id in enumerate(leg_ids[: len(ticket.legs)]):
                ticket = ticket.with_leg(i, replace(ticket.legs[i], leg_id=leg_id))

        logger.info(
            "ticket_confirmed",
            legs=len(request.legs),
            model=request.model,
            projected_profit=request.projected_profit,
            projected_roi=request.projected_roi,
            currency=request.currency,
        )
        return ticket, request

    def settle(
        self,
        ticket: Ticket,
        index: int,
        result: LegResult,
        rates: RateTable | None = None,
        sink: BetSink | None = None,
    ) -> tuple[Ticket, Settlement, RealizedAnalysis]:
        """Settle one leg, optionally liquidate it, and re-evaluate in realized mode."""
        leg = ticket.legs[index] if 0 <= index < len(ticket.legs) else None
        if sink is not None and leg is not None and not leg.leg_id:
            raise TicketError(f"Leg {index} has not been persisted; nothing to liquidate")

        settled_ticket, settlement = settle_leg(ticket, index, result)
        # a repeated result is a no-op and was already liquidated
        repeated = leg is not None and leg.result is result
        if sink is not None and not repeated:
            sink.liquidate_leg(
                LiquidationRequest(
                    leg_id=settlement.leg.leg_id or "",
                    result=settlement.result,
                    payout=money(settlement.payout),
                    profit=money(settlement.profit),
                    currency=settlement.leg.currency,
                )
            )

        realized = evaluate_realized(settled_ticket, self._rates(rates), **self._eval_kwargs())
        logger.info(
            "leg_settled",
            leg=index,
            result=result.value,
            profit=settlement.profit,
            ticket_result=realized.overall_result.value,
            realized_profit=realized.profit,
        )
        return settled_ticket, settlement, realized

    def realized(self, ticket: Ticket, rates: RateTable | None = None) -> RealizedAnalysis:
        return evaluate_realized(ticket, self._rates(rates), **self._eval_kwargs())


def _flag_insufficient(analysis: TicketAnalysis, balances: BalanceReport) -> TicketAnalysis:
    if not balances.has_insufficient_balance:
        return analysis
    scenarios = tuple(
        replace(s, issues=s.issues | {LegIssue.INSUFFICIENT_BALANCE})
        if s.index in balances.insufficient_legs
        else s
        for s in analysis.scenarios
    )
    return replace(analysis, scenarios=scenarios)
