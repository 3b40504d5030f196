"""Rounding adjuster — house-friendly stakes.

Rounding breaks the equal-payout property, so the outcome always carries a
fresh evaluation of the rounded ticket; the pre-rounding guarantee is only
reported for comparison.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from surebet.core.currency import RateTable
from surebet.core.evaluator import TicketAnalysis, evaluate
from surebet.core.legs import Ticket
from surebet.utils.odds import MIN_ODD


def round_stake(value: Decimal, increment: Decimal) -> Decimal:
    """Nearest multiple of ``increment``, halves rounded up. 102.44 @ 5 → 100."""
    if increment <= 0:
        raise ValueError(f"Rounding increment must be positive, got {increment}")
    steps = (value / increment).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return steps * increment


def round_stakes(
    ticket: Ticket,
    increment: Decimal,
    min_stake: Decimal = Decimal(0),
) -> Ticket:
    """Round every non-reference leg with a positive stake.

    Rounded stakes never fall below ``min_stake``. Stake origins are kept, so
    a locked leg stays locked after rounding.
    """
    stakes: dict[int, Decimal] = {}
    for i, leg in enumerate(ticket.legs):
        stake = leg.total_stake
        if ticket.is_reference(i) or stake is None or stake <= 0:
            continue
        rounded = max(round_stake(stake, increment), min_stake)
        if rounded != stake:
            stakes[i] = rounded

    if not stakes:
        return ticket
    legs = list(ticket.legs)
    for i, total in stakes.items():
        legs[i] = legs[i].with_total_stake(total, legs[i].stake_origin)
    return Ticket(legs=tuple(legs), reference_index=ticket.reference_index)


@dataclass(frozen=True)
class RoundingOutcome:
    ticket: Ticket
    analysis: TicketAnalysis
    increment: Decimal
    min_profit_before: Decimal | None
    min_profit_after: Decimal | None

    @property
    def profit_change(self) -> Decimal | None:
        if self.min_profit_before is None or self.min_profit_after is None:
            return None
        return self.min_profit_after - self.min_profit_before

    @property
    def guarantee_lost(self) -> bool:
        """Was a guaranteed profit before rounding, is not any more."""
        before, after = self.min_profit_before, self.min_profit_after
        return before is not None and before >= 0 and (after is None or after < 0)


def apply_rounding(
    ticket: Ticket,
    increment: Decimal,
    *,
    min_stake: Decimal = Decimal(0),
    rates: RateTable | None = None,
    dominant: str | None = None,
    fallback_dominant: str = "BRL",
    min_odd: Decimal = MIN_ODD,
) -> RoundingOutcome:
    """Round, then re-evaluate the rounded ticket."""
    kwargs = {"dominant": dominant, "fallback_dominant": fallback_dominant, "min_odd": min_odd}
    before = evaluate(ticket, rates, **kwargs)
    rounded = round_stakes(ticket, increment, min_stake)
    after = evaluate(rounded, rates, **kwargs)
    return RoundingOutcome(
        ticket=rounded,
        analysis=after,
        increment=increment,
        min_profit_before=before.min_profit,
        min_profit_after=after.min_profit,
    )
