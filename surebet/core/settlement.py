"""Per-leg settlement state machine.

PENDING → {GREEN, RED, VOID, MEIO_GREEN, MEIO_RED}. Terminal states are
final inside the engine; reversing a liquidation is the ledger's business.
The transition returns the realized payout so ticket-level realized profit
is always computed from the same per-leg rule.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from surebet.core.legs import Leg, LegResult, Ticket

TWO = Decimal(2)


class SettlementError(ValueError):
    """Illegal settlement transition requested by the caller."""


def leg_payout(result: LegResult, stake: Decimal, odd: Decimal) -> Decimal | None:
    """Amount returned by the bookmaker for a settled leg (stake included).

    GREEN       stake * odd
    RED         0
    VOID        stake
    MEIO_GREEN  stake + stake * (odd - 1) / 2   (half the winnings)
    MEIO_RED    stake / 2                        (half the stake lost)
    PENDING     None
    """
    if result is LegResult.GREEN:
        return stake * odd
    if result is LegResult.RED:
        return Decimal(0)
    if result is LegResult.VOID:
        return stake
    if result is LegResult.MEIO_GREEN:
        return stake + stake * (odd - Decimal(1)) / TWO
    if result is LegResult.MEIO_RED:
        return stake / TWO
    return None


@dataclass(frozen=True)
class Settlement:
    """Outcome of settling one leg, in the leg's own currency."""

    index: int
    leg: Leg
    result: LegResult
    payout: Decimal
    profit: Decimal


def can_transition(current: LegResult, new: LegResult) -> bool:
    if new is LegResult.PENDING:
        return False
    return current is LegResult.PENDING or current is new


def transition(leg: Leg, result: LegResult, index: int = 0) -> Settlement:
    """Settle ``leg`` with ``result``.

    Re-applying the leg's current terminal result is a no-op.

    Raises:
        SettlementError: back to PENDING, a change between terminal results,
            or a leg without a valid odd and stake.
    """
    if not can_transition(leg.result, result):
        raise SettlementError(f"Leg {index} cannot go from {leg.result.value} to {result.value}")

    stake = leg.total_stake
    odd = leg.average_odd
    if stake is None or stake < 0 or odd is None:
        raise SettlementError(f"Leg {index} has no valid odd/stake to settle")

    payout = leg_payout(result, stake, odd)
    if payout is None:
        raise SettlementError(f"Leg {index} cannot settle as {result.value}")
    return Settlement(
        index=index,
        leg=replace(leg, result=result),
        result=result,
        payout=payout,
        profit=payout - stake,
    )


def settle(ticket: Ticket, index: int, result: LegResult) -> tuple[Ticket, Settlement]:
    """Settle one leg of ``ticket``; returns the new ticket and the settlement."""
    if not 0 <= index < len(ticket.legs):
        raise SettlementError(f"Leg index {index} out of range for {len(ticket.legs)} legs")
    settlement = transition(ticket.legs[index], result, index)
    return ticket.with_leg(index, settlement.leg), settlement
