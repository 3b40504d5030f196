"""Stake solver — derives every dependent leg's stake from one driving input.

Modes:
  EQUALIZED     every leg pays the reference leg's payout.
  TARGET_TOTAL  a desired total stake is split so every leg pays the same.
  DIRECTED      directed legs keep their stakes; the other legs are solved
                to the profit floor so the surplus lands on the directed legs.

The solver never raises for business inputs: missing data degrades to a
non-SOLVED status with the ticket returned unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum

from surebet.core.legs import Ticket
from surebet.utils.odds import MIN_ODD, is_valid_odd


class SolveMode(str, Enum):
    EQUALIZED = "equalized"
    DIRECTED = "directed"
    TARGET_TOTAL = "target_total"


class SolveStatus(str, Enum):
    SOLVED = "solved"
    INSUFFICIENT_DATA = "insufficient_data"
    NO_REFERENCE = "no_reference"


@dataclass(frozen=True)
class SolveResult:
    """Solver output. ``stakes`` holds every leg's total stake after solving."""

    ticket: Ticket
    status: SolveStatus
    mode: SolveMode
    stakes: tuple[Decimal | None, ...] = ()
    reference_index: int | None = None
    changed: frozenset[int] = field(default_factory=frozenset)
    directed_fallback: bool = False

    @property
    def is_solved(self) -> bool:
        return self.status is SolveStatus.SOLVED


def solve(
    ticket: Ticket,
    *,
    target_total: Decimal | None = None,
    profit_floor: Decimal = Decimal(0),
    min_odd: Decimal = MIN_ODD,
) -> SolveResult:
    """Recompute dependent stakes for ``ticket``.

    Args:
        ticket: Current legs and reference.
        target_total: When given, split this total instead of following the
            reference leg's stake.
        profit_floor: Profit the non-directed legs are solved to in DIRECTED mode.
        min_odd: Odds below this leave the leg out of the solve.
    """
    odds: dict[int, Decimal] = {}
    for i, leg in enumerate(ticket.legs):
        odd = leg.average_odd
        if odd is not None and is_valid_odd(odd, min_odd):
            odds[i] = odd

    if target_total is not None:
        mode = SolveMode.TARGET_TOTAL
    elif _is_directed(ticket, odds):
        mode = SolveMode.DIRECTED
    else:
        mode = SolveMode.EQUALIZED

    if len(odds) < 2:
        return _unsolved(ticket, SolveStatus.INSUFFICIENT_DATA, mode)

    if target_total is not None:
        return _solve_target_total(ticket, odds, target_total)

    if mode is SolveMode.DIRECTED:
        directed = _solve_directed(ticket, odds, profit_floor)
        if directed is not None:
            return directed
        return replace(_solve_equalized(ticket, odds, min_odd), directed_fallback=True)

    return _solve_equalized(ticket, odds, min_odd)


def _is_directed(ticket: Ticket, odds: dict[int, Decimal]) -> bool:
    """Directed only when some, but not all, usable legs are marked."""
    marked = [i for i in odds if ticket.legs[i].is_directed_profit]
    return 0 < len(marked) < len(odds)


def _unsolved(ticket: Ticket, status: SolveStatus, mode: SolveMode) -> SolveResult:
    return SolveResult(
        ticket=ticket,
        status=status,
        mode=mode,
        stakes=tuple(leg.total_stake for leg in ticket.legs),
        reference_index=ticket.reference_index,
    )


def _finish(
    ticket: Ticket,
    new_stakes: dict[int, Decimal],
    mode: SolveMode,
    reference_index: int | None,
) -> SolveResult:
    changed = frozenset(i for i, s in new_stakes.items() if ticket.legs[i].total_stake != s)
    solved = ticket.with_stakes({i: new_stakes[i] for i in changed})
    return SolveResult(
        ticket=solved,
        status=SolveStatus.SOLVED,
        mode=mode,
        stakes=tuple(leg.total_stake for leg in solved.legs),
        reference_index=reference_index,
        changed=changed,
    )


def _solve_equalized(ticket: Ticket, odds: dict[int, Decimal], min_odd: Decimal) -> SolveResult:
    """stake_i = stake_ref * odd_ref / odd_i for every unlocked usable leg."""
    ref = ticket.reference_index
    if ref is None:
        ref = ticket.implicit_reference_index(min_odd)
    if ref is None or ref not in odds:
        return _unsolved(ticket, SolveStatus.NO_REFERENCE, SolveMode.EQUALIZED)

    ref_stake = ticket.legs[ref].total_stake
    if ref_stake is None or ref_stake < 0:
        return _unsolved(ticket, SolveStatus.INSUFFICIENT_DATA, SolveMode.EQUALIZED)

    target_return = ref_stake * odds[ref]
    new_stakes = {
        i: target_return / odd
        for i, odd in odds.items()
        if i != ref and not ticket.legs[i].is_locked
    }
    return _finish(ticket, new_stakes, SolveMode.EQUALIZED, ref)


def _solve_target_total(
    ticket: Ticket,
    odds: dict[int, Decimal],
    target_total: Decimal,
) -> SolveResult:
    """Split ``target_total`` minus locked stakes in proportion to 1/odd."""
    locked = [i for i in odds if ticket.legs[i].is_locked]
    free = [i for i in odds if i not in locked]
    if not free or target_total < 0:
        return _unsolved(ticket, SolveStatus.INSUFFICIENT_DATA, SolveMode.TARGET_TOTAL)

    locked_total = sum((ticket.legs[i].total_stake or Decimal(0) for i in locked), Decimal(0))
    budget = max(target_total - locked_total, Decimal(0))

    inverse = {i: Decimal(1) / odds[i] for i in free}
    inverse_sum = sum(inverse.values(), Decimal(0))
    new_stakes = {i: budget * inverse[i] / inverse_sum for i in free}

    return _finish(ticket, new_stakes, SolveMode.TARGET_TOTAL, ticket.reference_index)


def _solve_directed(
    ticket: Ticket,
    odds: dict[int, Decimal],
    profit_floor: Decimal,
) -> SolveResult | None:
    """Solve non-directed legs to ``profit_floor``; None when infeasible.

    With S_D the directed stakes and σ_U = Σ 1/odd over non-directed legs:
        T = (S_D + F·σ_U) / (1 − σ_U),  stake_u = (T + F) / odd_u
    """
    legs = ticket.legs
    directed = [i for i in odds if legs[i].is_directed_profit]
    undirected = [i for i in odds if not legs[i].is_directed_profit]

    anchor = _directed_anchor(ticket, directed)
    if anchor is None:
        return None
    anchor_return = (legs[anchor].total_stake or Decimal(0)) * odds[anchor]

    directed_stakes: dict[int, Decimal] = {}
    for i in directed:
        stake = legs[i].total_stake
        if stake is not None and stake > 0:
            directed_stakes[i] = stake
        else:
            directed_stakes[i] = anchor_return / odds[i]

    sigma_u = sum((Decimal(1) / odds[i] for i in undirected), Decimal(0))
    if sigma_u >= 1:
        return None

    directed_total = sum(directed_stakes.values(), Decimal(0))
    total = (directed_total + profit_floor * sigma_u) / (Decimal(1) - sigma_u)

    # Every directed leg must pay at least the floor
    if any(stake * odds[i] - total < profit_floor for i, stake in directed_stakes.items()):
        return None

    new_stakes = dict(directed_stakes)
    for i in undirected:
        new_stakes[i] = (total + profit_floor) / odds[i]

    return _finish(ticket, new_stakes, SolveMode.DIRECTED, anchor)


def _directed_anchor(ticket: Ticket, directed: list[int]) -> int | None:
    """The reference if it is directed, else the first directed leg with a stake."""
    ref = ticket.reference_index
    candidates = ([ref] if ref is not None and ref in directed else []) + directed
    for i in candidates:
        stake = ticket.legs[i].total_stake
        if stake is not None and stake > 0:
            return i
    return None
