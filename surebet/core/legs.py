"""Leg (odd entry) model and the ticket that holds the legs.

A ticket is an ordered, growable sequence of legs plus an optional
reference index. Every mutator returns a new Ticket, so the UI layer can keep
the previous state around and a newer computation simply supersedes it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from surebet.utils.odds import MIN_ODD, is_valid_odd, to_decimal, weighted_average_odd

DEFAULT_MIN_LEGS = 2
DEFAULT_MAX_LEGS = 10


class TicketError(ValueError):
    """Bad ticket edit: index out of range, two references, leg count out of bounds."""


class LegResult(str, Enum):
    """Settlement outcome of a single leg."""

    PENDING = "PENDING"
    GREEN = "GREEN"
    RED = "RED"
    VOID = "VOID"
    MEIO_GREEN = "MEIO_GREEN"
    MEIO_RED = "MEIO_RED"

    @property
    def is_settled(self) -> bool:
        return self is not LegResult.PENDING


class StakeOrigin(str, Enum):
    """Where a leg's stake came from. MANUAL and PRINT stakes are user-locked."""

    REFERENCE = "reference"
    MANUAL = "manual"
    PRINT = "print"


@dataclass(frozen=True)
class LegEntry:
    """Additional fill of a leg's selection, possibly at another bookmaker."""

    bookmaker_id: str = ""
    currency: str = "BRL"
    odd: Decimal | None = None
    stake: Decimal | None = None
    selection_label: str = ""


@dataclass(frozen=True)
class Leg:
    """One row of the arbitrage ticket."""

    bookmaker_id: str = ""
    currency: str = "BRL"
    odd: Decimal | None = None
    stake: Decimal | None = None
    selection_label: str = ""
    is_directed_profit: bool = False
    stake_origin: StakeOrigin | None = None
    result: LegResult = LegResult.PENDING
    additional_entries: tuple[LegEntry, ...] = ()
    leg_id: str | None = None

    @property
    def average_odd(self) -> Decimal | None:
        """Stake-weighted odd across the main fill and additional fills."""
        if not self.additional_entries:
            return self.odd if self.odd is not None and self.odd > 1 else None
        return weighted_average_odd(
            [(self.odd, self.stake)] + [(e.odd, e.stake) for e in self.additional_entries]
        )

    @property
    def extra_stake(self) -> Decimal:
        return sum(
            (e.stake for e in self.additional_entries if e.stake is not None and e.stake > 0),
            Decimal(0),
        )

    @property
    def total_stake(self) -> Decimal | None:
        """Main stake plus additional fills. None when nothing is parsed."""
        if not self.additional_entries:
            return self.stake
        extra = self.extra_stake
        if self.stake is None:
            return extra if extra > 0 else None
        return self.stake + extra

    @property
    def is_locked(self) -> bool:
        return self.stake_origin in (StakeOrigin.MANUAL, StakeOrigin.PRINT)

    @property
    def is_settled(self) -> bool:
        return self.result.is_settled

    def is_usable(self, min_odd: Decimal = MIN_ODD) -> bool:
        """Valid odd and a positive stake: the leg takes part in scenario math."""
        stake = self.total_stake
        return is_valid_odd(self.average_odd, min_odd) and stake is not None and stake > 0

    def is_complete(self, min_odd: Decimal = MIN_ODD) -> bool:
        """Usable and placed at a bookmaker: ready to be submitted."""
        return bool(self.bookmaker_id) and self.is_usable(min_odd)

    def stake_by_bookmaker(self) -> dict[str, Decimal]:
        """Positive stakes of this leg grouped by bookmaker id."""
        grouped: dict[str, Decimal] = {}
        fills = [(self.bookmaker_id, self.stake)] + [
            (e.bookmaker_id, e.stake) for e in self.additional_entries
        ]
        for bookmaker_id, stake in fills:
            if not bookmaker_id or stake is None or stake <= 0:
                continue
            grouped[bookmaker_id] = grouped.get(bookmaker_id, Decimal(0)) + stake
        return grouped

    def with_total_stake(self, total: Decimal, origin: StakeOrigin | None) -> Leg:
        """Set the leg's total stake; additional fills keep their share."""
        main = max(total - self.extra_stake, Decimal(0))
        return replace(self, stake=main, stake_origin=origin)


def default_selection_labels(num_legs: int) -> list[str]:
    if num_legs == 2:
        return ["Yes", "No"]
    if num_legs == 3:
        return ["Home", "Draw", "Away"]
    return [f"Option {i + 1}" for i in range(num_legs)]


class DraftLeg(BaseModel):
    """Leg record as produced by a saved draft or a bet-slip OCR import."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    bookmaker_id: str | None = Field(
        default=None, validation_alias=AliasChoices("bookmaker_id", "bookmakerId")
    )
    currency: str = "BRL"
    odd: Any = None
    stake: Any = None
    selection_label: str = Field(
        default="", validation_alias=AliasChoices("selection_label", "selectionLabel")
    )
    is_reference: bool = Field(
        default=False, validation_alias=AliasChoices("is_reference", "isReference")
    )
    is_directed_profit: bool = Field(
        default=False, validation_alias=AliasChoices("is_directed_profit", "isDirectedProfit")
    )
    stake_origin: StakeOrigin | None = Field(
        default=None, validation_alias=AliasChoices("stake_origin", "stakeOrigin")
    )
    result: LegResult = LegResult.PENDING
    leg_id: str | None = Field(default=None, validation_alias=AliasChoices("leg_id", "legId"))
    additional_entries: list[dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("additional_entries", "additionalEntries"),
    )

    def to_leg(self) -> Leg:
        entries = tuple(
            LegEntry(
                bookmaker_id=str(e.get("bookmaker_id") or e.get("bookmakerId") or ""),
                currency=str(e.get("currency") or self.currency),
                odd=to_decimal(e.get("odd")),
                stake=to_decimal(e.get("stake")),
                selection_label=str(e.get("selection_label") or e.get("selectionLabel") or ""),
            )
            for e in self.additional_entries
        )
        return Leg(
            bookmaker_id=self.bookmaker_id or "",
            currency=self.currency,
            odd=to_decimal(self.odd),
            stake=to_decimal(self.stake),
            selection_label=self.selection_label,
            is_directed_profit=self.is_directed_profit,
            stake_origin=self.stake_origin,
            result=self.result,
            additional_entries=entries,
            leg_id=self.leg_id,
        )


@dataclass(frozen=True)
class Ticket:
    """Ordered legs plus the single optional reference leg index."""

    legs: tuple[Leg, ...] = ()
    reference_index: int | None = None

    def __post_init__(self) -> None:
        if self.reference_index is not None and not 0 <= self.reference_index < len(self.legs):
            raise TicketError(
                f"Reference index {self.reference_index} out of range for {len(self.legs)} legs"
            )

    # --- Construction ---

    @classmethod
    def new(
        cls,
        num_legs: int = 2,
        currency: str = "BRL",
        min_legs: int = DEFAULT_MIN_LEGS,
        max_legs: int = DEFAULT_MAX_LEGS,
    ) -> Ticket:
        """Empty ticket with default selection labels and leg 0 as reference."""
        _check_leg_count(num_legs, min_legs, max_legs)
        legs = tuple(
            Leg(currency=currency, selection_label=label)
            for label in default_selection_labels(num_legs)
        )
        return cls(legs=legs, reference_index=0)

    @classmethod
    def from_draft(
        cls,
        records: Iterable[Mapping[str, Any] | DraftLeg],
        min_legs: int = DEFAULT_MIN_LEGS,
        max_legs: int = DEFAULT_MAX_LEGS,
    ) -> Ticket:
        """Build a ticket from draft or OCR records.

        Raises:
            TicketError: more than one record flagged as reference, or the leg
                count is outside [min_legs, max_legs].
        """
        drafts = [r if isinstance(r, DraftLeg) else DraftLeg.model_validate(r) for r in records]
        _check_leg_count(len(drafts), min_legs, max_legs)

        references = [i for i, d in enumerate(drafts) if d.is_reference]
        if len(references) > 1:
            raise TicketError(f"Draft marks {len(references)} reference legs: {references}")

        return cls(
            legs=tuple(d.to_leg() for d in drafts),
            reference_index=references[0] if references else None,
        )

    # --- Queries ---

    def __len__(self) -> int:
        return len(self.legs)

    def is_reference(self, index: int) -> bool:
        return self.reference_index == index

    @property
    def reference_leg(self) -> Leg | None:
        if self.reference_index is None:
            return None
        return self.legs[self.reference_index]

    @property
    def directed_indices(self) -> tuple[int, ...]:
        return tuple(i for i, leg in enumerate(self.legs) if leg.is_directed_profit)

    @property
    def currencies(self) -> list[str]:
        return [leg.currency for leg in self.legs]

    @property
    def is_fully_settled(self) -> bool:
        return bool(self.legs) and all(leg.is_settled for leg in self.legs)

    def implicit_reference_index(self, min_odd: Decimal = MIN_ODD) -> int | None:
        """Explicit reference, else the first leg with a valid odd and a stake."""
        if self.reference_index is not None:
            return self.reference_index
        for i, leg in enumerate(self.legs):
            if leg.is_usable(min_odd):
                return i
        return None

    def complete_count(self, min_odd: Decimal = MIN_ODD) -> int:
        return sum(1 for leg in self.legs if leg.is_complete(min_odd))

    # --- Mutators ---

    def set_reference(self, index: int) -> Ticket:
        """Make ``index`` the reference; the previous one is cleared.

        Other legs drop solver-released locks so they follow the new
        reference; stakes imported from a bet slip stay locked.
        """
        self._check_index(index)
        legs = tuple(
            leg
            if i == index or leg.stake_origin is StakeOrigin.PRINT
            else replace(leg, stake_origin=None)
            for i, leg in enumerate(self.legs)
        )
        return Ticket(legs=legs, reference_index=index)

    def clear_reference(self) -> Ticket:
        return Ticket(legs=self.legs, reference_index=None)

    def update_odd(self, index: int, odd: object) -> Ticket:
        self._check_index(index)
        return self._replace_leg(index, replace(self.legs[index], odd=to_decimal(odd)))

    def update_stake(self, index: int, stake: object) -> Ticket:
        """User typed a stake. On a non-reference leg this locks the stake."""
        self._check_index(index)
        leg = self.legs[index]
        origin = leg.stake_origin if self.is_reference(index) else StakeOrigin.MANUAL
        return self._replace_leg(index, replace(leg, stake=to_decimal(stake), stake_origin=origin))

    def import_stake(self, index: int, stake: object) -> Ticket:
        """Stake read from a bet slip; locked against the solver."""
        self._check_index(index)
        leg = replace(self.legs[index], stake=to_decimal(stake), stake_origin=StakeOrigin.PRINT)
        return self._replace_leg(index, leg)

    def release_lock(self, index: int) -> Ticket:
        self._check_index(index)
        return self._replace_leg(index, replace(self.legs[index], stake_origin=None))

    def assign_bookmaker(self, index: int, bookmaker_id: str, currency: str) -> Ticket:
        """Place the leg at a bookmaker; the leg inherits its currency."""
        self._check_index(index)
        leg = replace(self.legs[index], bookmaker_id=bookmaker_id, currency=currency)
        return self._replace_leg(index, leg)

    def set_selection(self, index: int, label: str) -> Ticket:
        self._check_index(index)
        return self._replace_leg(index, replace(self.legs[index], selection_label=label))

    def toggle_directed(self, index: int) -> Ticket:
        self._check_index(index)
        leg = self.legs[index]
        return self._replace_leg(index, replace(leg, is_directed_profit=not leg.is_directed_profit))

    def set_directed(self, indices: Iterable[int]) -> Ticket:
        wanted = set(indices)
        for i in wanted:
            self._check_index(i)
        legs = tuple(
            replace(leg, is_directed_profit=i in wanted) for i, leg in enumerate(self.legs)
        )
        return Ticket(legs=legs, reference_index=self.reference_index)

    def add_entry(self, index: int, entry: LegEntry) -> Ticket:
        self._check_index(index)
        leg = self.legs[index]
        return self._replace_leg(
            index, replace(leg, additional_entries=(*leg.additional_entries, entry))
        )

    def add_leg(self, leg: Leg | None = None, max_legs: int = DEFAULT_MAX_LEGS) -> Ticket:
        if len(self.legs) + 1 > max_legs:
            raise TicketError(f"Ticket already has the maximum of {max_legs} legs")
        new_leg = leg or Leg(selection_label=f"Option {len(self.legs) + 1}")
        return Ticket(legs=(*self.legs, new_leg), reference_index=self.reference_index)

    def remove_leg(self, index: int, min_legs: int = DEFAULT_MIN_LEGS) -> Ticket:
        """Drop a leg. Removing the reference promotes another leg."""
        self._check_index(index)
        if len(self.legs) - 1 < min_legs:
            raise TicketError(f"Ticket needs at least {min_legs} legs")

        legs = self.legs[:index] + self.legs[index + 1 :]
        ref = self.reference_index
        if ref is None:
            return Ticket(legs=legs)
        if ref == index:
            promoted = Ticket(legs=legs).implicit_reference_index()
            return Ticket(legs=legs, reference_index=promoted if promoted is not None else 0)
        if ref > index:
            ref -= 1
        return Ticket(legs=legs, reference_index=ref)

    def resize(
        self,
        num_legs: int,
        min_legs: int = DEFAULT_MIN_LEGS,
        max_legs: int = DEFAULT_MAX_LEGS,
    ) -> Ticket:
        """Grow with blank legs or truncate to ``num_legs``."""
        _check_leg_count(num_legs, min_legs, max_legs)
        if num_legs <= len(self.legs):
            legs = self.legs[:num_legs]
        else:
            labels = default_selection_labels(num_legs)
            currency = self.legs[0].currency if self.legs else "BRL"
            legs = self.legs + tuple(
                Leg(currency=currency, selection_label=labels[i])
                for i in range(len(self.legs), num_legs)
            )
        ref = self.reference_index
        if ref is not None and ref >= num_legs:
            ref = 0
        return Ticket(legs=legs, reference_index=ref)

    def with_stakes(
        self,
        stakes: Mapping[int, Decimal],
        origin: StakeOrigin | None = StakeOrigin.REFERENCE,
    ) -> Ticket:
        """Write solver/rounding output back into the legs."""
        legs = list(self.legs)
        for i, total in stakes.items():
            self._check_index(i)
            legs[i] = legs[i].with_total_stake(total, origin)
        return Ticket(legs=tuple(legs), reference_index=self.reference_index)

    def with_leg(self, index: int, leg: Leg) -> Ticket:
        self._check_index(index)
        return self._replace_leg(index, leg)

    # --- Internals ---

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.legs):
            raise TicketError(f"Leg index {index} out of range for {len(self.legs)} legs")

    def _replace_leg(self, index: int, leg: Leg) -> Ticket:
        legs = self.legs[:index] + (leg,) + self.legs[index + 1 :]
        return Ticket(legs=legs, reference_index=self.reference_index)


def _check_leg_count(num_legs: int, min_legs: int, max_legs: int) -> None:
    if not min_legs <= num_legs <= max_legs:
        raise TicketError(f"A ticket has between {min_legs} and {max_legs} legs, got {num_legs}")
