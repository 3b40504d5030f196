"""Balance guard — flags legs their bookmaker cannot fund.

Advisory only: evaluation still runs for flagged legs; the submission
boundary refuses tickets with insufficient legs.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from pydantic import BaseModel

from surebet.core.currency import RateTable, RateUnavailable, to_dominant
from surebet.core.legs import Ticket


class BookmakerAccount(BaseModel):
    """Read-only view of a bookmaker account supplied by the directory."""

    id: str
    name: str = ""
    currency: str = "BRL"
    operable_balance: Decimal = Decimal("0")
    freebet_balance: Decimal = Decimal("0")
    partner_name: str = ""


@dataclass(frozen=True)
class BalanceReport:
    insufficient_legs: frozenset[int] = field(default_factory=frozenset)
    # leg index → amount missing, keyed per bookmaker in the leg's currency
    shortfalls: dict[int, dict[str, Decimal]] = field(default_factory=dict)

    @property
    def has_insufficient_balance(self) -> bool:
        return bool(self.insufficient_legs)


def operable_balance(
    account: BookmakerAccount,
    committed: Mapping[str, Decimal] | None = None,
) -> Decimal:
    """Available balance minus stakes already committed and not yet settled."""
    reserved = (committed or {}).get(account.id, Decimal(0))
    return account.operable_balance - reserved


def check_balances(
    ticket: Ticket,
    accounts: Mapping[str, BookmakerAccount],
    committed: Mapping[str, Decimal] | None = None,
    rates: RateTable | None = None,
) -> BalanceReport:
    """Compare every leg's stake with its bookmaker's operable balance.

    Stakes are converted into the account's currency when it differs from
    the leg's and ``rates`` is given. Legs without a bookmaker, without a
    positive stake, whose bookmaker is unknown, or whose stake cannot be
    converted are skipped; shortfalls are in the account's currency.
    """
    insufficient: set[int] = set()
    shortfalls: dict[int, dict[str, Decimal]] = {}

    for i, leg in enumerate(ticket.legs):
        for bookmaker_id, stake in leg.stake_by_bookmaker().items():
            account = accounts.get(bookmaker_id)
            if account is None:
                continue
            if rates is not None and account.currency != leg.currency:
                try:
                    stake = to_dominant(stake, leg.currency, account.currency, rates)
                except RateUnavailable:
                    continue
            available = operable_balance(account, committed)
            if stake > available:
                insufficient.add(i)
                shortfalls.setdefault(i, {})[bookmaker_id] = stake - available

    return BalanceReport(insufficient_legs=frozenset(insufficient), shortfalls=shortfalls)


def selectable_accounts(
    accounts: Iterable[BookmakerAccount],
    min_balance: Decimal = Decimal("0.50"),
) -> list[BookmakerAccount]:
    """Accounts worth offering in the bookmaker picker."""
    return [a for a in accounts if a.operable_balance >= min_balance]
