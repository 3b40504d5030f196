"""Shared test fixtures for the surebet test suite."""

from __future__ import annotations

from decimal import Decimal

import pytest

from surebet.config.settings import SurebetConfig
from surebet.core.currency import RateTable
from surebet.core.legs import Leg, Ticket

EPS = Decimal("1e-9")


def approx(a: Decimal | None, b: Decimal | str, eps: Decimal = EPS) -> bool:
    """Decimal comparison within ``eps``."""
    return a is not None and abs(a - Decimal(b)) <= eps


def make_ticket(
    odds: list[str | None],
    stakes: list[str | None] | None = None,
    reference: int | None = 0,
    bookmakers: list[str] | None = None,
    currencies: list[str] | None = None,
) -> Ticket:
    """Ticket from parallel lists; bookmakers default to bk0, bk1, ..."""
    n = len(odds)
    stakes = stakes or [None] * n
    bookmakers = bookmakers or [f"bk{i}" for i in range(n)]
    currencies = currencies or ["BRL"] * n
    legs = tuple(
        Leg(
            bookmaker_id=bookmakers[i],
            currency=currencies[i],
            odd=Decimal(odds[i]) if odds[i] is not None else None,
            stake=Decimal(stakes[i]) if stakes[i] is not None else None,
            selection_label=f"Option {i + 1}",
        )
        for i in range(n)
    )
    return Ticket(legs=legs, reference_index=reference)


@pytest.fixture
def config() -> SurebetConfig:
    """Config with built-in defaults, independent of config/*.yaml."""
    return SurebetConfig()


@pytest.fixture
def rates() -> RateTable:
    """BRL-based snapshot: 1 USD = 5 BRL, 1 EUR = 5.5 BRL."""
    return RateTable(base="BRL", rates={"USD": Decimal("5"), "EUR": Decimal("5.5")})


@pytest.fixture
def two_leg_ticket() -> Ticket:
    """2.10 / 2.05 with 100 on the reference leg."""
    return make_ticket(["2.10", "2.05"], ["100", None])
