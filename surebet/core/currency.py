"""Currency normalizer.

Converts bookmaker-native amounts into the ticket's dominant currency so
profit and ROI can be aggregated across legs held in different currencies.

Rates are a snapshot supplied by the caller, quoted as units of the base
(control) currency per one unit of each currency. The engine never fetches
or caches rates.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal


class RateUnavailable(KeyError):
    """No rate for a currency in the supplied snapshot."""

    def __init__(self, currency: str) -> None:
        super().__init__(currency)
        self.currency = currency

    def __str__(self) -> str:
        return f"No exchange rate for {self.currency}"


@dataclass(frozen=True)
class RateTable:
    """Snapshot of exchange rates against ``base``."""

    base: str = "BRL"
    rates: Mapping[str, Decimal] = field(default_factory=dict)

    def rate(self, currency: str) -> Decimal:
        """Units of base per one unit of ``currency``."""
        if currency == self.base:
            return Decimal(1)
        rate = self.rates.get(currency)
        if rate is None or rate <= 0:
            raise RateUnavailable(currency)
        return rate

    def has(self, currency: str) -> bool:
        try:
            self.rate(currency)
        except RateUnavailable:
            return False
        return True


def to_dominant(
    amount: Decimal,
    from_currency: str,
    dominant_currency: str,
    rates: RateTable,
) -> Decimal:
    """Convert ``amount`` from ``from_currency`` into ``dominant_currency``.

    Raises:
        RateUnavailable: either currency is missing from ``rates``.
    """
    if from_currency == dominant_currency:
        return amount
    return amount * rates.rate(from_currency) / rates.rate(dominant_currency)


def from_dominant(
    amount: Decimal,
    to_currency: str,
    dominant_currency: str,
    rates: RateTable,
) -> Decimal:
    """Inverse of :func:`to_dominant`."""
    if to_currency == dominant_currency:
        return amount
    return amount * rates.rate(dominant_currency) / rates.rate(to_currency)


def dominant_currency(currencies: Iterable[str | None], fallback: str = "BRL") -> str:
    """Majority currency among the legs; ties go to the first one selected."""
    selected = [c for c in currencies if c]
    if not selected:
        return fallback
    counts = Counter(selected)
    top = max(counts.values())
    return next(c for c in selected if counts[c] == top)


def is_multi_currency(currencies: Iterable[str | None]) -> bool:
    return len({c for c in currencies if c}) > 1
