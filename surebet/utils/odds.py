"""Odds conversion and arbitrage math utilities.

All functions use Decimal for precision in financial calculations.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

MIN_ODD = Decimal("1.01")


def to_decimal(value: object) -> Decimal | None:
    """Leniently parse user/OCR input into a Decimal.

    Accepts Decimal, int, float and strings using either "." or "," as the
    decimal separator. Returns None for anything unparsable or non-finite.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(" ", "")
        if not text:
            return None
        if "," in text and "." in text:
            # Last separator is the decimal one: 1.234,56 / 1,234.56 → 1234.56
            if text.rfind(",") > text.rfind("."):
                text = text.replace(".", "").replace(",", ".")
            else:
                text = text.replace(",", "")
        else:
            text = text.replace(",", ".")
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None
    if not result.is_finite():
        return None
    return result


def is_valid_odd(odd: Decimal | None, min_odd: Decimal = MIN_ODD) -> bool:
    """Whether an odd can take part in stake/scenario math."""
    return odd is not None and odd >= min_odd


def decimal_to_implied(odds: Decimal) -> Decimal:
    """Convert decimal odds to implied probability. 2.00 → 0.50."""
    if odds <= 0:
        raise ValueError(f"Decimal odds must be positive, got {odds}")
    return Decimal(1) / odds


def implied_to_decimal(prob: Decimal) -> Decimal:
    """Convert implied probability to decimal odds. 0.50 → 2.00."""
    if prob <= 0 or prob > 1:
        raise ValueError(f"Implied probability must be in (0, 1], got {prob}")
    return Decimal(1) / prob


def overround(probs: list[Decimal]) -> Decimal:
    """Calculate overround (sum of implied probabilities). >1 means bookmaker margin."""
    if not probs:
        raise ValueError("Probabilities list cannot be empty")
    return sum(probs, Decimal(0))


def remove_vig(probs: list[Decimal]) -> list[Decimal]:
    """Remove vigorish by normalizing probabilities to sum to 1."""
    if not probs:
        raise ValueError("Probabilities list cannot be empty")
    total = sum(probs, Decimal(0))
    if total == 0:
        raise ValueError("Sum of probabilities cannot be zero")
    return [p / total for p in probs]


def implied_sum(odds: Iterable[Decimal]) -> Decimal:
    """Sum of 1/odd. Below 1 means a guaranteed-profit (arbitrage) book."""
    return sum((decimal_to_implied(o) for o in odds), Decimal(0))


def spread_pct(odds: Iterable[Decimal]) -> Decimal:
    """Book spread in percent: (Σ 1/odd − 1) * 100. Negative means arbitrage.

    Odds ≤ 1 contribute nothing.
    """
    valid = [o for o in odds if o > 1]
    if not valid:
        return Decimal(0)
    return (implied_sum(valid) - Decimal(1)) * 100


def equal_payout_profit(payout: Decimal, odds: Iterable[Decimal]) -> Decimal:
    """Profit of an equal-payout book paying ``payout`` on every outcome.

    Formula: payout * (1 − Σ 1/odd) = total_stake * (1/Σ − 1)
    """
    return payout * (Decimal(1) - implied_sum(odds))


def weighted_average_odd(entries: Iterable[tuple[Decimal | None, Decimal | None]]) -> Decimal | None:
    """Stake-weighted mean odd of several fills of the same selection.

    ``entries`` are (odd, stake) pairs, the first being the main fill. Fills
    with an odd ≤ 1 are ignored. Without any positive stake the first valid
    odd is returned; None when no odd is valid.
    """
    valid = [(odd, stake) for odd, stake in entries if odd is not None and odd > 1]
    if not valid:
        return None

    staked = [(odd, stake) for odd, stake in valid if stake is not None and stake > 0]
    total = sum((stake for _, stake in staked), Decimal(0))
    if total > 0:
        return sum((odd * stake for odd, stake in staked), Decimal(0)) / total
    return valid[0][0]
