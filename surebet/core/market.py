"""Quick market analyser.

Answers "is this market worth touching?" from a set of outcome odds alone:
bookmaker margin, fair (vig-free) probabilities, the balanced stake split for
a given bankroll, arbitrage detection and the EV of backing the best price.
Also carries the freebet extraction estimate (SNR/SR with a lay hedge).

Pure functions; no ticket or bookmaker state involved.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from surebet.config.settings import MarketConfig
from surebet.utils.odds import decimal_to_implied, overround, remove_vig

HUNDRED = Decimal(100)


class Recommendation(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"
    NEUTRAL = "neutral"


class FreebetKind(str, Enum):
    SNR = "snr"  # stake not returned
    SR = "sr"  # stake returned


@dataclass(frozen=True)
class OutcomeAnalysis:
    odd: Decimal
    implied_prob: Decimal  # percent
    fair_prob: Decimal  # percent
    stake: Decimal
    return_value: Decimal
    profit: Decimal


@dataclass(frozen=True)
class MarketAnalysis:
    total_stake: Decimal
    implied_sum: Decimal
    margin_pct: Decimal
    has_arbitrage: bool
    arbitrage_profit: Decimal
    arbitrage_profit_pct: Decimal
    best_index: int
    ev: Decimal
    ev_pct: Decimal
    recommendation: Recommendation
    message: str
    outcomes: tuple[OutcomeAnalysis, ...]


@dataclass(frozen=True)
class FreebetAnalysis:
    kind: FreebetKind
    freebet_value: Decimal
    best_index: int
    best_odd: Decimal
    expected_return: Decimal
    extraction_rate: Decimal
    lay_stake: Decimal
    liability: Decimal
    guaranteed_profit: Decimal
    guaranteed_profit_pct: Decimal


def recommend(
    has_arbitrage: bool,
    margin_pct: Decimal,
    config: MarketConfig | None = None,
) -> tuple[Recommendation, str]:
    """Map a market's margin to a recommendation level and message."""
    config = config or MarketConfig()
    margin = f"{margin_pct:.2f}%"
    if has_arbitrage:
        return Recommendation.SUCCESS, f"Arbitrage: guaranteed profit of {-margin_pct:.2f}% of the book"
    if margin_pct > config.high_margin_pct:
        return Recommendation.DANGER, f"High bookmaker margin ({margin}); avoid this market"
    if margin_pct > config.moderate_margin_pct:
        return Recommendation.WARNING, f"Moderate margin ({margin}); no real edge"
    if margin_pct > 0:
        return Recommendation.SUCCESS, f"Low margin ({margin}); competitive prices"
    return Recommendation.NEUTRAL, f"Balanced market, margin {margin}"


def analyze_market(
    odds: list[Decimal],
    total_stake: Decimal,
    config: MarketConfig | None = None,
) -> MarketAnalysis:
    """Analyse N ≥ 2 outcome odds for a bankroll of ``total_stake``.

    Stakes are split in proportion to 1/odd, so every outcome returns
    total_stake / Σ(1/odd). When Σ(1/odd) < 1 that return exceeds the stake
    and the difference is the guaranteed arbitrage profit.

    Raises:
        ValueError: fewer than two odds, an odd ≤ 1, or a non-positive stake.
    """
    if len(odds) < 2:
        raise ValueError(f"Need at least 2 outcome odds, got {len(odds)}")
    if any(o <= 1 for o in odds):
        raise ValueError(f"Odds must be greater than 1, got {[str(o) for o in odds]}")
    if total_stake <= 0:
        raise ValueError(f"Total stake must be positive, got {total_stake}")

    implied = [decimal_to_implied(o) for o in odds]
    book = overround(implied)
    fair = remove_vig(implied)
    margin_pct = (book - Decimal(1)) * HUNDRED
    has_arbitrage = book < 1

    outcomes = []
    for odd, p, q in zip(odds, implied, fair):
        stake = q * total_stake
        return_value = stake * odd
        outcomes.append(
            OutcomeAnalysis(
                odd=odd,
                implied_prob=p * HUNDRED,
                fair_prob=q * HUNDRED,
                stake=stake,
                return_value=return_value,
                profit=return_value - total_stake,
            )
        )

    if has_arbitrage:
        arbitrage_profit = total_stake * (Decimal(1) / book - Decimal(1))
        arbitrage_profit_pct = arbitrage_profit / total_stake * HUNDRED
    else:
        arbitrage_profit = arbitrage_profit_pct = Decimal(0)

    # EV of a single unit bet on the best price, under fair probabilities
    best_index = max(range(len(odds)), key=lambda i: odds[i])
    q_best = fair[best_index]
    ev = q_best * (odds[best_index] - Decimal(1)) - (Decimal(1) - q_best)

    level, message = recommend(has_arbitrage, margin_pct, config)
    return MarketAnalysis(
        total_stake=total_stake,
        implied_sum=book,
        margin_pct=margin_pct,
        has_arbitrage=has_arbitrage,
        arbitrage_profit=arbitrage_profit,
        arbitrage_profit_pct=arbitrage_profit_pct,
        best_index=best_index,
        ev=ev,
        ev_pct=ev * HUNDRED,
        recommendation=level,
        message=message,
        outcomes=tuple(outcomes),
    )


def analyze_freebet(
    odds: list[Decimal],
    value: Decimal,
    kind: FreebetKind = FreebetKind.SNR,
    lay_commission: Decimal = Decimal("0.05"),
) -> FreebetAnalysis:
    """Estimate freebet extraction on the best price, hedged with a lay bet.

    The lay is assumed at the same price as the back:
        SNR  return = value * (odd − 1)
        SR   return = value * odd
        lay_stake = return / (odd − commission),  liability = lay_stake * (odd − 1)

    Raises:
        ValueError: no odds, an odd ≤ 1, or a non-positive freebet value.
    """
    if not odds:
        raise ValueError("Odds list cannot be empty")
    if any(o <= 1 for o in odds):
        raise ValueError(f"Odds must be greater than 1, got {[str(o) for o in odds]}")
    if value <= 0:
        raise ValueError(f"Freebet value must be positive, got {value}")

    best_index = max(range(len(odds)), key=lambda i: odds[i])
    best = odds[best_index]

    if kind is FreebetKind.SNR:
        expected_return = value * (best - Decimal(1))
    else:
        expected_return = value * best

    lay_stake = expected_return / (best - lay_commission)
    liability = lay_stake * (best - Decimal(1))
    guaranteed = expected_return - liability

    return FreebetAnalysis(
        kind=kind,
        freebet_value=value,
        best_index=best_index,
        best_odd=best,
        expected_return=expected_return,
        extraction_rate=expected_return / value * HUNDRED,
        lay_stake=lay_stake,
        liability=liability,
        guaranteed_profit=guaranteed,
        guaranteed_profit_pct=guaranteed / value * HUNDRED,
    )
