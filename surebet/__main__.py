"""Allow running as: python -m surebet

Usage:
  python -m surebet market --odds 2.10 2.05 --stake 100
  python -m surebet market --odds 2.5 3.4 3.1 --stake 100 --freebet 50 --freebet-kind sr
  python -m surebet ticket draft.yaml [--round 5] [--target 300]

A draft file is either a list of leg records or a mapping with ``legs`` and,
optionally, ``rates`` (units of ``base`` per currency unit) and ``base``.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from surebet.config.settings import get_config
from surebet.core.currency import RateTable
from surebet.core.engine import SurebetEngine, TicketState
from surebet.core.legs import Ticket, TicketError
from surebet.core.market import FreebetKind, analyze_freebet, analyze_market
from surebet.utils.logger import get_logger, setup_logging
from surebet.utils.odds import to_decimal

logger = get_logger("surebet_cli")


class _EmptyDirectory:
    """No bookmaker accounts: the balance guard has nothing to check."""

    def get_bookmaker(self, bookmaker_id: str) -> None:
        return None


def _decimal(text: str) -> Decimal:
    value = to_decimal(text)
    if value is None:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}")
    return value


def _positive_decimal(text: str) -> Decimal:
    value = _decimal(text)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {text!r}")
    return value


def _fmt(value: Decimal | None, places: int = 2) -> str:
    return "-" if value is None else f"{value:.{places}f}"


def _print_table(headers: list[str], rows: list[list[str]]) -> None:
    widths = [max(len(h), *(len(r[i]) for r in rows)) if rows else len(h) for i, h in enumerate(headers)]
    print("  ".join(h.ljust(w) for h, w in zip(headers, widths)))
    print("  ".join("-" * w for w in widths))
    for row in rows:
        print("  ".join(c.ljust(w) for c, w in zip(row, widths)))


# --- market ---


def run_market(args: argparse.Namespace) -> int:
    config = get_config()
    try:
        analysis = analyze_market(args.odds, args.stake, config.market)
    except ValueError as e:
        logger.error("market_invalid", error=str(e))
        return 2

    _print_table(
        ["#", "odd", "implied%", "fair%", "stake", "return", "profit"],
        [
            [
                str(i + 1),
                _fmt(o.odd),
                _fmt(o.implied_prob),
                _fmt(o.fair_prob),
                _fmt(o.stake),
                _fmt(o.return_value),
                _fmt(o.profit),
            ]
            for i, o in enumerate(analysis.outcomes)
        ],
    )
    print()
    print(f"Margin:         {_fmt(analysis.margin_pct)}%")
    print(f"Arbitrage:      {'yes' if analysis.has_arbitrage else 'no'}")
    if analysis.has_arbitrage:
        print(
            f"Guaranteed:     {_fmt(analysis.arbitrage_profit)} "
            f"({_fmt(analysis.arbitrage_profit_pct)}%)"
        )
    print(f"EV best odd:    {_fmt(analysis.ev_pct)}% (outcome {analysis.best_index + 1})")
    print(f"[{analysis.recommendation.value}] {analysis.message}")

    if args.freebet is not None:
        fb = analyze_freebet(
            args.odds,
            args.freebet,
            FreebetKind(args.freebet_kind),
            config.market.lay_commission,
        )
        print()
        print(f"Freebet {fb.kind.value.upper()} {_fmt(fb.freebet_value)} on outcome {fb.best_index + 1}")
        print(f"  return {_fmt(fb.expected_return)} ({_fmt(fb.extraction_rate)}%)")
        print(f"  lay stake {_fmt(fb.lay_stake)}, liability {_fmt(fb.liability)}")
        print(f"  profit {_fmt(fb.guaranteed_profit)} ({_fmt(fb.guaranteed_profit_pct)}%)")
    return 0


# --- ticket ---


def load_draft(path: Path) -> tuple[list[dict[str, Any]], RateTable | None]:
    """Read a draft YAML file into leg records and an optional rate table."""
    with open(path) as f:
        data = yaml.safe_load(f)

    if isinstance(data, list):
        return data, None
    if not isinstance(data, dict) or not isinstance(data.get("legs"), list):
        raise TicketError(f"{path}: expected a list of legs or a mapping with 'legs'")

    rates = None
    if data.get("rates"):
        parsed = {str(k): to_decimal(v) for k, v in data["rates"].items()}
        rates = RateTable(
            base=str(data.get("base") or get_config().currency.rate_base),
            rates={k: v for k, v in parsed.items() if v is not None},
        )
    return data["legs"], rates


def print_state(state: TicketState) -> None:
    analysis = state.analysis
    _print_table(
        ["#", "selection", "bookmaker", "ccy", "odd", "stake", "payout", "profit", "roi%", "flags"],
        [
            [
                str(s.index + 1),
                s.selection_label,
                state.ticket.legs[s.index].bookmaker_id or "-",
                s.currency,
                _fmt(s.odd),
                _fmt(s.stake),
                _fmt(s.payout),
                _fmt(s.profit),
                _fmt(s.roi),
                ",".join(
                    (["ref"] if s.is_reference else [])
                    + (["directed"] if s.is_directed else [])
                    + sorted(i.value for i in s.issues)
                ),
            ]
            for s in analysis.scenarios
        ],
    )
    print()
    print(f"Mode:           {state.solve.mode.value} ({state.solve.status.value})")
    if state.solve.directed_fallback:
        print("                directed profit infeasible, stakes equalized")
    print(f"Currency:       {analysis.dominant_currency}")
    print(f"Total stake:    {_fmt(analysis.total_stake)}")
    print(f"Guaranteed:     {_fmt(analysis.min_profit)} ({_fmt(analysis.min_roi)}%)")
    print(f"Best case:      {_fmt(analysis.max_profit)} ({_fmt(analysis.max_roi)}%)")
    print(f"Implied sum:    {_fmt(analysis.implied_sum, 4)}")
    if analysis.issues:
        print(f"Issues:         {', '.join(sorted(i.value for i in analysis.issues))}")


def run_ticket(args: argparse.Namespace) -> int:
    config = get_config()
    engine = SurebetEngine(config)
    try:
        records, rates = load_draft(Path(args.file))
        ticket = Ticket.from_draft(records, config.ticket.min_legs, config.ticket.max_legs)
    except (OSError, yaml.YAMLError, TicketError) as e:
        logger.error("draft_invalid", path=args.file, error=str(e))
        return 2

    directory = _EmptyDirectory()
    state = engine.recompute(ticket, directory, rates, target_total=args.target)
    if args.round is not None and state.solve.is_solved:
        outcome = engine.round(state.ticket, rates, args.round)
        # Re-solving would undo the rounding
        state = replace(state, ticket=outcome.ticket, analysis=outcome.analysis)

    print_state(state)
    return 0 if state.analysis.min_profit is not None else 1


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Surebet stake calculator")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    market = sub.add_parser("market", help="Analyse a market from its outcome odds")
    market.add_argument("--odds", type=_decimal, nargs="+", required=True)
    market.add_argument("--stake", type=_positive_decimal, default=Decimal("100"))
    market.add_argument("--freebet", type=_positive_decimal, default=None, help="Freebet value")
    market.add_argument("--freebet-kind", choices=[k.value for k in FreebetKind], default="snr")
    market.set_defaults(func=run_market)

    ticket = sub.add_parser("ticket", help="Solve and evaluate a draft ticket file")
    ticket.add_argument("file")
    ticket.add_argument("--round", type=_positive_decimal, default=None, help="Rounding increment")
    ticket.add_argument("--target", type=_positive_decimal, default=None, help="Target total stake")
    ticket.set_defaults(func=run_ticket)

    args = parser.parse_args(argv)
    setup_logging(log_level=args.log_level or get_config().log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
