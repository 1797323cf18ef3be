"""
Trade Check CLI — on-demand questionnaire evaluation

    python trade_check.py SAP --entry 142.3 --stop 135 --target 160 \
        --account 45000 --answer q7=2

1. Fetch daily candles for the symbol and its leading index
2. Auto-fill q1-q6, q8, q9
3. Apply manual overrides (--answer qN=option), q7 is always manual
4. Detect the setup, score, traffic light, position size

`--scan` instead ranks the given symbols once, like a single bot iteration.
"""

import argparse
import logging
import sys
from typing import Dict, List, Optional

from auto_fill import AutoScorer
from bot import setup_logging
from config import WATCHLIST, WATCHLIST_CURRENCY
from data_collector import DataCollector, MarketDataError
from display import Display
from models import Answer, AnswerSource
from questionnaire import (
    QUESTIONS_BY_ID, TradeInputs, answers_from_auto_fill, evaluate, merge_answers,
)
from scanner import WatchlistScanner

logger = logging.getLogger(__name__)


def parse_answers(values: List[str]) -> Dict[str, Answer]:
    """'q7=2' → {"q7": Answer(MANUAL, 2)}; raises ValueError on bad input."""
    answers: Dict[str, Answer] = {}
    for raw in values or []:
        qid, sep, idx = raw.partition("=")
        qid = qid.strip().lower()
        if not sep or qid not in QUESTIONS_BY_ID:
            raise ValueError(f"Invalid answer '{raw}', expected qN=option")
        option = int(idx)
        if not 0 <= option < len(QUESTIONS_BY_ID[qid].options):
            raise ValueError(f"Option {option} out of range for {qid}")
        answers[qid] = Answer(AnswerSource.MANUAL, option)
    return answers


def run_check(args, collector: DataCollector, display: Display):
    report = AutoScorer(collector).compute(args.symbol, args.currency, args.entry)
    display.show_auto_fill(report)

    answers = merge_answers(answers_from_auto_fill(report.scores), parse_answers(args.answer))
    inputs = TradeInputs(
        entry=args.entry,
        stop=args.stop,
        target=args.target,
        account=args.account,
        risk_pct=args.risk,
        fx_rate=args.fx,
        open_risk=args.open_risk,
    )
    result = evaluate(answers, inputs)
    display.show_trade_check(result)
    return result


def run_scan(symbols: List[str], currency: str, collector: DataCollector, display: Display):
    scanner = WatchlistScanner(collector)
    results = scanner.scan_watchlist(
        symbols, currency,
        on_progress=lambda done, total: logger.info(f"  Progress: {done}/{total}"),
    )
    display.show_watchlist(results)
    for r in results[:3]:
        if not r.error:
            display.show_factor_breakdown(r)
    return results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Score a prospective long trade")
    parser.add_argument("symbol", nargs="?", help="ticker, e.g. SAP or AVGO")
    parser.add_argument("--currency", default=WATCHLIST_CURRENCY, choices=["EUR", "USD"])
    parser.add_argument("--entry", type=float, help="planned entry price")
    parser.add_argument("--stop", type=float, help="stop-loss price")
    parser.add_argument("--target", type=float, help="take-profit price")
    parser.add_argument("--account", type=float, default=0.0, help="account balance (EUR)")
    parser.add_argument("--risk", type=float, default=1.0, help="max risk per trade in %%")
    parser.add_argument("--fx", type=float, default=1.0, help="trade currency → EUR rate")
    parser.add_argument("--open-risk", type=float, default=0.0, help="risk already tied up (EUR)")
    parser.add_argument("--answer", action="append", default=[], metavar="qN=OPTION",
                        help="manual answer, overrides auto-fill (repeatable)")
    parser.add_argument("--scan", nargs="*", metavar="SYMBOL",
                        help="rank symbols instead (default: WATCHLIST)")
    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging("trade_check")

    collector = DataCollector()
    display = Display()
    try:
        if args.scan is not None:
            run_scan(args.scan or WATCHLIST, args.currency, collector, display)
            return
        if not args.symbol or args.entry is None or args.stop is None or args.target is None:
            parser.error("symbol, --entry, --stop and --target are required")
        run_check(args, collector, display)
    except (MarketDataError, ValueError) as e:
        logger.error(f"Trade check failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
