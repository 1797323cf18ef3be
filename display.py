"""
Terminal Display Module

Views:
- Watchlist ranking with swing/intraday score bars and top signals
- Factor breakdown per symbol
- Questionnaire auto-fill answers with confidence bars
- Trade-check result card (setup, traffic light, position advice)
"""

import logging
import os
from datetime import datetime
from typing import Dict, List, Optional

from config import TERMINAL_WIDTH
from models import AnswerSource, ScanResult
from questionnaire import QUESTIONS, QUESTIONS_BY_ID, TradeCheckResult, TrafficLight

logger = logging.getLogger(__name__)

GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
GRAY = "\033[90m"
RESET = "\033[0m"


class Display:
    def __init__(self, width: int = TERMINAL_WIDTH):
        self.width = width

    def clear_screen(self):
        os.system("clear" if os.name == "posix" else "cls")

    def show_header(self, subtitle: str = "Swing & Intraday Setup Scanner"):
        w = self.width
        print("=" * w)
        print(f"{'TRADE CHECK SCANNER':^{w}}")
        print(f"{subtitle:^{w}}")
        print("=" * w)
        print(f"  Last Updated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print("=" * w)
        print()

    # ── Watchlist ───────────────────────────────────────────────────────

    def show_watchlist(self, results: List[ScanResult]):
        w = self.width
        print(f"┌{'─' * (w - 2)}┐")
        print(f"│{'WATCHLIST RANKING':^{w - 2}}│")
        print(f"├{'─' * (w - 2)}┤")

        if not results:
            print(f"│{'  No results yet...':<{w - 2}}│")
            print(f"└{'─' * (w - 2)}┘")
            return

        print(
            f"│ {'#':>2s} │ {'Symbol':8s} │ {'Price':>10s} │ {'1D':>7s} │ "
            f"{'Swing':17s} │ {'Intraday':17s} │ Signals"
        )
        print(f"├{'─' * (w - 2)}┤")

        for rank, r in enumerate(results, 1):
            if r.error:
                print(f"│ {rank:>2d} │ {r.display_symbol:8s} │ {GRAY}{r.error[:w - 20]}{RESET}")
                continue
            signals = ", ".join((r.swing.signals + r.intraday.signals)[:3])
            stale = f" {YELLOW}(stale){RESET}" if r.stale else ""
            print(
                f"│ {rank:>2d} │ {r.display_symbol:8s} │ "
                f"{r.price:>10.2f} │ {self._format_change(r.change)} │ "
                f"{self._score_bar(r.swing.total)} │ "
                f"{self._score_bar(r.intraday.total)} │ "
                f"{signals}{stale}"
            )

        print(f"└{'─' * (w - 2)}┘")
        print()

    def show_factor_breakdown(self, result: ScanResult):
        w = self.width
        print(f"┌{'─' * (w - 2)}┐")
        print(f"│ {result.display_symbol} · {result.name} · {result.price:.2f} {result.currency}")
        for label, composite in (("SWING", result.swing), ("INTRADAY", result.intraday)):
            print(f"├{'─' * (w - 2)}┤")
            print(f"│  {label}: {self._score_bar(composite.total)}")
            if composite.error:
                print(f"│    {GRAY}{composite.error}{RESET}")
                continue
            for f in composite.factors:
                print(
                    f"│    {f.name:14s} {f.score:>3d} × {f.weight:.2f}  "
                    f"{self._color(f.score)}{f.value}{RESET}"
                )
        print(f"└{'─' * (w - 2)}┘")
        print()

    # ── Questionnaire ───────────────────────────────────────────────────

    def show_auto_fill(self, report):
        w = self.width
        print(f"┌{'─' * (w - 2)}┐")
        title = f"AUTO-FILL {report.symbol} ({report.candle_count} candles)"
        print(f"│{title:^{w - 2}}│")
        if report.stale:
            print(f"│  {YELLOW}⚠ Offline data from cache{RESET}")
        print(f"├{'─' * (w - 2)}┤")

        for q in QUESTIONS:
            result = report.scores.get(q.id)
            if result is None:
                print(f"│ {q.id} {q.title:24s} {GRAY}manual{RESET}")
                continue
            option = q.options[result.option_index]
            print(
                f"│ {q.id} {q.title:24s} {self._confidence_bar(result.confidence)} "
                f"{option.label}"
            )
            self._print_wrapped(f"│      {result.detail}", w)

        print(f"└{'─' * (w - 2)}┘")
        print()

    def show_trade_check(self, result: TradeCheckResult):
        w = self.width
        light_colors = {
            TrafficLight.GREEN: GREEN,
            TrafficLight.ORANGE: YELLOW,
            TrafficLight.RED: RED,
            TrafficLight.NO_TRADE: GRAY,
        }
        color = light_colors.get(result.light, RESET)

        print(f"┌{'─' * (w - 2)}┐")
        print(
            f"│ {color}{result.light.label:9s}{RESET} │ "
            f"Score: {result.total_score}/{result.max_score} ({result.score_pct:.0f}%) │ "
            f"Setup: {result.setup.name} │ CRV: {result.crv:.1f}x"
        )
        print(f"├{'─' * (w - 2)}┤")

        for s in result.setups:
            print(f"│  {s.name:16s} {s.score:>5.2f}")
        print(f"├{'─' * (w - 2)}┤")

        for qid, answer in sorted(result.answers.items()):
            q = QUESTIONS_BY_ID.get(qid)
            if q is None or not 0 <= answer.option_index < len(q.options):
                continue
            tag = "AUTO" if answer.source is AnswerSource.AUTO else "MAN "
            print(f"│  {qid} [{tag}] {q.title:24s} {q.options[answer.option_index].label}")
        if result.unanswered:
            print(f"│  {YELLOW}Unanswered: {', '.join(result.unanswered)}{RESET}")

        print(f"├{'─' * (w - 2)}┤")
        advice = result.advice
        min_crv = "-" if advice.min_crv == float("inf") else f"{advice.min_crv:.1f}x"
        crv_state = f"{GREEN}CRV ok{RESET}" if result.crv_ok else f"{RED}CRV too low{RESET}"
        print(
            f"│  {advice.label} · risk {advice.risk_pct:.2f}% · min CRV {min_crv} · {crv_state}"
        )
        print(
            f"│  Shares (own risk cap): {result.shares}  │  "
            f"Recommended: {result.recommended_shares}"
        )
        print(f"└{'─' * (w - 2)}┘")
        print()

    # ── Helpers ─────────────────────────────────────────────────────────

    def _print_wrapped(self, text: str, width: int):
        words = text.split()
        line = ""
        for word in words:
            if len(line) + len(word) + 1 > width - 3:
                print(line)
                line = "│      " + word + " "
            else:
                line += word + " " if line else word + " "
        if line:
            print(line)

    @staticmethod
    def _color(score: int) -> str:
        if score >= 70:
            return GREEN
        if score >= 40:
            return YELLOW
        return RED

    def _score_bar(self, score: int) -> str:
        filled = score // 10
        return f"{self._color(score)}{'█' * filled}{'░' * (10 - filled)}{RESET} {score:>3d}"

    def _confidence_bar(self, confidence: float) -> str:
        filled = int(confidence * 10)
        return f"[{'█' * filled}{'░' * (10 - filled)}] {confidence:.0%}"

    def _format_change(self, change: float) -> str:
        if change > 0:
            return f"{GREEN}+{change:>5.1f}%{RESET}"
        elif change < 0:
            return f"{RED}{change:>6.1f}%{RESET}"
        return f"{change:>6.1f}%"


def print_startup_banner(symbols: List[str], interval: int,
                         notify_target: Optional[str] = None):
    banner = """
╔═══════════════════════════════════════════════════════════════════════════════╗
║                                                                               ║
║                          📈 TRADE CHECK SCANNER 📈                            ║
║                                                                               ║
║    • Swing Score: RSI, support, EMA order, Bollinger, volume, trend           ║
║    • Intraday Score: volume spike, gap, relative strength, ATR, VWAP          ║
║    • Batched watchlist scans with threshold alerts                            ║
║                                                                               ║
╚═══════════════════════════════════════════════════════════════════════════════╝
    """
    print(banner)
    print(f"  Watching: {', '.join(symbols)}")
    print(f"  Scan interval: {interval}s")
    print(f"  Alerts: {notify_target or 'log only'}")
    print("  Press Ctrl+C to stop\n")


def summarize(results: List[ScanResult]) -> Dict[str, int]:
    """Counts for the footer line."""
    return {
        "scanned": len(results),
        "failed": sum(1 for r in results if r.error),
        "stale": sum(1 for r in results if r.stale),
    }
