"""
Watchlist Bot — scheduled scan orchestrator

Flow per iteration:
1. Scan the watchlist in batches (daily + intraday candles per symbol)
2. Score Swing and Intraday setups with the shared scoring engine
3. Alert on symbols crossing the thresholds (with per-symbol cooldown)
4. Append the snapshot to data/scans.jsonl
5. Display the ranking, sleep, repeat
"""

import argparse
import logging
import signal
import sys
import time
from datetime import datetime
from typing import List, Optional

from config import (
    ERROR_BACKOFF, LOG_FORMAT, LOG_LEVEL, LOGS_DIR, NOTIFY_WEBHOOK_URL,
    SCAN_INTERVAL, WATCHLIST, WATCHLIST_CURRENCY,
)
from display import Display, print_startup_banner, summarize
from models import ScanResult
from notifier import FileCooldownStore, Notifier
from scanner import WatchlistScanner, save_scan_snapshot

logger = logging.getLogger(__name__)


def setup_logging(prefix: str):
    logging.basicConfig(
        level=LOG_LEVEL,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(LOGS_DIR / f"{prefix}_{datetime.now().strftime('%Y%m%d')}.log"),
            logging.StreamHandler(),
        ],
    )


class WatchlistBot:
    """
    Main orchestrator.

    Collaborators are injectable so a single iteration can run against
    fakes: run_once() scans, notifies and persists without the loop.
    """

    def __init__(self, symbols: List[str], currency: str = WATCHLIST_CURRENCY,
                 scanner: Optional[WatchlistScanner] = None,
                 notifier: Optional[Notifier] = None,
                 display: Optional[Display] = None,
                 interval: int = SCAN_INTERVAL,
                 persist: bool = True):
        self.symbols = symbols
        self.currency = currency
        self.scanner = scanner or WatchlistScanner()
        self.notifier = notifier or Notifier(store=FileCooldownStore())
        self.display = display or Display()
        self.interval = interval
        self.persist = persist
        self.running = False
        self.results: List[ScanResult] = []

        logger.info(f"Bot initialized for symbols: {', '.join(symbols)} ({currency})")

    def _signal_handler(self, signum, frame):
        logger.info("Shutdown signal received")
        self.running = False

    def run_once(self) -> List[ScanResult]:
        logger.info("Scanning watchlist...")
        self.results = self.scanner.scan_watchlist(
            self.symbols, self.currency, on_progress=self._on_progress
        )
        sent = self.notifier.check_and_notify(self.results)
        if sent:
            logger.info(f"  {len(sent)} alert(s) sent")
        if self.persist:
            save_scan_snapshot(self.results)
        return self.results

    def start(self):
        logger.info("Starting Watchlist Bot")
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)
        self.running = True

        print_startup_banner(self.symbols, self.interval, NOTIFY_WEBHOOK_URL or None)
        time.sleep(3)

        iteration = 0
        while self.running:
            try:
                iteration += 1
                logger.info(f"=== Iteration {iteration} ===")

                self.run_once()
                self._update_display(iteration)

                if self.running:
                    logger.info(f"Sleeping {self.interval}s")
                    time.sleep(self.interval)

            except KeyboardInterrupt:
                break
            except Exception as e:
                logger.error(f"Error in main loop: {e}", exc_info=True)
                time.sleep(ERROR_BACKOFF)

        self._shutdown()

    def _on_progress(self, done: int, total: int):
        logger.info(f"  Progress: {done}/{total}")

    def _update_display(self, iteration: int):
        try:
            self.display.clear_screen()
            self.display.show_header()
            self.display.show_watchlist(self.results)

            stats = summarize(self.results)
            next_str = datetime.fromtimestamp(
                datetime.now().timestamp() + self.interval
            ).strftime("%H:%M:%S")
            print(f"\n{'─' * self.display.width}")
            print(
                f"  Iteration: {iteration} │ "
                f"Scanned: {stats['scanned']} │ "
                f"Failed: {stats['failed']} │ "
                f"Stale: {stats['stale']} │ "
                f"Next: {next_str} │ "
                f"Ctrl+C to exit"
            )
        except Exception as e:
            logger.error(f"Display error: {e}")

    def _shutdown(self):
        logger.info("Shutting down bot...")
        self.running = False
        print("\n\n  Bot stopped. Goodbye! 👋")


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Scheduled watchlist scanner")
    parser.add_argument("symbols", nargs="*", help="tickers (default: WATCHLIST from .env)")
    parser.add_argument("--currency", default=WATCHLIST_CURRENCY, choices=["EUR", "USD"])
    parser.add_argument("--interval", type=int, default=SCAN_INTERVAL, help="seconds between scans")
    parser.add_argument("--once", action="store_true", help="scan once, print and exit")
    args = parser.parse_args(argv)

    setup_logging("bot")
    try:
        bot = WatchlistBot(
            symbols=args.symbols or WATCHLIST,
            currency=args.currency,
            interval=args.interval,
        )
        if args.once:
            bot.display.show_watchlist(bot.run_once())
        else:
            bot.start()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
