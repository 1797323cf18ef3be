"""
Scan Notifier — alerts when a symbol crosses a score threshold

Rules:
──────
1. Swing total >= NOTIFY_THRESHOLDS["swing"]        → swing alert
2. Intraday total >= NOTIFY_THRESHOLDS["intraday"]  → intraday alert
3. One alert per symbol and horizon per cooldown window

The cooldown lives in an injected CooldownStore (symbol tag → last
notified epoch seconds) and time comes from an injected clock, so the
rate limit survives restarts when file-backed and is testable with a
fake clock.

Delivery channels:
  WebhookChannel — ntfy-style HTTP POST (title in header, body as text)
  LogChannel     — writes the alert to the log when no URL is configured
"""

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

import requests

from config import (
    COOLDOWN_FILE, NOTIFY_COOLDOWN_SECONDS, NOTIFY_THRESHOLDS,
    NOTIFY_TIMEOUT, NOTIFY_TOP_SIGNALS, NOTIFY_WEBHOOK_URL,
)
from models import ScanResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    title: str
    body: str
    tag: str


# ═══════════════════════════════════════════════════════════════════════════
# Cooldown stores
# ═══════════════════════════════════════════════════════════════════════════

class CooldownStore(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[float]:
        pass

    @abstractmethod
    def set(self, key: str, timestamp: float) -> None:
        pass


class InMemoryCooldownStore(CooldownStore):
    def __init__(self):
        self._data: Dict[str, float] = {}

    def get(self, key: str) -> Optional[float]:
        return self._data.get(key)

    def set(self, key: str, timestamp: float) -> None:
        self._data[key] = timestamp


class FileCooldownStore(CooldownStore):
    """JSON file of tag → timestamp, rewritten on every update."""

    def __init__(self, path: Path = COOLDOWN_FILE):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Dict[str, float] = self._load()

    def get(self, key: str) -> Optional[float]:
        return self._data.get(key)

    def set(self, key: str, timestamp: float) -> None:
        with self._lock:
            self._data[key] = timestamp
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._data, indent=2))

    def _load(self) -> Dict[str, float]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text())
            return {str(k): float(v) for k, v in raw.items()}
        except (json.JSONDecodeError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable cooldown file {self.path}: {e}")
            return {}


# ═══════════════════════════════════════════════════════════════════════════
# Delivery channels
# ═══════════════════════════════════════════════════════════════════════════

class NotificationChannel(ABC):
    @abstractmethod
    def send(self, notification: Notification) -> None:
        """Deliver or raise."""


class LogChannel(NotificationChannel):
    def send(self, notification: Notification) -> None:
        logger.info(f"🔔 {notification.title} | {notification.body}")


class WebhookChannel(NotificationChannel):
    def __init__(self, url: str, timeout: int = NOTIFY_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, notification: Notification) -> None:
        resp = self.session.post(
            self.url,
            data=notification.body.encode("utf-8"),
            headers={
                "Title": notification.title.encode("utf-8"),
                "Tags": notification.tag,
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()


def default_channel() -> NotificationChannel:
    if NOTIFY_WEBHOOK_URL:
        return WebhookChannel(NOTIFY_WEBHOOK_URL)
    return LogChannel()


# ═══════════════════════════════════════════════════════════════════════════
# Notifier
# ═══════════════════════════════════════════════════════════════════════════

class Notifier:
    """
    Decides which scan results deserve an alert and delivers them.

    Simple interface:
        check_and_notify(results) -> List[Notification]  (the ones delivered)
    """

    def __init__(self, channel: Optional[NotificationChannel] = None,
                 store: Optional[CooldownStore] = None,
                 clock: Callable[[], float] = time.time,
                 thresholds: Optional[Dict[str, int]] = None,
                 cooldown_seconds: int = NOTIFY_COOLDOWN_SECONDS):
        self.channel = channel or default_channel()
        self.store = store or InMemoryCooldownStore()
        self.clock = clock
        self.thresholds = dict(thresholds or NOTIFY_THRESHOLDS)
        self.cooldown_seconds = cooldown_seconds

    def check_and_notify(self, results: Iterable[ScanResult]) -> List[Notification]:
        sent = []
        for note in self.build_notifications(results):
            if self.send(note):
                sent.append(note)
        return sent

    def build_notifications(self, results: Iterable[ScanResult]) -> List[Notification]:
        notes = []
        for r in results:
            if r.swing.total >= self.thresholds["swing"]:
                notes.append(Notification(
                    title=f"{r.display_symbol} swing setup (score: {r.swing.total})",
                    body=self._body(r, r.swing.signals),
                    tag=f"swing-{r.display_symbol}",
                ))
            if r.intraday.total >= self.thresholds["intraday"]:
                notes.append(Notification(
                    title=f"{r.display_symbol} intraday signal (score: {r.intraday.total})",
                    body=self._body(r, r.intraday.signals),
                    tag=f"intraday-{r.display_symbol}",
                ))
        return notes

    def send(self, note: Notification) -> bool:
        now = self.clock()
        last = self.store.get(note.tag)
        if last is not None and now - last < self.cooldown_seconds:
            logger.debug(f"Alert {note.tag} suppressed (cooldown {now - last:.0f}s)")
            return False

        try:
            self.channel.send(note)
        except requests.RequestException as e:
            logger.error(f"Failed to deliver alert {note.tag}: {e}")
            return False

        self.store.set(note.tag, now)
        logger.info(f"Alert sent: {note.title}")
        return True

    @staticmethod
    def _body(result: ScanResult, signals: List[str]) -> str:
        top = " + ".join(signals[:NOTIFY_TOP_SIGNALS])
        return f"{result.price:.2f} {result.currency} - {top or 'Strong signal'}"
