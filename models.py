"""Core data models — single source of truth (Ousterhout deep module)
Candles, factor/composite scores, auto-fill answers and scan results.
Derived fields are computed here so the scorers and display never
recompute wick sizes or rank keys on their own.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, List, Dict, Any
from datetime import datetime

from config import SCANNER


@dataclass(frozen=True)
class Candle:
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int = 0

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def upper_wick(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_wick(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open

    @property
    def typical_price(self) -> float:
        return (self.high + self.low + self.close) / 3


@dataclass
class CandleSeries:
    """Result of one market-data fetch."""
    symbol: str
    candles: List[Candle]
    currency: Optional[str] = None
    display_symbol: Optional[str] = None
    exchange: Optional[str] = None
    regular_market_price: Optional[float] = None
    stale: bool = False              # served from an expired cache entry
    fetched_at: datetime = field(default_factory=datetime.now)

    def __len__(self) -> int:
        return len(self.candles)

    @property
    def last(self) -> Optional[Candle]:
        return self.candles[-1] if self.candles else None


@dataclass(frozen=True)
class FactorScore:
    name: str
    weight: float
    score: int
    value: str


@dataclass
class CompositeScore:
    total: int = 0
    factors: List[FactorScore] = field(default_factory=list)
    signals: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def insufficient(cls, message: str) -> "CompositeScore":
        return cls(total=0, factors=[], signals=[], error=message)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "total": self.total,
            "factors": [asdict(f) for f in self.factors],
            "signals": list(self.signals),
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class AutoFillResult:
    option_index: int
    confidence: float
    detail: str
    raw_value: Any = None


@dataclass
class ScanResult:
    symbol: str
    display_symbol: str
    name: str
    currency: str
    price: float
    change: float
    volume: int
    swing: CompositeScore
    intraday: CompositeScore
    stale: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def rank_key(self) -> float:
        """Blended ordering key. Used for sorting only."""
        return (self.swing.total * SCANNER["swing_rank_weight"]
                + self.intraday.total * SCANNER["intraday_rank_weight"])

    @property
    def error(self) -> Optional[str]:
        return self.swing.error if self.swing.error == self.intraday.error else None

    @classmethod
    def failed(cls, symbol: str, currency: str, message: str) -> "ScanResult":
        sym = symbol.strip().upper()
        return cls(
            symbol=sym, display_symbol=sym, name=sym, currency=currency,
            price=0.0, change=0.0, volume=0,
            swing=CompositeScore.insufficient(message),
            intraday=CompositeScore.insufficient(message),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "display_symbol": self.display_symbol,
            "name": self.name,
            "currency": self.currency,
            "price": self.price,
            "change": self.change,
            "volume": self.volume,
            "swing": self.swing.to_dict(),
            "intraday": self.intraday.to_dict(),
            "stale": self.stale,
            "timestamp": self.timestamp.isoformat(),
        }


class AnswerSource(Enum):
    AUTO = "AUTO"
    MANUAL = "MANUAL"


@dataclass(frozen=True)
class Answer:
    """Questionnaire answer tagged with where it came from."""
    source: AnswerSource
    option_index: int
    confidence: float = 1.0
