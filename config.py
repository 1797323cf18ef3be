"""
Configuration for the Trade Check scanner
Following Ousterhout's principles: centralized configuration, easy to modify.

Key settings:
- Watchlist universe and leading indices per currency
- Indicator periods shared by scanner and questionnaire auto-fill
- Composite weight vectors (each sums to 1.0)
- Scanner batching and notification thresholds
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Base directories ────────────────────────────────────────────────────────
BASE_DIR = Path(__file__).parent
DATA_DIR = BASE_DIR / "data"
LOGS_DIR = BASE_DIR / "logs"

for d in (DATA_DIR, LOGS_DIR):
    d.mkdir(parents=True, exist_ok=True)

SCAN_HISTORY_FILE = DATA_DIR / "scans.jsonl"
COOLDOWN_FILE = DATA_DIR / "notify_cooldowns.json"

# ── Universe ────────────────────────────────────────────────────────────────
# Plain tickers; EUR tickers without suffix are mapped to Xetra (".DE")
WATCHLIST = [
    s.strip() for s in os.getenv(
        "WATCHLIST", "SAP,RHM,SIE,ALV,IFX,DTE,MUV2,AIR"
    ).split(",") if s.strip()
]
WATCHLIST_CURRENCY = os.getenv("WATCHLIST_CURRENCY", "EUR")

DEFAULT_EXCHANGE_SUFFIX = {"EUR": ".DE"}

# Leading index used as breadth context for the questionnaire
LEADING_INDEX = {
    "USD": {"symbol": "^GSPC", "name": "S&P 500"},
    "EUR": {"symbol": "^GDAXI", "name": "DAX"},
}

# ── Timing ──────────────────────────────────────────────────────────────────
SCAN_INTERVAL = int(os.getenv("SCAN_INTERVAL", "900"))   # 15 min between scans
ERROR_BACKOFF = 10                                        # seconds after a failed iteration

# ── Market data ─────────────────────────────────────────────────────────────
DATA_PROVIDER = "yfinance"
CACHE_TTL_HOURS = 4          # fresh window; older entries only serve as offline fallback
FETCH_TIMEOUT = 15           # seconds, per request
PRICE_DECIMALS = 2

DAILY_RANGE = "1y"
DAILY_INTERVAL = "1d"
INTRADAY_RANGE = "5d"
INTRADAY_INTERVAL = "15m"

# ── Technical Indicators ────────────────────────────────────────────────────
INDICATORS = {
    "rsi_period": 14,
    "ema_fast": 20,
    "ema_mid": 50,
    "ema_slow": 200,
    "bb_period": 20,
    "bb_std": 2,
    "volume_avg": 20,           # bars for the swing volume ratio
    "trend_slope_bars": 10,     # EMA50 values spanned by the trend slope
    "atr_bars": 15,             # daily bars averaged for the ATR proxy
    "swing_pivot": 2,           # bars each side for swing highs/lows
    "support_tolerance": 0.03,  # swing lows within ±3% count as support
    "vol_profile_bins": 50,
    "divergence_lookback": 20,
}

# ── Composite Scoring ───────────────────────────────────────────────────────
MIN_SWING_CANDLES = 60
MIN_INTRADAY_CANDLES = 10

SWING_WEIGHTS = {
    "rsi":       0.25,
    "support":   0.20,
    "ema":       0.15,
    "bollinger": 0.15,
    "volume":    0.15,
    "trend":     0.10,
}

INTRADAY_WEIGHTS = {
    "volume_spike": 0.30,
    "gap":          0.25,
    "rel_strength": 0.20,
    "atr":          0.15,
    "vwap":         0.10,
}

# ── Scanner ─────────────────────────────────────────────────────────────────
SCANNER = {
    "batch_size": 5,            # concurrent fetches per batch
    "swing_rank_weight": 0.6,   # ordering key only, never persisted
    "intraday_rank_weight": 0.4,
}

# ── Auto-fill ───────────────────────────────────────────────────────────────
AUTO_FILL = {
    "min_candles": 30,
    "support_tolerance": 0.02,
}

# ── Notifications ───────────────────────────────────────────────────────────
NOTIFY_THRESHOLDS = {"swing": 70, "intraday": 75}
NOTIFY_COOLDOWN_SECONDS = 60 * 60     # one alert per symbol and horizon per hour
NOTIFY_TOP_SIGNALS = 3
NOTIFY_WEBHOOK_URL = os.getenv("NOTIFY_WEBHOOK_URL", "")   # e.g. https://ntfy.sh/<topic>
NOTIFY_TIMEOUT = 10

# ── Display ─────────────────────────────────────────────────────────────────
TERMINAL_WIDTH = 110

# ── Logging ─────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
