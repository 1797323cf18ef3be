"""
Trade-Check Questionnaire — setup detection, weighted score, traffic light

Nine multiple-choice questions (q1..q9) describe a prospective long
trade. Answers come from the auto-fill engine (AUTO) or from the trader
(MANUAL); manual answers always win.

Evaluation:
───────────
1. Detect the setup first (Breakout / Mean Reversion / Follow-Through)
   from a few key answers; the top setup picks the weight vector
2. Weighted total of option scores → score percentage
3. Traffic light from the percentage, downgraded when the CRV is poor
4. Risk budget and minimum CRV from the traffic light → position size

Simple interface → evaluate(answers, TradeInputs) returns a TradeCheckResult
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional

from models import Answer, AnswerSource, AutoFillResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Option:
    label: str
    description: str
    score: float


@dataclass(frozen=True)
class Question:
    id: str
    title: str
    question: str
    weights: Dict[str, int]
    options: List[Option]
    auto_fill: bool = True

    def weight(self, setup_key: str) -> int:
        return self.weights.get(setup_key) or self.weights["default"]


QUESTIONS: List[Question] = [
    Question(
        "q1", "Support zone",
        "Is there a support zone around your entry price (±1-2%)?",
        {"default": 15, "breakout": 20, "meanReversion": 10, "followThrough": 12},
        [
            Option("No visible support", "No visible floor on the chart, price could keep falling", 0),
            Option("Weak zone", "Price held here once briefly without a clear reaction", 0.33),
            Option("Clear support", "Price turned here at least twice, visible long wicks", 0.75),
            Option("Strong zone + buying pressure", "Confirmed several times with visible buying pressure", 1.0),
        ],
    ),
    Question(
        "q2", "Volume profile at level",
        "What does the volume profile show at your entry level?",
        {"default": 12, "breakout": 18, "meanReversion": 8, "followThrough": 10},
        [
            Option("Hardly any volume", "Little historical volume, level barely noticed", 0),
            Option("Moderate activity", "Some volume but no clear cluster", 0.33),
            Option("Clear volume cluster", "Level sits in a high volume node", 0.75),
            Option("POC near entry", "Point of control close to your level", 1.0),
        ],
    ),
    Question(
        "q3", "Candle signal",
        "Is there a clear confirmation candle at the level?",
        {"default": 12, "breakout": 10, "meanReversion": 18, "followThrough": 10},
        [
            Option("No recognisable pattern", "No reversal or confirmation candle", 0),
            Option("Doji / weak hint", "Market undecided, signal still weak", 0.33),
            Option("Hammer / Pin Bar / Engulfing", "Clear reversal candle at the level", 0.75),
            Option("Pattern + follow-through", "Next candle confirms the direction", 1.0),
        ],
    ),
    Question(
        "q4", "Trend & structure",
        "What is the primary trend on the daily chart?",
        {"default": 15, "breakout": 10, "meanReversion": 8, "followThrough": 22},
        [
            Option("Clear downtrend", "Lower highs and lower lows", 0),
            Option("Sideways / no trend", "Range market without direction", 0.33),
            Option("Slight uptrend", "Tendency up, not yet clear", 0.67),
            Option("Clear uptrend", "Higher highs and lows, EMAs rising", 1.0),
        ],
    ),
    Question(
        "q5", "RSI & momentum",
        "Where is the RSI(14)?",
        {"default": 10, "breakout": 5, "meanReversion": 20, "followThrough": 8},
        [
            Option("RSI overbought (>70)", "Pullback likely, poor long entry", 0.10),
            Option("RSI neutral (50-70)", "No extreme, trend could continue", 0.40),
            Option("RSI in buy zone (30-50)", "Good zone for long entries", 0.75),
            Option("RSI <40 + bullish divergence", "New price low with a higher RSI low", 1.0),
        ],
    ),
    Question(
        "q6", "EMA ordering",
        "How are the EMAs (20/50/200) ordered?",
        {"default": 10, "breakout": 7, "meanReversion": 6, "followThrough": 18},
        [
            Option("Bearish (200 > 50 > 20)", "Clear counter-trend for a long", 0),
            Option("Tangled / no order", "Range market, EMAs keep crossing", 0.30),
            Option("Partly rising", "2 of 3 EMAs ordered for a long", 0.70),
            Option("EMA 20 > 50 > 200", "Clear uptrend, ideal for a long", 1.0),
        ],
    ),
    Question(
        "q7", "Chart pattern",
        "Is a classic chart pattern visible?",
        {"default": 12, "breakout": 16, "meanReversion": 12, "followThrough": 10},
        [
            Option("No pattern", "Unclear chart structure", 0),
            Option("Pattern hinted", "Could be forming, not yet confirmed", 0.33),
            Option("Clear pattern", "Flag, wedge, triangle or double bottom", 0.75),
            Option("Confirmed + breakout", "Pattern completed with confirmation", 1.0),
        ],
        auto_fill=False,
    ),
    Question(
        "q8", "Leading index",
        "Where is the leading index (S&P 500 or DAX) relative to its moving averages?",
        {"default": 14, "breakout": 14, "meanReversion": 18, "followThrough": 10},
        [
            Option("Below 50-MA and 200-MA", "Bear market, hard for longs", 0),
            Option("Between 50-MA and 200-MA", "Correction or recovery phase", 0.36),
            Option("Above 200-MA, near 50-MA", "Primary trend intact, short-term neutral", 0.71),
            Option("Above 50-MA and 200-MA", "Bull market with broad participation", 1.0),
        ],
    ),
    Question(
        "q9", "Bollinger bands",
        "How does price behave relative to the Bollinger bands (20,2)?",
        {"default": 10, "breakout": 12, "meanReversion": 18, "followThrough": 6},
        [
            Option("Below the lower band", "Strongly oversold, mean reversion possible", 0.25),
            Option("Inside, near the lower band", "Approaching the band without contact", 0.50),
            Option("Between the bands", "Neutral, no signal from the bands", 0.35),
            Option("Lower band + reversal signal", "Touches the band with a reversal candle", 0.80),
            Option("Squeeze + upside breakout", "Narrow bands, breakout starting", 1.0),
        ],
    ),
]

QUESTIONS_BY_ID: Dict[str, Question] = {q.id: q for q in QUESTIONS}


# ── Answers ─────────────────────────────────────────────────────────────────

def answers_from_auto_fill(scores: Mapping[str, AutoFillResult]) -> Dict[str, Answer]:
    return {
        qid: Answer(AnswerSource.AUTO, result.option_index, result.confidence)
        for qid, result in scores.items()
        if qid in QUESTIONS_BY_ID
    }


def merge_answers(auto: Mapping[str, Answer],
                  manual: Mapping[str, Answer]) -> Dict[str, Answer]:
    """Manual answers override auto answers for the same question."""
    merged = dict(auto)
    merged.update(manual)
    return merged


def option_score(answers: Mapping[str, Answer], qid: str) -> float:
    """Score of the chosen option, 0 when unanswered or out of range."""
    answer = answers.get(qid)
    if answer is None:
        return 0.0
    options = QUESTIONS_BY_ID[qid].options
    if not 0 <= answer.option_index < len(options):
        logger.warning(f"Ignoring out-of-range answer {answer.option_index} for {qid}")
        return 0.0
    return options[answer.option_index].score


# ── Setup detection ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Setup:
    key: str
    name: str
    score: float


def detect_setups(answers: Mapping[str, Answer]) -> List[Setup]:
    """All three setups, strongest first (ties keep the listed order)."""
    s = lambda qid: option_score(answers, qid)
    setups = [
        Setup("breakout", "Breakout",
              s("q1") * 2 + s("q2") * 1.5 + s("q7") * 1.2 + s("q9") * 0.8),
        Setup("meanReversion", "Mean Reversion",
              s("q5") * 2 + s("q3") * 1.5 + s("q8") * 1.0 + s("q9") * 1.5),
        Setup("followThrough", "Follow-Through",
              s("q4") * 2 + s("q6") * 1.5 + s("q1") * 0.5),
    ]
    return sorted(setups, key=lambda x: x.score, reverse=True)


# ── Traffic light & position advice ─────────────────────────────────────────

class TrafficLight(Enum):
    NO_TRADE = 0
    RED = 1
    ORANGE = 2
    GREEN = 3

    @property
    def label(self) -> str:
        return self.name.replace("_", " ")


@dataclass(frozen=True)
class PositionAdvice:
    risk_pct: float
    position_pct: int
    label: str
    min_crv: float


POSITION_ADVICE = {
    TrafficLight.GREEN:    PositionAdvice(1.0, 100, "Full position", 1.5),
    TrafficLight.ORANGE:   PositionAdvice(0.5, 50, "Half position", 2.0),
    TrafficLight.RED:      PositionAdvice(0.25, 25, "Mini position", 3.0),
    TrafficLight.NO_TRADE: PositionAdvice(0.0, 0, "Do not trade", math.inf),
}


def crv(entry: float, stop: float, target: float) -> float:
    """Reward/risk ratio, 0 when there is no risk distance."""
    risk = abs(entry - stop)
    return abs(target - entry) / risk if risk > 0 else 0.0


def traffic_light(score_pct: float, crv_value: float) -> TrafficLight:
    if score_pct >= 75:
        level = 3
    elif score_pct >= 55:
        level = 2
    elif score_pct >= 35:
        level = 1
    else:
        level = 0

    if crv_value < 1.0:
        level = max(0, level - 2)
    elif crv_value < 1.5:
        level = max(0, level - 1)
    return TrafficLight(level)


def position_size(max_loss: float, entry: float, stop: float, fx_rate: float = 1.0) -> int:
    """Whole shares so that a stop-out loses at most max_loss (account currency)."""
    risk_per_share = abs(entry - stop) * fx_rate
    if risk_per_share <= 0 or max_loss <= 0:
        return 0
    return int(math.floor(max_loss / risk_per_share))


# ── Evaluation ──────────────────────────────────────────────────────────────

@dataclass
class TradeInputs:
    entry: float
    stop: float
    target: float
    account: float = 0.0
    risk_pct: float = 1.0       # trader's own cap, % of account
    fx_rate: float = 1.0        # trade currency → account currency
    open_risk: float = 0.0      # risk already tied up in open trades


@dataclass
class TradeCheckResult:
    setups: List[Setup]
    total_score: int
    max_score: int
    score_pct: float
    crv: float
    light: TrafficLight
    advice: PositionAdvice
    shares: int
    recommended_shares: int
    answers: Dict[str, Answer] = field(default_factory=dict)

    @property
    def setup(self) -> Setup:
        return self.setups[0]

    @property
    def crv_ok(self) -> bool:
        return self.crv >= self.advice.min_crv

    @property
    def unanswered(self) -> List[str]:
        return [q.id for q in QUESTIONS if q.id not in self.answers]


def evaluate(answers: Mapping[str, Answer], inputs: TradeInputs) -> TradeCheckResult:
    setups = detect_setups(answers)
    setup_key = setups[0].key

    score = 0.0
    max_score = 0
    for q in QUESTIONS:
        w = q.weight(setup_key)
        max_score += w
        score += option_score(answers, q.id) * w

    total = int(math.floor(score + 0.5))
    score_pct = total / max_score * 100 if max_score > 0 else 0.0
    crv_value = crv(inputs.entry, inputs.stop, inputs.target)
    light = traffic_light(score_pct, crv_value)
    advice = POSITION_ADVICE[light]

    user_max_loss = inputs.account * inputs.risk_pct / 100
    available = max(0.0, inputs.account * advice.risk_pct / 100 - inputs.open_risk)

    result = TradeCheckResult(
        setups=setups,
        total_score=total,
        max_score=max_score,
        score_pct=score_pct,
        crv=crv_value,
        light=light,
        advice=advice,
        shares=position_size(user_max_loss, inputs.entry, inputs.stop, inputs.fx_rate),
        recommended_shares=position_size(
            min(user_max_loss, available), inputs.entry, inputs.stop, inputs.fx_rate
        ),
        answers=dict(answers),
    )
    logger.info(
        f"Trade check: {result.setup.name} setup, {total}/{max_score} "
        f"({score_pct:.0f}%), CRV {crv_value:.2f} → {light.label}"
    )
    return result
