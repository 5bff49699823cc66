"""Prompt builders for the LLM solo contestant.

Four information levels, from least to most context:

- lite: hourly price/volume series and account line
- indicator: lite + RSI/SMA/MACD now and along the last 24h
- strategy: 12h series, indicators, rule-based signal score, optional daily view
- scalper: indicator data + position in the 24h range and unrealized P&L

Every level states the 24h change as ``Change 24h: +1.2%`` so downstream
consumers (including the offline oracle) can read it back.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from ..indicators import calculate_macd, calculate_rsi, calculate_sma, to_1d
from ..models import OHLCV

REPLY_FORMAT = """Reply in JSON only:
{
  "decision": "BUY" | "SELL" | "WAIT",
  "percentage": 0.0-1.0,
  "reasoning": "%s",
  "confidence": 0-100
}"""

SYSTEM_PROMPTS = {
    "lite": (
        "You are a cryptocurrency trader. Make trading decisions from price data.\n"
        + REPLY_FORMAT % "short rationale (under 50 words)"
    ),
    "indicator": (
        "You are a cryptocurrency trader. Judge the trend from price data and "
        "technical indicators, then decide.\n\n"
        "You will receive:\n"
        "1. Current price and the 24h move\n"
        "2. RSI(14): price strength (0-100)\n"
        "3. SMA(7/25/50): trend direction\n"
        "4. MACD: histogram and crossovers\n"
        "5. Indicator history over the last 24h\n"
        "6. Account: quote balance, base position, total equity\n\n"
        "Decide BUY / SELL / WAIT and the position fraction (0-100%) yourself. "
        "Goal: maximize profit.\n"
        + REPLY_FORMAT % "analysis and rationale (under 100 words)"
    ),
    "strategy": (
        "You are the chief quant strategist. Swing trade using multi-timeframe "
        "analysis and this reasoning framework:\n"
        "1. Trend: combine daily and hourly indicators; up, down or sideways?\n"
        "2. Position: where is price within the 24h range and the MA stack?\n"
        "3. Signal: is RSI extreme, has MACD crossed, did the MAs realign?\n"
        "4. Action: buy, sell or wait, with a reasonable position fraction.\n\n"
        "Rules: trade with the major trend; fade only extreme readings with a "
        "reversal signal; avoid churning in ranges.\n"
        + REPLY_FORMAT % "trend -> position -> signal -> action (under 100 words)"
    ),
    "scalper": (
        "You are a high-frequency swing trader capturing small moves.\n"
        "- Take profit early: 2-3% unrealized gain is enough to scale out\n"
        "- Buy pullbacks in batches, never chase\n"
        "- Size: 25% starter, 50% core position\n"
        "- Stay active; you decide timing, size and batching\n\n"
        "Example: RSI above 70 with price stalling near the 24h high -> "
        '{"decision": "SELL", "percentage": 0.5, "reasoning": "overbought at '
        'resistance, lock in half", "confidence": 90}\n'
        + REPLY_FORMAT % "analysis and rationale (under 100 words)"
    ),
}

CUSTOM_PROMPT_SUFFIX = "\n\nNote: the reasoning field must stay under 100 words."

INDICATOR_HISTORY_HEADER = "T(UTC),P,RSI,SMA7,SMA25,SMA50,MACD_H"


@dataclass
class AccountState:
    """What the prompt needs to know about the contestant's account."""

    balance: float
    total_equity: float
    quantity: float = 0.0
    avg_price: float = 0.0


def system_prompt_for(level: str, custom_prompt: Optional[str] = None) -> str:
    if custom_prompt:
        return custom_prompt + CUSTOM_PROMPT_SUFFIX
    return SYSTEM_PROMPTS.get(level, SYSTEM_PROMPTS["lite"])


def _time_label(timestamp: int) -> str:
    # "MM-DD HH:MM"
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).strftime("%m-%d %H:%M")


def sample_indices(length: int, step: int, count: int) -> list[int]:
    """Indices stepping back from the last candle, returned oldest-first."""
    return list(range(length - 1, -1, -step))[:count][::-1]


def _change_24h(candles: Sequence[OHLCV]) -> float:
    first = candles[0].open
    return (candles[-1].close - first) / first * 100


def _ma_alignment(sma7: float, sma25: float, sma50: float) -> str:
    if sma7 > sma25 > sma50:
        return "bullish alignment"
    if sma7 < sma25 < sma50:
        return "bearish alignment"
    return "mixed"


def _price_csv(candles: Sequence[OHLCV], indices: Sequence[int], with_volume: bool = True) -> str:
    rows = []
    for i in indices:
        c = candles[i]
        if with_volume:
            rows.append(f"{_time_label(c.timestamp)},{round(c.close)},{round(c.volume)}")
        else:
            rows.append(f"{_time_label(c.timestamp)},{round(c.close)}")
    return "\n".join(rows)


def _indicator_history_csv(candles: Sequence[OHLCV], indices: Sequence[int]) -> str:
    prices = [c.close for c in candles]
    rows = []
    for i in indices:
        if i < 50:
            continue
        window = prices[:i + 1]
        rows.append(
            ",".join([
                _time_label(candles[i].timestamp),
                str(round(candles[i].close)),
                str(round(calculate_rsi(window, 14))),
                str(round(calculate_sma(window, 7))),
                str(round(calculate_sma(window, 25))),
                str(round(calculate_sma(window, 50))),
                str(round(calculate_macd(window).histogram)),
            ])
        )
    return "\n".join(rows)


def _market_summary(symbol: str, candles: Sequence[OHLCV]) -> str:
    high = max(c.high for c in candles)
    low = min(c.low for c in candles)
    volume = sum(c.volume for c in candles)
    return (
        f"[{symbol} 24h]\n"
        f"Change 24h: {_change_24h(candles):+.1f}%, High: {high:g}, "
        f"Low: {low:g}, Volume: {round(volume)}"
    )


def _account_line(symbol: str, account: AccountState) -> str:
    return (
        f"USDT: {round(account.balance)}, {symbol}: {account.quantity:.4f} "
        f"(Entry: {round(account.avg_price)}), Total: {round(account.total_equity)}"
    )


def build_lite_prompt(symbol: str, candles: Sequence[OHLCV], account: AccountState) -> str:
    """Hourly samples of the last 24h plus the account line."""
    indices = sample_indices(len(candles), 60, 24)
    return (
        f"{_market_summary(symbol, candles)}\n\n"
        f"[Market Data (CSV)]\n"
        f"T(UTC),P,V\n"
        f"{_price_csv(candles, indices)}\n\n"
        f"[Account]\n"
        f"{_account_line(symbol, account)}"
    )


def build_indicator_prompt(symbol: str, candles: Sequence[OHLCV], account: AccountState) -> str:
    prices = [c.close for c in candles]
    rsi = calculate_rsi(prices, 14)
    sma7 = calculate_sma(prices, 7)
    sma25 = calculate_sma(prices, 25)
    sma50 = calculate_sma(prices, 50)
    macd = calculate_macd(prices)

    rsi_status = "oversold" if rsi < 30 else "overbought" if rsi > 70 else "neutral"
    macd_status = "bullish" if macd.histogram > 0 else "bearish"
    indices = sample_indices(len(candles), 60, 24)

    return (
        f"{_market_summary(symbol, candles)}\n\n"
        f"[Current Indicators]\n"
        f"RSI(14): {round(rsi)} ({rsi_status})\n"
        f"SMA: 7={round(sma7)}, 25={round(sma25)}, 50={round(sma50)} "
        f"({_ma_alignment(sma7, sma25, sma50)})\n"
        f"MACD: {macd_status} (histogram {macd.histogram:+.0f})\n\n"
        f"[Price Data (CSV)]\n"
        f"T(UTC),P,V\n"
        f"{_price_csv(candles, indices)}\n\n"
        f"[Indicator History (CSV)]\n"
        f"{INDICATOR_HISTORY_HEADER}\n"
        f"{_indicator_history_csv(candles, indices)}\n\n"
        f"[Account]\n"
        f"{_account_line(symbol, account)}"
    )


def score_signals(rsi: float, sma7: float, sma25: float, sma50: float, macd) -> tuple[float, list[str]]:
    """Rule-based 0-10 score (5 is neutral) and the signals that moved it."""
    score = 5.0
    signals = []

    if rsi < 30:
        score += 2
        signals.append("RSI oversold")
    elif rsi < 40:
        score += 1
        signals.append("RSI low")
    elif rsi > 70:
        score -= 2
        signals.append("RSI overbought")
    elif rsi > 60:
        score -= 1
        signals.append("RSI high")

    if sma7 > sma25 > sma50:
        score += 1
        signals.append("MA bullish alignment")
    elif sma7 < sma25 < sma50:
        score -= 1
        signals.append("MA bearish alignment")

    if macd.trend == "bullish":
        score += 1
        signals.append("MACD bullish cross")
    elif macd.trend == "bearish":
        score -= 1
        signals.append("MACD bearish cross")

    return score, signals


def strategy_advice(score: float) -> tuple[str, int]:
    """Map a signal score to (advice, strength 0-10)."""
    if score >= 8:
        return "strong buy", min(10, round(score))
    if score >= 6:
        return "buy", round(score)
    if score <= 2:
        return "strong sell", min(10, round(10 - score))
    if score <= 4:
        return "sell", round(10 - score)
    return "wait", 5


def _daily_section(candles: Sequence[OHLCV], current_price: float) -> str:
    day_closes = [c.close for c in to_1d(candles)]
    if len(day_closes) < 5:
        return ""
    sma5 = calculate_sma(day_closes, 5)
    direction = "up" if current_price > sma5 else "down"
    return f"\n[Daily View] daily trend {direction} (5-day SMA: {round(sma5)})\n"


def build_strategy_prompt(
    symbol: str,
    candles: Sequence[OHLCV],
    account: AccountState,
    include_daily: bool = False,
) -> str:
    prices = [c.close for c in candles]
    current_price = prices[-1]
    rsi = calculate_rsi(prices, 14)
    sma7 = calculate_sma(prices, 7)
    sma25 = calculate_sma(prices, 25)
    sma50 = calculate_sma(prices, 50)
    macd = calculate_macd(prices)

    score, signals = score_signals(rsi, sma7, sma25, sma50, macd)
    advice, strength = strategy_advice(score)
    indices = sample_indices(len(candles), 120, 12)
    daily = _daily_section(candles, current_price) if include_daily else ""

    return (
        f"[{symbol} Multi-timeframe Analysis]\n"
        f"Price: {round(current_price)} | Change 24h: {_change_24h(candles):+.1f}%\n\n"
        f"[Hourly Indicators]\n"
        f"RSI(14): {round(rsi)}/100 | SMA: {round(sma7)}/{round(sma25)}/{round(sma50)} "
        f"| MACD: {round(macd.histogram)}\n\n"
        f"[Last 12h Prices]\n"
        f"{_price_csv(candles, indices, with_volume=False)}\n"
        f"{daily}\n"
        f"[Strategy Signals]\n"
        f"Triggers: {', '.join(signals) or 'none'}\n"
        f"Score: {round(score)}/10 -> {advice} (strength {strength}/10)\n\n"
        f"[Account]\n"
        f"USDT: {round(account.balance)} | {symbol}: {account.quantity:.4f} "
        f"| Total: {round(account.total_equity)}"
    )


def build_scalper_prompt(symbol: str, candles: Sequence[OHLCV], account: AccountState) -> str:
    prices = [c.close for c in candles]
    current_price = prices[-1]
    high = max(c.high for c in candles)
    low = min(c.low for c in candles)
    rsi = calculate_rsi(prices, 14)
    sma7 = calculate_sma(prices, 7)
    sma25 = calculate_sma(prices, 25)
    sma50 = calculate_sma(prices, 50)
    macd = calculate_macd(prices)
    indices = sample_indices(len(candles), 60, 24)

    unrealized_pct = 0.0
    if account.avg_price > 0:
        unrealized_pct = (current_price - account.avg_price) / account.avg_price * 100
    range_position = (current_price - low) / (high - low) * 100 if high > low else 50.0

    return (
        f"[{symbol} Swing Analysis]\n"
        f"Price: {round(current_price)} | Change 24h: {_change_24h(candles):+.1f}%\n"
        f"24h range: {round(low)} - {round(high)} | Position in range: {range_position:.1f}%\n\n"
        f"[Current Indicators]\n"
        f"RSI(14): {round(rsi)} | SMA: {round(sma7)}/{round(sma25)}/{round(sma50)}\n"
        f"MACD: {round(macd.histogram)}\n\n"
        f"[Price Data (CSV)]\n"
        f"T(UTC),P,V\n"
        f"{_price_csv(candles, indices)}\n\n"
        f"[Indicator History (CSV)]\n"
        f"{INDICATOR_HISTORY_HEADER}\n"
        f"{_indicator_history_csv(candles, indices)}\n\n"
        f"[Position]\n"
        f"{symbol}: {account.quantity:.4f} | Cost: {round(account.avg_price)} "
        f"| Unrealized: {unrealized_pct:+.2f}%\n"
        f"USDT: {round(account.balance)} | Total: {round(account.total_equity)}\n\n"
        f"[Angles to consider]\n"
        f"- Are we in profit or loss, and by how much?\n"
        f"- Where is price relative to the 24h high and low?\n"
        f"- Is RSI extreme, how are the MAs stacked, where is MACD heading?\n"
        f"- Does recent volatility leave room for a trade?"
    )


def build_prompt(
    level: str,
    symbol: str,
    candles: Sequence[OHLCV],
    account: AccountState,
    include_daily: bool = False,
) -> str:
    """Dispatch to the builder for `level` (unknown levels fall back to lite)."""
    if level == "indicator":
        return build_indicator_prompt(symbol, candles, account)
    if level == "strategy":
        return build_strategy_prompt(symbol, candles, account, include_daily)
    if level == "scalper":
        return build_scalper_prompt(symbol, candles, account)
    return build_lite_prompt(symbol, candles, account)
