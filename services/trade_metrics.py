"""
Trade Metrics Calculator

Risk:reward ratio (RRR) for individual trades and its average across a trade
list, as shown on the journal dashboard.

All functions are pure and never raise on bad trade data: a trade whose
prices are missing, non-numeric or inconsistent with its direction simply
has no ratio (None) and is left out of averages.

Usage:
    from services.trade_metrics import calculate_rrr, calculate_average_rr

    calculate_rrr(100, 90, 120, "Long")        # 2.0
    calculate_average_rr(trades)               # mean over trades with a ratio
    format_rrr(calculate_average_rr(trades))   # "1:2.0"
"""

import math
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from core.schemas import RRRSummary, Trade


def _to_finite(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def calculate_rrr(
    entry: Any,
    stop_loss: Any,
    take_profit: Any,
    direction: Optional[str] = None
) -> Optional[float]:
    """
    Calculate the risk:reward ratio of a single trade.

    Args:
        entry: Entry price
        stop_loss: Stop-loss price
        take_profit: Take-profit price
        direction: "Long", "Short", or anything else

    Returns:
        reward / risk as a non-negative float, or None when:
            - any price is missing or zero
            - any price is not a finite number (numeric strings are accepted)
            - Long with stop_loss >= entry or take_profit <= entry
            - Short with stop_loss <= entry or take_profit >= entry
            - risk is zero

    Notes:
        Directions other than "Long"/"Short" (including None) are not
        validated; the ratio is computed from absolute distances.

    Example:
        >>> calculate_rrr(100, 90, 120, "Long")
        2.0
        >>> calculate_rrr(100, 110, 80, "Long") is None
        True
    """
    if not entry or not stop_loss or not take_profit:
        return None

    entry_num = _to_finite(entry)
    sl_num = _to_finite(stop_loss)
    tp_num = _to_finite(take_profit)

    if entry_num is None or sl_num is None or tp_num is None:
        return None

    if direction == "Long":
        if sl_num >= entry_num or tp_num <= entry_num:
            return None
    elif direction == "Short":
        if sl_num <= entry_num or tp_num >= entry_num:
            return None

    risk = abs(entry_num - sl_num)
    reward = abs(tp_num - entry_num)

    if risk == 0:
        return None

    return reward / risk


def _price_fields(trade: Any) -> Tuple[Any, Any, Any, Any]:
    """Pull (entryPrice, slPrice, tpPrice, direction) from a Trade or a plain mapping."""
    if isinstance(trade, Trade):
        return trade.entry_price, trade.sl_price, trade.tp_price, trade.direction
    if isinstance(trade, Mapping):
        return (
            trade.get("entryPrice"),
            trade.get("slPrice"),
            trade.get("tpPrice"),
            trade.get("direction"),
        )
    return (
        getattr(trade, "entry_price", None),
        getattr(trade, "sl_price", None),
        getattr(trade, "tp_price", None),
        getattr(trade, "direction", None),
    )


def trade_rrr(trade: Any) -> Optional[float]:
    """Risk:reward ratio of one trade record (Trade model or mapping)."""
    return calculate_rrr(*_price_fields(trade))


def valid_ratios(trades: Iterable[Any]) -> List[float]:
    """Ratios of all trades that have one, in input order."""
    ratios = []
    for trade in trades:
        ratio = trade_rrr(trade)
        if ratio is not None:
            ratios.append(ratio)
    return ratios


def calculate_average_rr(trades: Iterable[Any]) -> float:
    """
    Average risk:reward ratio over a list of trades.

    Trades without a ratio are excluded from both the sum and the count.

    Args:
        trades: Trade models or mappings with entryPrice/slPrice/tpPrice/direction

    Returns:
        Arithmetic mean of the valid ratios, or 0 if no trade has one.
        Check the input length (or use rrr_summary) to tell "no data" apart.

    Example:
        >>> calculate_average_rr([
        ...     {"entryPrice": 100, "slPrice": 90, "tpPrice": 120, "direction": "Long"},
        ...     {"entryPrice": 100, "slPrice": 110, "tpPrice": 80, "direction": "Long"},
        ... ])
        2.0
    """
    ratios = valid_ratios(trades)
    if not ratios:
        return 0
    return sum(ratios) / len(ratios)


def format_rrr(ratio: Optional[float], decimals: int = 1) -> str:
    """
    Render a ratio the way the dashboard shows it.

    Example:
        >>> format_rrr(2.0)
        '1:2.0'
        >>> format_rrr(0)
        'N/A'
    """
    if ratio is None or ratio <= 0:
        return "N/A"
    return f"1:{ratio:.{decimals}f}"


def rrr_summary(trades: Iterable[Any]) -> RRRSummary:
    """Average ratio together with how many trades contributed to it."""
    trade_list = list(trades)
    ratios = valid_ratios(trade_list)
    average = sum(ratios) / len(ratios) if ratios else 0.0
    return RRRSummary(
        average_rr=average,
        valid_count=len(ratios),
        trade_count=len(trade_list),
        display=format_rrr(average)
    )
