"""
Adapter Layer for report payloads.

This module turns engine results into plain JSON-ready records for the
reporting layer (charts, tables). It does NOT modify engine outputs;
every function builds new lists/dicts.
"""

import logging
import math
import pandas as pd
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Union

from backtest.engine import BacktestResult, PortfolioResult
from backtest.metrics import RiskMetrics

logger = logging.getLogger(__name__)


# Default US market close time (16:00 ET = 21:00 UTC)
DEFAULT_DAILY_CLOSE_UTC = "21:00:00+00:00"


def safe_iso8601_utc(
    date_input: Union[str, datetime, pd.Timestamp, None],
    daily_close_utc: str = DEFAULT_DAILY_CLOSE_UTC
) -> Optional[str]:
    """
    Convert date/timestamp to ISO8601 UTC string.

    For daily bars:
    - If timestamp is timezone-aware -> convert to UTC
    - If timestamp is naive/date-only -> assign US market close (21:00 UTC)

    Args:
        date_input: Input date (string, datetime, or pd.Timestamp)
        daily_close_utc: Time to assign for date-only inputs

    Returns:
        ISO8601 formatted string: YYYY-MM-DDTHH:MM:SS+00:00,
        or None if input cannot be parsed (logged as WARNING).
    """
    if date_input is None:
        logger.warning("safe_iso8601_utc received None input, returning None")
        return None

    try:
        ts = pd.Timestamp(date_input)
    except (TypeError, ValueError) as e:
        logger.warning(f"safe_iso8601_utc failed to parse {date_input!r}: {e}")
        return None

    # NaT happens with empty strings
    if pd.isna(ts):
        logger.warning(f"safe_iso8601_utc parsed NaT from {date_input!r}, returning None")
        return None

    if ts.tzinfo is not None:
        return ts.tz_convert("UTC").strftime("%Y-%m-%dT%H:%M:%S+00:00")

    # Naive timestamp - assign daily close time
    time_parts = daily_close_utc.split("+")[0].split(":")
    hour = int(time_parts[0])
    minute = int(time_parts[1]) if len(time_parts) > 1 else 0
    second = int(time_parts[2]) if len(time_parts) > 2 else 0

    dt = datetime(
        ts.year, ts.month, ts.day,
        hour, minute, second,
        tzinfo=timezone.utc
    )
    return dt.strftime("%Y-%m-%dT%H:%M:%S+00:00")


def _format_date(idx) -> str:
    return idx.strftime("%Y-%m-%d") if hasattr(idx, "strftime") else str(idx)[:10]


def _clean_float(value: float, ndigits: int = 6) -> Optional[float]:
    """NaN/inf -> None (JSON has no NaN)"""
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return None
    return round(value, ndigits)


def build_equity_curve(values: pd.Series) -> List[Dict[str, Any]]:
    """
    Build equity_curve from a cumulative-value series.

    Args:
        values: Growth of one unit invested, DatetimeIndex

    Returns:
        List of {"date": "YYYY-MM-DD", "equity": float}
    """
    if values is None or values.empty:
        return []

    return [
        {"date": _format_date(idx), "equity": round(float(value), 6)}
        for idx, value in values.items()
    ]


def build_return_records(returns: pd.Series) -> List[Dict[str, Any]]:
    """
    Build daily return records; undefined returns become null.

    Args:
        returns: Daily return series

    Returns:
        List of {"date": "YYYY-MM-DD", "return": float | None}
    """
    if returns is None or returns.empty:
        return []

    return [
        {"date": _format_date(idx), "return": _clean_float(value, 8)}
        for idx, value in returns.items()
    ]


def derive_drawdown_curve(equity_curve: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Derive drawdown_curve from equity_curve.

    Returns NON-POSITIVE percentages (<= 0.0): 0.0 at a new equity peak,
    negative below the running peak.

        drawdown_pct = ((current_equity - peak_equity) / peak_equity) * 100

    Note: RiskMetrics.max_drawdown reports the same quantity as a positive
    fraction; this curve uses the charting sign convention.

    Args:
        equity_curve: List of {"date": str, "equity": float}

    Returns:
        List of {"date": str, "drawdown_pct": float}
    """
    if not equity_curve:
        return []

    drawdown_curve = []
    peak_equity = 0.0

    for point in equity_curve:
        equity = point["equity"]

        if equity > peak_equity:
            peak_equity = equity

        # Zero peak -> 0.0 (no division by zero)
        if peak_equity > 0:
            drawdown_pct = ((equity - peak_equity) / peak_equity) * 100
        else:
            drawdown_pct = 0.0

        drawdown_curve.append({
            "date": point["date"],
            "drawdown_pct": round(drawdown_pct, 2)
        })

    return drawdown_curve


def metrics_to_dict(metrics: Optional[RiskMetrics]) -> Optional[Dict[str, Optional[float]]]:
    """RiskMetrics -> rounded, JSON-safe dict (None stays None)"""
    if metrics is None:
        return None
    return {key: _clean_float(value) for key, value in metrics.to_dict().items()}


def portfolio_to_dict(portfolio: PortfolioResult) -> Dict[str, Any]:
    """One portfolio variant -> metrics + curves"""
    equity_curve = build_equity_curve(portfolio.value)
    return {
        "name": portfolio.name,
        "metrics": metrics_to_dict(portfolio.metrics),
        "returns": build_return_records(portfolio.returns),
        "equity_curve": equity_curve,
        "drawdown_curve": derive_drawdown_curve(equity_curve)
    }


def build_result_payload(result: BacktestResult) -> Dict[str, Any]:
    """
    Full JSON-ready payload for the reporting layer.

    Args:
        result: BacktestEngine.run() result

    Returns:
        {
            "period": {"start": ISO8601, "end": ISO8601},
            "instruments": {ticker: {...}},
            "failures": {ticker: message},
            "weights": {ticker: weight},
            "portfolio": {"base": {...}, "strategy": {...}}
        }
    """
    instruments = {}
    for ticker, inst in result.instruments.items():
        base_curve = build_equity_curve(inst.base_value)
        strategy_curve = build_equity_curve(inst.strategy_value)
        instruments[ticker] = {
            "base_metrics": metrics_to_dict(inst.base_metrics),
            "strategy_metrics": metrics_to_dict(inst.strategy_metrics),
            "signal_stats": dict(inst.signal_stats),
            "metrics_error": inst.metrics_error,
            "signals": [
                {"date": _format_date(idx), "signal": int(value)}
                for idx, value in inst.signals.items()
            ],
            "base_equity_curve": base_curve,
            "strategy_equity_curve": strategy_curve,
            "strategy_drawdown_curve": derive_drawdown_curve(strategy_curve)
        }

    value_index = result.base_portfolio.value.index
    payload = {
        "period": {
            "start": safe_iso8601_utc(value_index[0]) if len(value_index) else None,
            "end": safe_iso8601_utc(value_index[-1]) if len(value_index) else None
        },
        "instruments": instruments,
        "failures": dict(result.failures),
        "weights": {t: round(w, 6) for t, w in result.weights.items()},
        "portfolio": {
            "base": portfolio_to_dict(result.base_portfolio),
            "strategy": portfolio_to_dict(result.strategy_portfolio)
        }
    }

    logger.debug(f"Built payload for {len(instruments)} instruments")
    return payload
