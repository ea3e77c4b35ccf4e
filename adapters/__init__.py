"""
Adapter layer for post-processing backtest engine outputs.
Does NOT modify core engine logic.
"""

from adapters.adapter import (
    build_equity_curve,
    build_result_payload,
    build_return_records,
    derive_drawdown_curve,
    metrics_to_dict,
    portfolio_to_dict,
    safe_iso8601_utc,
)

__all__ = [
    "build_equity_curve",
    "build_result_payload",
    "build_return_records",
    "derive_drawdown_curve",
    "metrics_to_dict",
    "portfolio_to_dict",
    "safe_iso8601_utc",
]
