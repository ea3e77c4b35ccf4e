"""
Shared fixtures for backtest tests.
"""

import os
import tempfile

# Keep log files out of the working tree (setup_logger reads LOG_DIR at call time)
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="backtest-logs-"))

import numpy as np
import pandas as pd
import pytest


def _price_frame(closes, start="2024-01-01"):
    closes = pd.Series(closes, dtype=float).to_numpy()
    index = pd.bdate_range(start=start, periods=len(closes), name="date")
    return pd.DataFrame(
        {
            "open": closes,
            "high": closes * 1.01,
            "low": closes * 0.99,
            "close": closes,
            "volume": np.full(len(closes), 1_000_000.0),
        },
        index=index,
    )


@pytest.fixture
def make_prices():
    """Factory: list of closes -> OHLCV frame on business days."""
    return _price_frame


@pytest.fixture
def random_prices():
    """Factory: seeded random-walk OHLCV frame."""
    def _make(seed, periods=40, drift=0.001, vol=0.02, start="2024-01-01"):
        rng = np.random.default_rng(seed)
        steps = rng.normal(drift, vol, periods)
        closes = 100.0 * np.cumprod(1 + steps)
        return _price_frame(closes, start=start)
    return _make
