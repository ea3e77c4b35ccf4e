"""
Portfolio aggregation: weighted combination of per-instrument returns
"""

import logging
from typing import List, Sequence

import numpy as np
import pandas as pd

from .errors import EmptySeries, InvalidParameter, MisalignedSeries

logger = logging.getLogger(__name__)

WEIGHT_TOLERANCE = 1e-6


def equal_weights(n: int) -> List[float]:
    """Static equal weight vector of length n"""
    if n < 1:
        raise InvalidParameter(f"need at least one instrument, got {n}", "n")
    return [1.0 / n] * n


def combine(return_series_list: Sequence[pd.Series], weights: Sequence[float]) -> pd.Series:
    """
    Weighted sum of returns on the dates every series has defined.

    Undefined (NaN) entries are dropped per series, then the series are
    inner-joined on date.

    Args:
        return_series_list: Per-instrument return series
        weights: One weight per series, summing to 1

    Returns:
        Portfolio return series on the common dates
    """
    if len(return_series_list) == 0:
        raise EmptySeries("no return series to combine", "returns")
    if len(weights) != len(return_series_list):
        raise InvalidParameter(
            f"got {len(weights)} weights for {len(return_series_list)} series", "weights"
        )
    if abs(sum(weights) - 1.0) > WEIGHT_TOLERANCE:
        raise InvalidParameter(f"weights must sum to 1.0, got {sum(weights)}", "weights")

    columns = [
        series.dropna().rename(i) for i, series in enumerate(return_series_list)
    ]
    joined = pd.concat(columns, axis=1, join='inner')

    if joined.empty:
        names = [series.name for series in return_series_list]
        raise MisalignedSeries(f"no common dates across {names}", "returns")

    combined = joined.mul(np.asarray(weights, dtype=float), axis=1).sum(axis=1)
    logger.debug(f"Combined {len(columns)} series over {len(combined)} common dates")
    return combined.rename("portfolio")


def cumulative_value(returns: pd.Series) -> pd.Series:
    """
    Growth of one unit invested at the first date.

    Running product of (1 + r); undefined entries contribute no change,
    so a leading NaN return starts the curve at exactly 1.0.
    """
    return (1 + returns.fillna(0.0)).cumprod()
