"""
일일 수익률 / 전략 수익률 계산
"""

from typing import Union

import pandas as pd

from .errors import EmptySeries, MisalignedSeries


def daily_return(prices: Union[pd.DataFrame, pd.Series]) -> pd.Series:
    """
    종가 기준 단순 일일 수익률

    Args:
        prices: OHLCV 데이터프레임 ('close' 컬럼 사용) 또는 종가 시리즈

    Returns:
        close[t] / close[t-1] - 1 시리즈 (첫 날짜는 NaN)
    """
    close = prices['close'] if isinstance(prices, pd.DataFrame) else prices
    if len(close) == 0:
        raise EmptySeries("cannot compute returns of an empty price series", close.name)

    returns = close / close.shift(1) - 1
    return returns.rename(close.name)


def strategy_return(daily_returns: pd.Series, signals: pd.Series) -> pd.Series:
    """
    시그널 적용 수익률: signal[t] * daily_return[t]

    LONG(1) 은 그대로, SHORT(-1) 는 부호 반전, FLAT(0) 은 0.
    시그널은 같은 날짜의 수익률에 적용됩니다 (당일 종가 기준 체결 가정).

    Args:
        daily_returns: 일일 수익률 시리즈
        signals: 같은 인덱스를 가진 시그널 시리즈

    Returns:
        전략 수익률 시리즈
    """
    if not daily_returns.index.equals(signals.index):
        raise MisalignedSeries(
            "signal dates must match return dates exactly", daily_returns.name
        )

    return (signals.astype(float) * daily_returns).rename(daily_returns.name)
