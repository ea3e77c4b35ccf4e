# features/technical_indicators.py
"""
기술적 지표 계산 모듈

주요 지표:
- 단순 이동평균 (SMA)
- RSI (Relative Strength Index)

모든 지표는 입력 가격 시리즈와 같은 인덱스를 가지며,
워밍업 구간은 NaN 으로 남습니다.
"""

import numbers

import pandas as pd

from backtest.errors import EmptySeries, InvalidParameter
from scripts.logger_config import setup_logger

logger = setup_logger("technical_indicators")


def _validate_period(period, length: int, name: str = "period") -> None:
    """기간 파라미터가 1 이상, 시리즈 길이 이하의 정수인지 확인"""
    if isinstance(period, bool) or not isinstance(period, numbers.Integral):
        raise InvalidParameter(f"must be an integer, got {period!r}", name)
    if period <= 0:
        raise InvalidParameter(f"must be positive, got {period}", name)
    if period > length:
        raise InvalidParameter(
            f"must not exceed series length {length}, got {period}", name
        )


class TechnicalIndicators:
    """기술적 지표 계산 클래스"""

    @staticmethod
    def sma(series: pd.Series, period: int) -> pd.Series:
        """
        Simple Moving Average (단순 이동평균)

        Args:
            series: 종가 시리즈
            period: 기간 (1 <= period <= len(series))

        Returns:
            SMA 시리즈 (처음 period - 1 개는 NaN)
        """
        if len(series) == 0:
            raise EmptySeries("cannot compute SMA of an empty series", series.name)
        _validate_period(period, len(series))
        return series.rolling(window=period, min_periods=period).mean()

    @staticmethod
    def rsi(series: pd.Series, period: int = 14) -> pd.Series:
        """
        Relative Strength Index

        평균 상승폭 / 평균 하락폭을 단순 이동평균으로 계산합니다.
        하락이 전혀 없는 구간은 100, 변화가 전혀 없는 구간은 50 으로 정의합니다.

        Args:
            series: 종가 시리즈
            period: 기간 (기본값 14)

        Returns:
            RSI 시리즈 (0-100, 처음 period 개는 NaN)
        """
        if len(series) == 0:
            raise EmptySeries("cannot compute RSI of an empty series", series.name)
        _validate_period(period, len(series))

        delta = series.diff()
        gain = delta.clip(lower=0).rolling(window=period, min_periods=period).mean()
        loss = (-delta.clip(upper=0)).rolling(window=period, min_periods=period).mean()

        rs = gain / loss.where(loss != 0)
        rsi = 100 - (100 / (1 + rs))

        # 하락 없음 -> 100, 완전 횡보 -> 50
        rsi = rsi.mask((loss == 0) & (gain > 0), 100.0)
        rsi = rsi.mask((loss == 0) & (gain == 0), 50.0)
        return rsi.rename(series.name)

    @staticmethod
    def calculate_all(df: pd.DataFrame, config: dict) -> pd.DataFrame:
        """
        전략에 필요한 기술적 지표를 한 번에 계산

        Args:
            df: OHLCV 데이터프레임
            config: {'sma_periods': [...], 'rsi_period': int}

        Returns:
            지표가 추가된 데이터프레임 (입력은 변경하지 않음)
        """
        result = df.copy()

        try:
            # SMA
            for period in config.get('sma_periods', []):
                result[f'sma_{period}'] = TechnicalIndicators.sma(df['close'], period)
                logger.debug(f"Calculated SMA_{period}")

            # RSI
            rsi_period = config.get('rsi_period', 14)
            result['rsi'] = TechnicalIndicators.rsi(df['close'], rsi_period)
            logger.debug(f"Calculated RSI_{rsi_period}")

        except Exception as e:
            logger.error(f"Error calculating technical indicators: {e}")
            raise

        return result
