"""
백테스트 성과 지표 계산
"""

from dataclasses import dataclass, asdict
from typing import Dict

import numpy as np
import pandas as pd
import logging

from .errors import DegenerateVariance, EmptySeries, InsufficientOverlap
from .portfolio import cumulative_value

logger = logging.getLogger(__name__)

TRADING_DAYS_PER_YEAR = 252


@dataclass(frozen=True)
class RiskMetrics:
    """포트폴리오 하나에 대한 성과/위험 지표"""
    annualized_return: float
    annualized_volatility: float
    sharpe_ratio: float
    max_drawdown: float
    beta: float
    cumulative_return: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def _defined(returns: pd.Series) -> pd.Series:
    """NaN 을 제거하고, 값이 하나도 없으면 EmptySeries"""
    clean = returns.dropna()
    if len(clean) == 0:
        raise EmptySeries("return series has no defined values", returns.name)
    return clean


def _is_constant(values) -> bool:
    """모든 값이 같은지 (분산 0). 부동소수 잔차 대신 값 범위로 판단"""
    return float(np.ptp(np.asarray(values, dtype=float))) == 0.0


def _sample_std(returns: pd.Series) -> float:
    if len(returns) < 2:
        raise EmptySeries(
            f"sample standard deviation needs at least 2 values, got {len(returns)}",
            returns.name
        )
    # 상수 시리즈는 std 가 1e-17 수준의 잔차로 나오므로 정확히 0 으로
    if _is_constant(returns):
        return 0.0
    return float(returns.std(ddof=1))


class PerformanceMetrics:
    """백테스트 성과 지표 계산

    모든 함수는 입력에만 의존하는 순수 함수입니다.
    수익률 시리즈의 NaN (첫 날짜 등) 은 계산에서 제외됩니다.
    """

    @staticmethod
    def calculate_annualized_return(
        returns: pd.Series,
        periods_per_year: int = TRADING_DAYS_PER_YEAR
    ) -> float:
        """
        연환산 수익률 = 평균 일일 수익률 * 252

        Args:
            returns: 일일 수익률 시리즈
            periods_per_year: 연간 거래일 수 (주식: 252)

        Returns:
            연환산 수익률 (decimal)
        """
        clean = _defined(returns)
        return float(clean.mean()) * periods_per_year

    @staticmethod
    def calculate_annualized_volatility(
        returns: pd.Series,
        periods_per_year: int = TRADING_DAYS_PER_YEAR
    ) -> float:
        """
        연환산 변동성 = 일일 수익률 표본표준편차 * sqrt(252)

        Args:
            returns: 일일 수익률 시리즈
            periods_per_year: 연간 거래일 수

        Returns:
            연환산 변동성 (decimal)
        """
        clean = _defined(returns)
        return _sample_std(clean) * np.sqrt(periods_per_year)

    @staticmethod
    def calculate_sharpe_ratio(
        returns: pd.Series,
        risk_free_rate: float = 0.03,
        periods_per_year: int = TRADING_DAYS_PER_YEAR
    ) -> float:
        """
        Sharpe Ratio 계산

        (mean(R) - rf / 252) / std(R) * sqrt(252)

        NOTE: rf / 252 를 평균에서 그대로 차감하는 근사식입니다 (초과수익률의
        표준편차가 아니라 원 수익률의 표본표준편차로 나눕니다).

        Args:
            returns: 일일 수익률 시리즈
            risk_free_rate: 무위험 이자율 (연 기준, decimal)
            periods_per_year: 연간 거래일 수 (주식: 252)

        Returns:
            Sharpe Ratio
        """
        clean = _defined(returns)
        std = _sample_std(clean)

        if std == 0 or np.isnan(std):
            raise DegenerateVariance("zero volatility, Sharpe ratio undefined", returns.name)

        # 초과 수익률 (일 단위)
        excess_mean = float(clean.mean()) - risk_free_rate / periods_per_year
        return excess_mean / std * np.sqrt(periods_per_year)

    @staticmethod
    def calculate_drawdown_series(returns: pd.Series) -> pd.Series:
        """
        날짜별 낙폭 (running peak 대비 하락 비율, 0 이상)

        Args:
            returns: 일일 수익률 시리즈

        Returns:
            (peak - value) / peak 시리즈
        """
        _defined(returns)
        values = cumulative_value(returns)

        # 누적 최고점
        cumulative_max = values.cummax()
        return (cumulative_max - values) / cumulative_max

    @staticmethod
    def calculate_max_drawdown(returns: pd.Series) -> float:
        """
        Maximum Drawdown 계산

        Args:
            returns: 일일 수익률 시리즈

        Returns:
            최대 낙폭 (decimal, 0 이상)
        """
        drawdown = PerformanceMetrics.calculate_drawdown_series(returns)
        return float(drawdown.max())

    @staticmethod
    def calculate_beta(returns: pd.Series, benchmark_returns: pd.Series) -> float:
        """
        벤치마크 대비 Beta = cov(R, B) / var(B)

        두 시리즈 모두 값이 있는 날짜 (inner join) 만 사용합니다.

        Args:
            returns: 포트폴리오 일일 수익률
            benchmark_returns: 벤치마크 일일 수익률

        Returns:
            Beta
        """
        joined = pd.concat(
            [returns.dropna().rename('r'), benchmark_returns.dropna().rename('b')],
            axis=1,
            join='inner'
        )
        if len(joined) < 2:
            raise InsufficientOverlap(
                f"beta needs at least 2 common dates, got {len(joined)}",
                benchmark_returns.name
            )

        r = joined['r'].to_numpy(dtype=float)
        b = joined['b'].to_numpy(dtype=float)
        r_dev = r - r.mean()
        b_dev = b - b.mean()

        # 공분산 / 분산 (ddof=1, 분모 n-1 은 약분됨)
        covariance = float(np.sum(r_dev * b_dev))
        variance = float(np.sum(b_dev * b_dev))

        if _is_constant(b) or variance == 0:
            raise DegenerateVariance("benchmark has zero variance", benchmark_returns.name)

        return covariance / variance

    @staticmethod
    def calculate_cumulative_return(returns: pd.Series) -> float:
        """
        누적 수익률 (단순 합산, 복리 아님)

        cumulative_value 와는 다릅니다: 이쪽은 합산, 저쪽은 곱.
        """
        clean = _defined(returns)
        return float(clean.sum())

    @staticmethod
    def calculate_all(
        returns: pd.Series,
        benchmark_returns: pd.Series,
        risk_free_rate: float = 0.03,
        periods_per_year: int = TRADING_DAYS_PER_YEAR
    ) -> RiskMetrics:
        """
        전체 위험/성과 지표 계산

        Args:
            returns: 포트폴리오 일일 수익률
            benchmark_returns: 벤치마크 일일 수익률
            risk_free_rate: 무위험 이자율 (연 기준)
            periods_per_year: 연간 거래일 수

        Returns:
            RiskMetrics
        """
        metrics = RiskMetrics(
            annualized_return=PerformanceMetrics.calculate_annualized_return(
                returns, periods_per_year
            ),
            annualized_volatility=PerformanceMetrics.calculate_annualized_volatility(
                returns, periods_per_year
            ),
            sharpe_ratio=PerformanceMetrics.calculate_sharpe_ratio(
                returns, risk_free_rate, periods_per_year
            ),
            max_drawdown=PerformanceMetrics.calculate_max_drawdown(returns),
            beta=PerformanceMetrics.calculate_beta(returns, benchmark_returns),
            cumulative_return=PerformanceMetrics.calculate_cumulative_return(returns)
        )

        logger.debug(
            f"Metrics for {returns.name}: Sharpe={metrics.sharpe_ratio:.2f}, "
            f"MDD={metrics.max_drawdown:.2%}, Beta={metrics.beta:.2f}"
        )
        return metrics
