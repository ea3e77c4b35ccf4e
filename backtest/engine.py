"""
백테스트 엔진: 종목별 시그널/수익률 계산 후 포트폴리오 성과 평가
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import logging

import pandas as pd

from features.technical_indicators import TechnicalIndicators
from rules.signal_generator import SignalGenerator, signal_summary
from scripts.config import Config
from .errors import BacktestError, EmptySeries, InvalidParameter, MisalignedSeries
from .metrics import PerformanceMetrics, RiskMetrics
from .portfolio import WEIGHT_TOLERANCE, combine, cumulative_value, equal_weights
from .returns import daily_return, strategy_return

logger = logging.getLogger(__name__)


@dataclass
class InstrumentResult:
    """종목 하나의 파이프라인 결과"""
    ticker: str
    features: pd.DataFrame
    signals: pd.Series
    daily_returns: pd.Series
    strategy_returns: pd.Series
    base_value: pd.Series
    strategy_value: pd.Series
    base_metrics: Optional[RiskMetrics]
    strategy_metrics: Optional[RiskMetrics]
    signal_stats: Dict[str, int] = field(default_factory=dict)
    metrics_error: Optional[str] = None


@dataclass
class PortfolioResult:
    """포트폴리오 (기본 또는 전략 적용) 결과"""
    name: str
    returns: pd.Series
    value: pd.Series
    metrics: RiskMetrics


@dataclass
class BacktestResult:
    """백테스트 전체 결과"""
    instruments: Dict[str, InstrumentResult]
    failures: Dict[str, str]
    benchmark_returns: pd.Series
    weights: Dict[str, float]
    base_portfolio: PortfolioResult
    strategy_portfolio: PortfolioResult

    def summary(self) -> pd.DataFrame:
        """종목별/포트폴리오별 지표 테이블"""
        rows = {}
        for ticker, result in self.instruments.items():
            # 지표 계산에 실패한 종목은 행 없음 (포트폴리오에는 포함)
            if result.base_metrics is not None:
                rows[f"{ticker} (base)"] = result.base_metrics.to_dict()
            if result.strategy_metrics is not None:
                rows[f"{ticker} (strategy)"] = result.strategy_metrics.to_dict()
        rows["Portfolio (base)"] = self.base_portfolio.metrics.to_dict()
        rows["Portfolio (strategy)"] = self.strategy_portfolio.metrics.to_dict()
        return pd.DataFrame.from_dict(rows, orient='index')


def check_price_series(prices: pd.DataFrame, name: str) -> None:
    """PriceSeries 형식 검증: close 컬럼, 중복 없는 오름차순 날짜"""
    if 'close' not in prices.columns:
        raise InvalidParameter("price frame has no 'close' column", name)
    if len(prices) == 0:
        raise EmptySeries("price series is empty", name)
    if not prices.index.is_unique:
        raise MisalignedSeries("price series has duplicate dates", name)
    if not prices.index.is_monotonic_increasing:
        raise MisalignedSeries("price dates are not strictly increasing", name)


class BacktestEngine:
    """RSI + 이동평균 전략 백테스트 엔진

    종목별 파이프라인 (지표 -> 시그널 -> 수익률 -> 종목 지표) 은 서로 독립적이라
    스레드 풀에서 병렬로 실행하고, 포트폴리오 집계와 위험 분석은 모든 종목이
    끝난 뒤 한 번에 수행합니다.

    ASSUMPTION: 시그널은 같은 날짜의 수익률에 적용됩니다 (signal[t] * r[t]).
    당일 종가까지의 정보로 만든 시그널을 당일 수익률에 쓰므로 look-ahead 가
    있다는 점에 유의하세요.
    """

    def __init__(
        self,
        rsi_period: int = Config.RSI_PERIOD,
        short_period: int = Config.SHORT_MA_PERIOD,
        long_period: int = Config.LONG_MA_PERIOD,
        overbought: float = Config.RSI_OVERBOUGHT,
        oversold: float = Config.RSI_OVERSOLD,
        risk_free_rate: float = Config.RISK_FREE_RATE,
        max_workers: int = Config.MAX_WORKERS
    ):
        """
        초기화

        Args:
            rsi_period: RSI 기간
            short_period: 단기 이동평균 기간
            long_period: 장기 이동평균 기간
            overbought: RSI 과매수 임계값
            oversold: RSI 과매도 임계값
            risk_free_rate: 무위험 이자율 (연 기준, decimal)
            max_workers: 종목별 파이프라인 병렬 워커 수
        """
        if max_workers < 1:
            raise InvalidParameter(f"must be at least 1, got {max_workers}", "max_workers")

        self.indicator_config = {
            'sma_periods': [short_period, long_period],
            'rsi_period': rsi_period,
        }
        self.signal_generator = SignalGenerator(
            rsi_period=rsi_period,
            short_period=short_period,
            long_period=long_period,
            oversold=oversold,
            overbought=overbought
        )
        self.risk_free_rate = risk_free_rate
        self.max_workers = max_workers

        logger.info(
            f"BacktestEngine initialized: RSI({rsi_period}) {oversold:g}/{overbought:g}, "
            f"SMA {short_period}/{long_period}, rf={risk_free_rate:.2%}"
        )

    def run(
        self,
        prices: Dict[str, pd.DataFrame],
        benchmark: pd.DataFrame,
        weights: Optional[Dict[str, float]] = None,
        start_date=None,
        end_date=None
    ) -> BacktestResult:
        """
        백테스트 실행

        Args:
            prices: {티커: OHLCV 데이터프레임}
            benchmark: 벤치마크 OHLCV 데이터프레임
            weights: {티커: 비중} (기본값: 동일 비중)
            start_date: 시작 날짜 (포함)
            end_date: 종료 날짜 (포함)

        Returns:
            BacktestResult
        """
        if not prices:
            raise EmptySeries("no instruments to backtest", "prices")
        if weights is not None:
            self._check_weights(weights, list(prices))

        benchmark = self._slice(benchmark, start_date, end_date, "benchmark")
        benchmark_returns = daily_return(benchmark).rename("benchmark")

        logger.info(f"Running backtest on {len(prices)} instruments")

        # 종목별 파이프라인 병렬 실행 (fan-out)
        instruments: Dict[str, InstrumentResult] = {}
        failures: Dict[str, str] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                pool.submit(
                    self._run_instrument, ticker, df, benchmark_returns, start_date, end_date
                ): ticker
                for ticker, df in prices.items()
            }
            completed = {}
            for future in as_completed(futures):
                ticker = futures[future]
                try:
                    completed[ticker] = future.result()
                except BacktestError as e:
                    logger.error(f"{ticker}: pipeline failed: {e}")
                    failures[ticker] = str(e)

        # 입력 순서 유지
        for ticker in prices:
            if ticker in completed:
                instruments[ticker] = completed[ticker]
                # 지표만 실패한 종목은 수익률이 유효하므로 포트폴리오에 남김
                if completed[ticker].metrics_error is not None:
                    failures[ticker] = completed[ticker].metrics_error

        if not instruments:
            raise EmptySeries(f"every instrument failed: {failures}", "prices")

        # 포트폴리오 집계 (fan-in)
        tickers = list(instruments)
        weight_map = self._resolve_weights(weights, tickers)
        weight_vector = [weight_map[t] for t in tickers]

        base_portfolio = self._build_portfolio(
            "base",
            [instruments[t].daily_returns for t in tickers],
            weight_vector,
            benchmark_returns
        )
        strategy_portfolio = self._build_portfolio(
            "strategy",
            [instruments[t].strategy_returns for t in tickers],
            weight_vector,
            benchmark_returns
        )

        logger.info(
            f"Backtest complete: {len(instruments)} in portfolio, {len(failures)} with failures | "
            f"base Sharpe={base_portfolio.metrics.sharpe_ratio:.2f}, "
            f"strategy Sharpe={strategy_portfolio.metrics.sharpe_ratio:.2f}"
        )

        return BacktestResult(
            instruments=instruments,
            failures=failures,
            benchmark_returns=benchmark_returns,
            weights=weight_map,
            base_portfolio=base_portfolio,
            strategy_portfolio=strategy_portfolio
        )

    def _run_instrument(
        self,
        ticker: str,
        prices: pd.DataFrame,
        benchmark_returns: pd.Series,
        start_date=None,
        end_date=None
    ) -> InstrumentResult:
        """종목 하나: 지표 -> 시그널 -> 수익률 -> 지표"""
        prices = self._slice(prices, start_date, end_date, ticker)
        features = TechnicalIndicators.calculate_all(prices, self.indicator_config)
        signals = self.signal_generator.generate(features)

        returns = daily_return(prices).rename(ticker)
        adjusted = strategy_return(returns, signals)

        base_metrics, base_error = self._instrument_metrics(ticker, returns, benchmark_returns)
        strategy_metrics, strategy_error = self._instrument_metrics(
            ticker, adjusted, benchmark_returns
        )
        errors = [
            f"{label} metrics: {error}"
            for label, error in [("base", base_error), ("strategy", strategy_error)]
            if error is not None
        ]

        stats = signal_summary(signals)
        logger.debug(f"{ticker}: {stats}")

        return InstrumentResult(
            ticker=ticker,
            features=features,
            signals=signals,
            daily_returns=returns,
            strategy_returns=adjusted,
            base_value=cumulative_value(returns),
            strategy_value=cumulative_value(adjusted),
            base_metrics=base_metrics,
            strategy_metrics=strategy_metrics,
            signal_stats=stats,
            metrics_error="; ".join(errors) if errors else None
        )

    def _instrument_metrics(
        self,
        ticker: str,
        returns: pd.Series,
        benchmark_returns: pd.Series
    ) -> Tuple[Optional[RiskMetrics], Optional[str]]:
        """종목 지표 계산. 실패해도 수익률 시리즈는 포트폴리오 집계에 쓰이도록 오류만 반환"""
        try:
            return PerformanceMetrics.calculate_all(
                returns, benchmark_returns, self.risk_free_rate
            ), None
        except BacktestError as e:
            logger.warning(f"{ticker}: metrics unavailable: {e}")
            return None, str(e)

    def _build_portfolio(
        self,
        name: str,
        returns: List[pd.Series],
        weights: List[float],
        benchmark_returns: pd.Series
    ) -> PortfolioResult:
        combined = combine(returns, weights).rename(name)
        metrics = PerformanceMetrics.calculate_all(
            combined, benchmark_returns, self.risk_free_rate
        )
        return PortfolioResult(
            name=name,
            returns=combined,
            value=cumulative_value(combined),
            metrics=metrics
        )

    @staticmethod
    def _slice(df: pd.DataFrame, start_date, end_date, name: str) -> pd.DataFrame:
        """날짜 범위로 자르기 (원본은 변경하지 않음)"""
        check_price_series(df, name)
        sliced = df.loc[start_date:end_date]
        if sliced.empty:
            raise EmptySeries(f"no prices between {start_date} and {end_date}", name)
        return sliced

    @staticmethod
    def _check_weights(weights: Dict[str, float], tickers: List[str]) -> None:
        missing = [t for t in tickers if t not in weights]
        extra = [t for t in weights if t not in tickers]
        if missing or extra:
            raise InvalidParameter(
                f"weights must cover exactly the tickers (missing={missing}, extra={extra})",
                "weights"
            )
        if any(w < 0 for w in weights.values()):
            raise InvalidParameter("weights must be non-negative", "weights")
        if abs(sum(weights.values()) - 1.0) > WEIGHT_TOLERANCE:
            raise InvalidParameter(
                f"weights must sum to 1.0, got {sum(weights.values())}", "weights"
            )

    @staticmethod
    def _resolve_weights(
        weights: Optional[Dict[str, float]],
        tickers: List[str]
    ) -> Dict[str, float]:
        """살아남은 종목 기준 비중 (실패 종목이 있으면 재정규화)"""
        if weights is None:
            return dict(zip(tickers, equal_weights(len(tickers))))

        surviving = {t: weights[t] for t in tickers}
        total = sum(surviving.values())
        if total <= 0:
            raise InvalidParameter("surviving instruments have zero total weight", "weights")
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            logger.warning(
                f"Renormalizing weights over {len(tickers)} surviving instruments "
                f"(total was {total:.4f})"
            )
        return {t: w / total for t, w in surviving.items()}
