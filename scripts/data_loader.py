# scripts/data_loader.py
"""
가격 데이터 캐시 로더

엔진은 이미 내려받아 캐시된 일봉 데이터를 사용합니다.
- download_ticker_data / download_price_data: yfinance 로 캐시 채우기
- load_price_csv / load_universe: 캐시된 CSV 를 PriceSeries 로 읽기
"""

import os
import time
from typing import Dict, List, Optional, Tuple

import pandas as pd
import yfinance as yf

from backtest.errors import BacktestError, EmptySeries, InvalidParameter, MisalignedSeries
from scripts.config import Config
from scripts.logger_config import setup_logger

# 로거 설정
logger = setup_logger("data_loader")

PRICE_COLUMNS = ['open', 'high', 'low', 'close', 'adj_close', 'volume']


def normalize_columns(data: pd.DataFrame) -> pd.DataFrame:
    """
    컬럼명을 소문자로 표준화하고 OHLCV 순서로 정렬합니다.

    Args:
        data: 원본 가격 DataFrame

    Returns:
        표준화된 DataFrame (새 객체)
    """
    # 멀티인덱스 컬럼을 단일 레벨로 변환 (yfinance가 때때로 멀티인덱스를 반환함)
    if isinstance(data.columns, pd.MultiIndex):
        data = data.copy()
        data.columns = data.columns.droplevel(1)

    renamed = data.rename(columns=lambda col: str(col).strip().lower().replace(' ', '_'))
    existing_columns = [col for col in PRICE_COLUMNS if col in renamed.columns]
    return renamed[existing_columns]


def validate_price_data(data: pd.DataFrame, ticker: str) -> Dict[str, bool]:
    """
    가격 데이터의 기본적인 논리적 검증을 수행합니다.

    Args:
        data: 가격 데이터 DataFrame
        ticker: 티커 심볼

    Returns:
        검증 결과 딕셔너리
    """
    validation_results = {}

    # 1. 날짜 오름차순 / 중복 없음
    validation_results['sorted_dates'] = bool(data.index.is_monotonic_increasing)
    validation_results['unique_dates'] = bool(data.index.is_unique)

    # 2. 양수 종가 검증
    validation_results['positive_close'] = bool((data['close'] > 0).all())

    # 3. High >= Low 검증 (컬럼이 있을 때만)
    if 'high' in data.columns and 'low' in data.columns:
        validation_results['high_gte_low'] = bool((data['high'] >= data['low']).all())

    # 4. 극단적 가격 변동 검증
    daily_returns = (data['close'] / data['close'].shift(1) - 1).abs()
    extreme_moves = int((daily_returns > Config.VALIDATION_THRESHOLDS['max_daily_return']).sum())
    validation_results['reasonable_moves'] = (
        extreme_moves <= len(data) * Config.VALIDATION_THRESHOLDS['extreme_move_threshold']
    )

    logger.debug(f"Validation completed for {ticker}: {validation_results}")
    return validation_results


def load_price_csv(
    ticker: str,
    data_dir: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None
) -> pd.DataFrame:
    """
    캐시된 CSV 파일을 PriceSeries 로 읽습니다.

    Args:
        ticker: 티커 심볼 (<data_dir>/<ticker>.csv)
        data_dir: 데이터 디렉토리 (기본값: Config.DATA_DIR)
        start_date: 시작 날짜 (포함)
        end_date: 종료 날짜 (포함)

    Returns:
        날짜 인덱스, 소문자 OHLCV 컬럼 DataFrame
    """
    data_dir = data_dir or Config.DATA_DIR
    file_path = os.path.join(data_dir, f"{ticker}.csv")

    data = pd.read_csv(file_path, index_col=0, parse_dates=True)
    data = normalize_columns(data)
    data.index.name = 'date'

    if 'close' not in data.columns:
        raise InvalidParameter(f"{file_path} has no close column", ticker)

    if not data.index.is_unique:
        raise MisalignedSeries(f"{file_path} contains duplicate dates", ticker)
    data = data.sort_index()
    data = data.loc[start_date:end_date]

    if data.empty:
        raise EmptySeries(f"no rows between {start_date} and {end_date}", ticker)

    validation_results = validate_price_data(data, ticker)
    failed_validations = [k for k, v in validation_results.items() if not v]
    if failed_validations:
        logger.warning(f"Validation warnings for {ticker}: {failed_validations}")

    logger.info(f"Loaded {len(data)} rows for {ticker} from {file_path}")
    return data


def load_universe(
    tickers: List[str],
    benchmark: str,
    data_dir: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None
) -> Tuple[Dict[str, pd.DataFrame], pd.DataFrame, Dict[str, str]]:
    """
    종목 바스켓과 벤치마크를 한 번에 읽습니다.

    캐시가 없거나 읽을 수 없는 종목은 건너뛰고 skipped 에 기록합니다.
    벤치마크를 읽지 못하면 예외가 그대로 전파됩니다.

    Returns:
        ({티커: PriceSeries}, 벤치마크 PriceSeries, {건너뛴 티커: 사유})
    """
    benchmark_prices = load_price_csv(benchmark, data_dir, start_date, end_date)

    prices = {}
    skipped = {}
    for ticker in tickers:
        try:
            prices[ticker] = load_price_csv(ticker, data_dir, start_date, end_date)
        except (BacktestError, FileNotFoundError) as e:
            logger.warning(f"Skipping {ticker}: {e}")
            skipped[ticker] = str(e)

    if not prices:
        raise EmptySeries(f"no ticker could be loaded: {skipped}", "prices")

    return prices, benchmark_prices, skipped


def download_ticker_data(ticker: str, start_date: str, end_date: str,
                         max_retries: int = 3) -> Optional[pd.DataFrame]:
    """
    개별 티커의 데이터를 다운로드합니다.

    Args:
        ticker: 티커 심볼
        start_date: 시작 날짜
        end_date: 종료 날짜
        max_retries: 최대 재시도 횟수

    Returns:
        다운로드된 데이터 또는 None
    """
    for attempt in range(max_retries):
        try:
            logger.info(f"Downloading data for {ticker} (attempt {attempt + 1}/{max_retries})")

            # auto_adjust=False로 설정하여 원본 가격과 Adj Close를 모두 가져옴
            data = yf.download(ticker, start=start_date, end=end_date, progress=False, auto_adjust=False)

            if data is None or data.empty:
                logger.warning(f"No data found for {ticker}")
                return None

            data = normalize_columns(data)
            logger.info(f"Successfully downloaded {len(data)} rows for {ticker}")
            return data

        except Exception as e:
            logger.error(f"Failed to download data for {ticker} (attempt {attempt + 1}): {e}")
            if attempt < max_retries - 1:
                wait_time = 2 ** attempt  # 지수 백오프
                logger.info(f"Retrying in {wait_time} seconds...")
                time.sleep(wait_time)
            else:
                logger.error(f"Max retries exceeded for {ticker}")

    return None


def download_price_data(
    tickers: List[str],
    start_date: str,
    end_date: str,
    data_dir: Optional[str] = None
) -> List[str]:
    """
    지정된 티커들의 일봉 데이터를 다운로드하여 CSV 캐시로 저장합니다.

    Args:
        tickers: 다운로드할 티커 리스트
        start_date: 시작 날짜
        end_date: 종료 날짜
        data_dir: 저장 디렉토리 (기본값: Config.DATA_DIR)

    Returns:
        실패한 티커 리스트
    """
    data_dir = data_dir or Config.DATA_DIR
    os.makedirs(data_dir, exist_ok=True)

    # 중복 제거 (순서 유지)
    tickers = list(dict.fromkeys(tickers))
    failed_tickers = []

    for i, ticker in enumerate(tickers, 1):
        logger.info(f"Processing {ticker} ({i}/{len(tickers)})")
        data = download_ticker_data(ticker, start_date, end_date)

        if data is None:
            failed_tickers.append(ticker)
            continue

        file_path = os.path.join(data_dir, f"{ticker}.csv")
        data.to_csv(file_path)
        logger.info(f"Saved data for {ticker} to {file_path}")

    logger.info(f"Download completed: {len(tickers) - len(failed_tickers)}/{len(tickers)} successful")
    if failed_tickers:
        logger.warning(f"Failed tickers: {failed_tickers}")

    return failed_tickers
