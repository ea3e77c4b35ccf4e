# scripts/run_backtest.py
"""
RSI + 이동평균 전략 백테스트 실행 스크립트

캐시된 CSV (DATA_DIR/<TICKER>.csv) 를 읽어 엔진을 실행하고
지표 요약을 로그로 출력합니다. --output 을 주면 JSON 결과를 저장합니다.

예시:
    python -m scripts.run_backtest AAPL MSFT GOOGL --benchmark SPY \
        --start 2020-01-01 --end 2023-12-31 --output reports/result.json
"""

import argparse
import json
import os
import sys
from typing import List, Optional

import pandas as pd

from adapters.adapter import build_result_payload
from backtest.engine import BacktestEngine
from backtest.errors import BacktestError
from scripts.config import Config
from scripts.data_loader import download_price_data, load_universe
from scripts.logger_config import setup_logger

logger = setup_logger("run_backtest", Config.LOG_LEVEL)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="RSI / moving-average strategy backtest")
    parser.add_argument("tickers", nargs="*", default=Config.DEFAULT_TICKERS,
                        help="Tickers in the basket (default: Config.DEFAULT_TICKERS)")
    parser.add_argument("--benchmark", default=Config.BENCHMARK_TICKER)
    parser.add_argument("--start", dest="start_date", default=None)
    parser.add_argument("--end", dest="end_date", default=None)
    parser.add_argument("--data-dir", default=Config.DATA_DIR)
    parser.add_argument("--risk-free-rate", type=float, default=Config.RISK_FREE_RATE)
    parser.add_argument("--rsi-period", type=int, default=Config.RSI_PERIOD)
    parser.add_argument("--short-period", type=int, default=Config.SHORT_MA_PERIOD)
    parser.add_argument("--long-period", type=int, default=Config.LONG_MA_PERIOD)
    parser.add_argument("--overbought", type=float, default=Config.RSI_OVERBOUGHT)
    parser.add_argument("--oversold", type=float, default=Config.RSI_OVERSOLD)
    parser.add_argument("--workers", type=int, default=Config.MAX_WORKERS)
    parser.add_argument("--download", action="store_true",
                        help="Fill the CSV cache with yfinance before running")
    parser.add_argument("--output", default=None, help="Write the JSON payload here")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.download:
        if not args.start_date or not args.end_date:
            logger.error("--download needs --start and --end")
            return 2
        failed = download_price_data(
            list(args.tickers) + [args.benchmark], args.start_date, args.end_date, args.data_dir
        )
        if failed:
            logger.error(f"Could not download: {failed}")
            return 1

    try:
        prices, benchmark, skipped = load_universe(
            list(args.tickers), args.benchmark, args.data_dir, args.start_date, args.end_date
        )
        engine = BacktestEngine(
            rsi_period=args.rsi_period,
            short_period=args.short_period,
            long_period=args.long_period,
            overbought=args.overbought,
            oversold=args.oversold,
            risk_free_rate=args.risk_free_rate,
            max_workers=args.workers
        )
        result = engine.run(prices, benchmark)
    except (BacktestError, FileNotFoundError) as e:
        logger.error(f"Backtest failed: {e}")
        return 1

    with pd.option_context("display.float_format", "{:.4f}".format, "display.width", 160):
        logger.info(f"\n{result.summary()}")

    # 캐시 단계에서 빠진 종목도 엔진 실패와 함께 보고
    failures = dict(skipped, **result.failures)
    for ticker, message in failures.items():
        logger.warning(f"Skipped {ticker}: {message}")

    if args.output:
        output_dir = os.path.dirname(args.output)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            payload = build_result_payload(result)
            payload["failures"] = failures
            json.dump(payload, f, indent=2)
        logger.info(f"Saved result to {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
