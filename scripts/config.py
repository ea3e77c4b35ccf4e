# scripts/config.py

import os
from dotenv import load_dotenv
from typing import Dict, Any

load_dotenv()

class Config:
    """프로젝트 전체 설정 관리 클래스"""

    # 디렉토리 경로
    DATA_DIR = os.getenv("DATA_DIR", "./data")
    REPORTS_DIR = os.getenv("REPORTS_DIR", "./reports")

    # 지표 기간 설정
    RSI_PERIOD = int(os.getenv("RSI_PERIOD", "14"))
    SHORT_MA_PERIOD = int(os.getenv("SHORT_MA_PERIOD", "50"))
    LONG_MA_PERIOD = int(os.getenv("LONG_MA_PERIOD", "200"))

    # RSI 과매수/과매도 임계값
    RSI_OVERBOUGHT = float(os.getenv("RSI_OVERBOUGHT", "70"))
    RSI_OVERSOLD = float(os.getenv("RSI_OVERSOLD", "30"))

    # 무위험 이자율 (연 기준, 0.03 = 3%)
    RISK_FREE_RATE = float(os.getenv("RISK_FREE_RATE", "0.03"))
    TRADING_DAYS_PER_YEAR = 252

    # 종목별 파이프라인 병렬 실행 워커 수
    MAX_WORKERS = int(os.getenv("MAX_WORKERS", "4"))

    # 벤치마크 및 기본 티커 바스켓
    BENCHMARK_TICKER = os.getenv("BENCHMARK_TICKER", "SPY")
    DEFAULT_TICKERS = ["AAPL", "MSFT", "GOOGL", "AMZN", "NVDA"]

    # 데이터 검증 임계값
    VALIDATION_THRESHOLDS = {
        "max_daily_return": 0.5,  # 50% 일일 최대 변동률
        "extreme_move_threshold": 0.01,  # 극단적 움직임 허용 비율
    }

    # 로깅 설정
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR = os.getenv("LOG_DIR", "logs")

    @classmethod
    def ensure_directories(cls) -> None:
        """필요한 디렉토리들을 생성합니다."""
        directories = [
            cls.DATA_DIR,
            cls.REPORTS_DIR,
            cls.LOG_DIR
        ]

        for directory in directories:
            os.makedirs(directory, exist_ok=True)

    @classmethod
    def indicator_config(cls) -> Dict[str, Any]:
        """TechnicalIndicators.calculate_all 에 전달할 지표 설정을 반환합니다."""
        return {
            "sma_periods": [cls.SHORT_MA_PERIOD, cls.LONG_MA_PERIOD],
            "rsi_period": cls.RSI_PERIOD,
        }

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """설정 요약을 반환합니다."""
        return {
            "directories": {
                "data": cls.DATA_DIR,
                "reports": cls.REPORTS_DIR,
                "logs": cls.LOG_DIR
            },
            "indicators": {
                "rsi_period": cls.RSI_PERIOD,
                "short_ma_period": cls.SHORT_MA_PERIOD,
                "long_ma_period": cls.LONG_MA_PERIOD,
                "rsi_overbought": cls.RSI_OVERBOUGHT,
                "rsi_oversold": cls.RSI_OVERSOLD
            },
            "risk": {
                "risk_free_rate": cls.RISK_FREE_RATE,
                "trading_days_per_year": cls.TRADING_DAYS_PER_YEAR
            },
            "universe": {
                "benchmark": cls.BENCHMARK_TICKER,
                "tickers": cls.DEFAULT_TICKERS
            },
            "data_validation": cls.VALIDATION_THRESHOLDS,
            "max_workers": cls.MAX_WORKERS
        }
