# scripts/logger_config.py

import logging
import os
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _resolve_level(log_level: Optional[str]) -> int:
    """레벨 이름 -> logging 상수. 알 수 없는 이름은 ValueError"""
    name = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {log_level!r}")
    return level


def log_file_path(name: str, log_dir: Optional[str] = None) -> str:
    """<LOG_DIR>/<name>_<YYYYMMDD>.log (일 단위 파일)"""
    log_dir = log_dir or os.getenv("LOG_DIR", "logs")
    return os.path.join(log_dir, f"{name}_{datetime.now().strftime('%Y%m%d')}.log")


def setup_logger(
    name: str,
    log_level: Optional[str] = None,
    log_dir: Optional[str] = None
) -> logging.Logger:
    """
    콘솔 + 일별 파일 핸들러를 가진 로거를 설정합니다.

    엔진 모듈들이 import 시점에 같은 이름으로 여러 번 호출할 수 있으므로,
    같은 파일과 레벨로 이미 구성된 로거는 핸들러를 다시 만들지 않고 그대로
    반환합니다.

    Args:
        name: 로거 이름 (로그 파일 이름 접두어)
        log_level: 콘솔 로그 레벨. 지정하지 않으면 LOG_LEVEL 환경 변수
        log_dir: 로그 디렉토리. 지정하지 않으면 LOG_DIR 환경 변수

    Returns:
        구성된 로거 인스턴스
    """
    level = _resolve_level(log_level)
    file_path = log_file_path(name, log_dir)

    logger = logging.getLogger(name)

    # 같은 파일/레벨로 이미 구성됨 -> 재사용
    file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
    if (
        len(file_handlers) == 1
        and file_handlers[0].baseFilename == os.path.abspath(file_path)
        and logger.level == level
    ):
        return logger

    # 기존 핸들러는 파일을 닫고 제거
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    os.makedirs(os.path.dirname(file_path) or ".", exist_ok=True)
    logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    # 파일에는 DEBUG 까지 전부 남김
    file_handler = logging.FileHandler(file_path, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger
