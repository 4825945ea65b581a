# app/core/logger.py
from loguru import logger
import logging
import sys
import os

from app.config import settings

# 로그 디렉토리 (테스트에서는 LOG_DIR로 변경)
LOG_DIR = os.getenv("LOG_DIR", "logs")
os.makedirs(LOG_DIR, exist_ok=True)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


class InterceptHandler(logging.Handler):
    """표준 logging 레코드(uvicorn, sqlalchemy, botocore)를 loguru로 전달"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


# 기본 로거 제거
logger.remove()

# 콘솔 출력 (debug면 DEBUG까지)
logger.add(
    sys.stdout,
    colorize=True,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    level="DEBUG" if settings.debug else "INFO"
)

# 파일 출력 (모든 로그, 10MB마다 새 파일, 30일 보관)
logger.add(
    f"{LOG_DIR}/scrapbook.log",
    rotation="10 MB",
    retention="30 days",
    compression="zip",
    format=FILE_FORMAT,
    level="DEBUG"
)

# 에러 전용 파일
logger.add(
    f"{LOG_DIR}/error.log",
    rotation="10 MB",
    retention="30 days",
    compression="zip",
    format=FILE_FORMAT,
    level="ERROR"
)

logging.basicConfig(handlers=[InterceptHandler()], level=logging.INFO, force=True)
