"""
로깅 시스템 모듈

패키지 로거(overlay_cache.*)에 한국어 레벨명 포맷터와 핸들러를 설정합니다.
명령 출력은 stdout을 사용하므로 로그는 기본적으로 stderr로 보냅니다.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional, TextIO

if TYPE_CHECKING:
    from ..config.settings import Settings

LOGGER_NAME = "overlay_cache"

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 로그 파일 회전 기준 (10MB, 백업 5개)
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 5


class KoreanFormatter(logging.Formatter):
    """레벨명을 한국어로 표시하는 포맷터"""

    LEVEL_MAPPING = {
        'DEBUG': '디버그',
        'INFO': '정보',
        'WARNING': '경고',
        'ERROR': '오류',
        'CRITICAL': '치명적'
    }

    def format(self, record: logging.LogRecord) -> str:
        # 같은 레코드를 다른 핸들러가 다시 포맷하므로 레벨명은 복원
        original_levelname = record.levelname
        record.levelname = self.LEVEL_MAPPING.get(original_levelname, original_levelname)
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


def setup_logging(settings: "Settings", stream: Optional[TextIO] = None) -> logging.Logger:
    """
    패키지 로거 설정

    다시 호출하면 기존 핸들러를 교체합니다.

    Args:
        settings: 로그 레벨, 포맷, 파일 경로를 담은 설정
        stream: 콘솔 로그 스트림 (기본값: sys.stderr)

    Returns:
        logging.Logger: 패키지 루트 로거
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, settings.log_level.upper()))

    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    formatter = KoreanFormatter(fmt=settings.log_format, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.log_file:
        log_file_path = Path(settings.log_file).expanduser()
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file_path,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # 루트 로거로 중복 출력하지 않음
    logger.propagate = False

    logger.debug(f"로깅 설정 완료: 레벨 {settings.log_level}, 파일 {settings.log_file or '없음'}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    패키지 로거 하위의 로거 반환

    'cache.engine'과 'overlay_cache.cache.engine'은 같은 로거입니다.
    """
    if name == LOGGER_NAME or name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
