"""
유틸리티 패키지

공통으로 사용되는 유틸리티 함수들을 포함합니다.
"""

from .logging import setup_logging
from .helpers import canonical_path, directory_prefix, file_mtime, format_duration

__all__ = [
    "setup_logging",
    "canonical_path",
    "directory_prefix",
    "file_mtime",
    "format_duration",
]
