"""
스크립트 관리 모듈

객체 스크립트 파일의 탐색과 로드 기능을 제공합니다.
"""

from .loader import ScriptLoader
from .scanner import CancelToken, DirectoryScanner

__all__ = [
    "ScriptLoader",
    "DirectoryScanner",
    "CancelToken",
]
