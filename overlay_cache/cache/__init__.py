"""
캐시 엔진 패키지

레지스트리와 파일시스템 사이의 캐시·미러·삭제 동기화를 제공합니다.
"""

from .engine import CacheEngine

__all__ = ["CacheEngine"]
