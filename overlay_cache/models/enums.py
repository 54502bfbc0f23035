"""
열거형 정의 모듈

오버레이 캐시 시스템에서 사용되는 상수 값들을 열거형으로 정의합니다.
"""

from enum import Enum


class RepositoryAdapter(Enum):
    """저장소 어댑터 타입 열거형"""
    GIT = "git"
    LOCAL = "local"


class MirrorResult(Enum):
    """레코드 미러링 결과 열거형"""
    DELETED = "deleted"
    REFRESHED = "refreshed"
    UNCHANGED = "unchanged"
    CACHED = "cached"


class RecordState(Enum):
    """파일시스템 조사로 얻는 레코드 상태 열거형"""
    UNCACHED = "uncached"
    CACHED = "cached"
    STALE = "stale"
    MISSING = "missing"
