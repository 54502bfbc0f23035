"""
데이터 모델 패키지

오버레이 캐시 시스템의 핵심 데이터 모델들을 정의합니다.
"""

from .base import BatchFailure, BatchReport, CategoryDefinition, ScriptObject
from .enums import MirrorResult, RecordState, RepositoryAdapter
from .record import ObjectRecord

__all__ = [
    "ScriptObject",
    "CategoryDefinition",
    "BatchFailure",
    "BatchReport",
    "ObjectRecord",
    "MirrorResult",
    "RecordState",
    "RepositoryAdapter",
]
