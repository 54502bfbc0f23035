"""
모니터링 시스템

레지스트리 동기화 작업의 Prometheus 메트릭을 제공합니다.
"""

from .metrics import (
    BATCH_FAILURES,
    OBJECTS_CACHED,
    OBJECTS_EXPUNGED,
    OBJECTS_MIRRORED,
    REFRESH_DURATION,
    REGISTRY,
    get_metric_value,
    track_operation,
)

__all__ = [
    "REGISTRY",
    "OBJECTS_CACHED",
    "OBJECTS_MIRRORED",
    "OBJECTS_EXPUNGED",
    "BATCH_FAILURES",
    "REFRESH_DURATION",
    "track_operation",
    "get_metric_value",
]
