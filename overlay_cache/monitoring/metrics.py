"""
Prometheus 메트릭 모듈

레지스트리 동기화 작업과 저장소 갱신 메트릭을 수집합니다.
"""

import platform
import sys
import time
from functools import wraps
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, Info

from ..utils.logging import get_logger

# 메트릭 레지스트리
REGISTRY = CollectorRegistry()

# 로거
logger = get_logger(__name__)

# 레코드 관련 메트릭
OBJECTS_CACHED = Counter(
    'overlay_objects_cached_total',
    '캐시된 객체 레코드 수',
    ['category'],
    registry=REGISTRY
)

OBJECTS_MIRRORED = Counter(
    'overlay_objects_mirrored_total',
    '미러링된 객체 레코드 수',
    ['result'],
    registry=REGISTRY
)

OBJECTS_EXPUNGED = Counter(
    'overlay_objects_expunged_total',
    '일괄 삭제된 객체 레코드 수',
    registry=REGISTRY
)

# 대량 작업 관련 메트릭
OPERATION_DURATION = Histogram(
    'overlay_operation_duration_seconds',
    '레지스트리 작업 처리 시간 (초)',
    ['operation'],
    registry=REGISTRY
)

BATCH_FAILURES = Counter(
    'overlay_batch_failures_total',
    '대량 작업 중 실패한 파일 수',
    ['operation'],
    registry=REGISTRY
)

# 저장소 갱신 관련 메트릭
REFRESH_DURATION = Histogram(
    'overlay_repository_refresh_duration_seconds',
    '저장소 갱신 시간 (초)',
    ['repository', 'status'],
    registry=REGISTRY
)

# 오류 관련 메트릭
ERROR_COUNT = Counter(
    'overlay_errors_total',
    '오류 총 수',
    ['error_type', 'component'],
    registry=REGISTRY
)

# 시스템 정보
SYSTEM_INFO = Info(
    'overlay_cache_info',
    '오버레이 캐시 시스템 정보',
    registry=REGISTRY
)

SYSTEM_INFO.info({
    'version': '0.1.0',
    'python_version': f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    'platform': platform.system()
})


def track_operation(operation: str):
    """
    작업 시간 및 오류 추적 데코레이터

    Args:
        operation: 작업 이름 (cache_objects_in, mirror_objects_in 등)
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()

            try:
                return await func(*args, **kwargs)

            except Exception as e:
                error_type = type(e).__name__
                ERROR_COUNT.labels(
                    error_type=error_type,
                    component=operation
                ).inc()
                logger.warning(f"작업 실패 메트릭 기록: {operation} - {error_type}")
                raise

            finally:
                duration = time.time() - start_time
                OPERATION_DURATION.labels(operation=operation).observe(duration)

        return wrapper
    return decorator


def record_cached(category: str) -> None:
    OBJECTS_CACHED.labels(category=category).inc()


def record_mirrored(result: str) -> None:
    OBJECTS_MIRRORED.labels(result=result).inc()


def record_expunged(count: int) -> None:
    OBJECTS_EXPUNGED.inc(count)


def record_batch_failure(operation: str) -> None:
    """
    대량 작업 실패 기록

    Args:
        operation: 작업 이름
    """
    BATCH_FAILURES.labels(operation=operation).inc()
    logger.debug(f"대량 작업 실패 기록: {operation}")


def record_refresh(repository: str, status: str, duration: float) -> None:
    """
    저장소 갱신 기록

    Args:
        repository: 저장소 이름
        status: 결과 (success, failed, timeout)
        duration: 소요 시간 (초)
    """
    REFRESH_DURATION.labels(repository=repository, status=status).observe(duration)
    logger.debug(f"저장소 갱신 기록: {repository} - {status} ({duration:.2f}초)")


def get_metric_value(name: str, labels: Optional[dict[str, str]] = None) -> float:
    """
    메트릭 샘플 값 조회

    Args:
        name: 샘플 이름 (예: overlay_objects_cached_total)
        labels: 레이블

    Returns:
        샘플 값 (없으면 0.0)
    """
    value = REGISTRY.get_sample_value(name, labels or {})
    return value if value is not None else 0.0
