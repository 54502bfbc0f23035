"""
설정 관리 패키지

시스템 설정과 오버레이 저장소 설정을 관리합니다.
"""

from .overlay import OverlayConfig, RepositoryDescriptor
from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "OverlayConfig", "RepositoryDescriptor"]
