"""
실행 컨텍스트 모듈

설정으로부터 카테고리 테이블, 레지스트리, 로더, 캐시 엔진, 오버레이를
구성합니다. 전역 상태 없이 컨텍스트를 명시적으로 전달합니다.
"""

from dataclasses import dataclass
from typing import Optional

from .cache.engine import CacheEngine
from .config.overlay import OverlayConfig
from .config.settings import Settings, get_settings
from .registry.categories import CategoryTable
from .registry.store import ObjectRegistry
from .repository.overlay import Overlay
from .scripts.loader import ScriptLoader
from .scripts.scanner import DirectoryScanner


@dataclass
class OverlayContext:
    """구성된 컴포넌트 묶음"""

    settings: Settings
    categories: CategoryTable
    registry: ObjectRegistry
    loader: ScriptLoader
    engine: CacheEngine
    config: OverlayConfig
    overlay: Overlay


def build_context(settings: Optional[Settings] = None) -> OverlayContext:
    """
    실행 컨텍스트 생성

    Args:
        settings: 시스템 설정 (None이면 환경 변수에서 로드)

    Returns:
        구성된 실행 컨텍스트
    """
    if settings is None:
        settings = get_settings()
    else:
        settings.validate_configuration()

    categories = CategoryTable.from_names(settings.categories)
    registry = ObjectRegistry(settings.registry_path, categories)
    loader = ScriptLoader(categories, settings.script_extension)
    engine = CacheEngine(settings, registry, loader, DirectoryScanner(settings.script_extension))

    config = OverlayConfig.load(settings.overlay_config_file)
    overlay = Overlay.from_config(config, engine, loader, settings)

    return OverlayContext(
        settings=settings,
        categories=categories,
        registry=registry,
        loader=loader,
        engine=engine,
        config=config,
        overlay=overlay,
    )
