"""
공용 테스트 픽스처
"""

import textwrap
from pathlib import Path

import pytest

from overlay_cache.cache.engine import CacheEngine
from overlay_cache.config.settings import Settings
from overlay_cache.registry.categories import CategoryTable
from overlay_cache.registry.store import ObjectRegistry
from overlay_cache.scripts.loader import ScriptLoader


@pytest.fixture
def settings(tmp_path):
    """임시 디렉토리를 사용하는 설정"""
    return Settings(
        registry_db_path=str(tmp_path / "state" / "registry.db"),
        overlay_config_path=str(tmp_path / "state" / "overlay.json"),
        overlay_root=str(tmp_path / "repos"),
        categories=["advisory", "exploit", "payload"],
        max_concurrent_files=4,
        refresh_timeout=5,
    )


@pytest.fixture
def categories(settings):
    return CategoryTable.from_names(settings.categories)


@pytest.fixture
def registry(settings, categories):
    return ObjectRegistry(settings.registry_path, categories)


@pytest.fixture
def loader(categories):
    return ScriptLoader(categories)


@pytest.fixture
def engine(settings, registry, loader):
    return CacheEngine(settings, registry, loader)


@pytest.fixture
def make_script():
    """객체를 선언하는 스크립트 파일 작성 함수"""

    def _make_script(
        path: Path,
        category: str = "exploit",
        name: str = "test-object",
        version: str = "1.0",
        author: str = "tester",
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(f"""\
            from overlay_cache.models import ScriptObject

            obj = ScriptObject(
                category={category!r},
                name={name!r},
                version={version!r},
                author={author!r},
            )
        """), encoding="utf-8")
        return path

    return _make_script
