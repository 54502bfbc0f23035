#!/usr/bin/env python3
"""
오버레이 캐시 사용 예제

예제 저장소를 로컬 저장소로 등록하고 캐시, 검색, 미러링, 삭제 과정을 보여줍니다.
"""

import asyncio
import tempfile
from pathlib import Path

from overlay_cache.config import OverlayConfig, RepositoryDescriptor, Settings
from overlay_cache.context import build_context
from overlay_cache.models import RepositoryAdapter
from overlay_cache.utils.logging import setup_logging

SAMPLE_REPO = Path(__file__).parent / "sample_repo"


async def main() -> None:
    state_dir = Path(tempfile.mkdtemp())

    # 오버레이 설정에 예제 저장소 등록
    config = OverlayConfig.load(state_dir / "overlay.json")
    config.add_repository(
        "sample",
        RepositoryDescriptor(adapter=RepositoryAdapter.LOCAL, path=str(SAMPLE_REPO)),
    )
    config.save()

    settings = Settings(
        registry_db_path=str(state_dir / "registry.db"),
        overlay_config_path=str(state_dir / "overlay.json"),
        overlay_root=str(state_dir / "repos"),
    )
    setup_logging(settings)
    context = build_context(settings)

    print("=== 1. 저장소 갱신 및 미러링 ===")
    for result in await context.overlay.update():
        print(f"{result.repository}: 캐시 {result.report.cached}, 실패 {len(result.report.failures)}")

    print("\n=== 2. 레코드 목록 ===")
    for record in context.registry.all():
        print(f"{record.category:<10} {record.metadata['name']:<20} {record.object_path}")

    print("\n=== 3. 메타데이터 검색 ===")
    for obj in await context.engine.search("exploit", author="postmodern"):
        print(f"{obj.name} v{obj.version}: {obj.description} (대상: {obj.targets})")

    print("\n=== 4. 카테고리 컨텍스트 ===")
    repository = context.overlay.get("sample")
    exploits = repository.load_category("exploits")
    print(f"기본 타임아웃: {exploits.context.DEFAULT_TIMEOUT}")

    print("\n=== 5. 저장소 제거 ===")
    expunged = await context.overlay.remove("sample")
    print(f"삭제된 레코드: {expunged}, 남은 레코드: {context.registry.count()}")


if __name__ == "__main__":
    asyncio.run(main())
