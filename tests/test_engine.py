"""
캐시 엔진 테스트 모듈

레코드 캐시 / 스테일 / 누락 / 미러 전이와 디렉토리 단위 작업을 테스트합니다.
"""

import asyncio
import gc
import os
import threading

import pytest

from overlay_cache.exceptions import (
    ObjectSourceNotFoundException,
    ScriptLoadException,
    UnknownCategoryException,
)
from overlay_cache.models import MirrorResult, ObjectRecord, RecordState
from overlay_cache.monitoring.metrics import get_metric_value


def bump_mtime(path, seconds: float = 10.0) -> None:
    """파일 수정 시간을 미래로 이동"""
    stat_result = os.stat(path)
    os.utime(path, (stat_result.st_atime, stat_result.st_mtime + seconds))


class TestProbes:
    """missing / stale / state 조사 테스트"""

    @pytest.mark.asyncio
    async def test_fresh_record_is_cached(self, engine, make_script, tmp_path):
        """캐시 직후 레코드는 스테일도 누락도 아님"""
        path = make_script(tmp_path / "ov" / "a.py")
        record = await engine.cache(path, "exploit")

        assert not engine.missing(record)
        assert not engine.stale(record)
        assert engine.state(record) == RecordState.CACHED

    def test_record_without_timestamp_is_not_stale(self, engine, make_script, tmp_path):
        """타임스탬프 없는 레코드는 스테일이 아님"""
        path = make_script(tmp_path / "a.py")
        record = ObjectRecord(category="exploit", object_path=str(path))

        assert not engine.stale(record)
        assert engine.state(record) == RecordState.UNCACHED

    @pytest.mark.asyncio
    async def test_modified_file_is_stale(self, engine, make_script, tmp_path):
        """캐시 이후 수정된 파일은 스테일"""
        path = make_script(tmp_path / "a.py")
        record = await engine.cache(path, "exploit")

        bump_mtime(path)

        assert engine.stale(record)
        assert engine.state(record) == RecordState.STALE

    @pytest.mark.asyncio
    async def test_deleted_file_is_missing_not_stale(self, engine, make_script, tmp_path):
        """삭제된 파일은 누락이며 스테일이 아님"""
        path = make_script(tmp_path / "a.py")
        record = await engine.cache(path, "exploit")

        path.unlink()

        assert engine.missing(record)
        assert not engine.stale(record)
        assert engine.state(record) == RecordState.MISSING

    def test_directory_counts_as_missing(self, engine, tmp_path):
        """경로가 디렉토리이면 누락"""
        directory = tmp_path / "dir.py"
        directory.mkdir()
        record = ObjectRecord(category="exploit", object_path=str(directory), object_timestamp=1.0)

        assert engine.missing(record)


class TestCache:
    """단일 파일 캐시 테스트"""

    @pytest.mark.asyncio
    async def test_cache_new_object(self, engine, registry, make_script, tmp_path):
        """새 파일 캐시 시 메타데이터와 수정 시간 저장"""
        path = make_script(tmp_path / "ov" / "a.py", name="wu-ftpd", version="0.2", author="alice")

        record = await engine.cache(path, "exploit")

        stored = registry.find("exploit", path)
        assert stored is not None
        assert stored.id == record.id
        assert stored.object_timestamp == os.stat(path).st_mtime
        assert stored.metadata == {"name": "wu-ftpd", "version": "0.2", "author": "alice"}
        assert record.loaded_object is not None
        assert record.loaded_object.object_path == str(path)

    @pytest.mark.asyncio
    async def test_cache_is_idempotent(self, engine, registry, make_script, tmp_path):
        """같은 파일을 반복 캐시해도 레코드는 하나"""
        path = make_script(tmp_path / "a.py")

        first = await engine.cache(path, "exploit")
        bump_mtime(path)
        second = await engine.cache(path, "exploit")

        assert registry.count("exploit") == 1
        assert first.id == second.id
        assert second.object_timestamp == os.stat(path).st_mtime

    @pytest.mark.asyncio
    async def test_concurrent_cache_same_path(self, engine, registry, make_script, tmp_path):
        """동일 경로 동시 캐시는 레코드 하나로 직렬화"""
        path = make_script(tmp_path / "a.py")

        await asyncio.gather(*(engine.cache(path, "exploit") for _ in range(5)))

        assert registry.count() == 1

    @pytest.mark.asyncio
    async def test_cache_unknown_category(self, engine, make_script, tmp_path):
        """선언되지 않은 카테고리 캐시"""
        path = make_script(tmp_path / "a.py")

        with pytest.raises(UnknownCategoryException):
            await engine.cache(path, "rootkit")

    @pytest.mark.asyncio
    async def test_cache_missing_file(self, engine, tmp_path):
        """존재하지 않는 파일 캐시"""
        with pytest.raises(ObjectSourceNotFoundException):
            await engine.cache(tmp_path / "nope.py", "exploit")

    @pytest.mark.asyncio
    async def test_cache_without_declared_object(self, engine, registry, tmp_path):
        """해당 카테고리 객체가 없는 스크립트는 레코드를 만들지 않음"""
        path = tmp_path / "empty.py"
        path.write_text("VALUE = 1\n", encoding="utf-8")

        with pytest.raises(ScriptLoadException):
            await engine.cache(path, "exploit")
        assert registry.count() == 0

    @pytest.mark.asyncio
    async def test_cache_objects_multiple_categories(self, engine, registry, tmp_path):
        """한 파일의 여러 카테고리 객체를 모두 캐시"""
        path = tmp_path / "both.py"
        path.write_text(
            "from overlay_cache.models import ScriptObject\n"
            "exploit = ScriptObject(category='exploit', name='e')\n"
            "payload = ScriptObject(category='payload', name='p')\n",
            encoding="utf-8",
        )

        records = await engine.cache_objects(path)

        assert sorted(r.category for r in records) == ["exploit", "payload"]
        assert len(registry.find_by_path(path)) == 2

    @pytest.mark.asyncio
    async def test_cache_records_metric(self, engine, make_script, tmp_path):
        """캐시 메트릭 증가"""
        path = make_script(tmp_path / "a.py", category="advisory")
        before = get_metric_value("overlay_objects_cached_total", {"category": "advisory"})

        await engine.cache(path, "advisory")

        after = get_metric_value("overlay_objects_cached_total", {"category": "advisory"})
        assert after == before + 1

    @pytest.mark.asyncio
    async def test_load_object_is_lazy(self, engine, registry, make_script, tmp_path):
        """조회된 레코드의 객체는 필요 시 로드"""
        path = make_script(tmp_path / "a.py", name="lazy")
        await engine.cache(path, "exploit")

        record = registry.find("exploit", path)
        assert record.loaded_object is None

        obj = await engine.load_object(record)
        assert obj.name == "lazy"
        assert record.loaded_object is obj

    @pytest.mark.asyncio
    async def test_search(self, engine, make_script, tmp_path):
        """메타데이터 검색 후 객체 로드"""
        await engine.cache(make_script(tmp_path / "a.py", author="alice"), "exploit")
        await engine.cache(make_script(tmp_path / "b.py", author="bob"), "exploit")

        found = await engine.search("exploit", author="bob")

        assert [obj.author for obj in found] == ["bob"]


class TestMirror:
    """단일 레코드 미러 테스트"""

    @pytest.mark.asyncio
    async def test_mirror_unchanged(self, engine, registry, make_script, tmp_path):
        """변경 없는 레코드는 그대로"""
        path = make_script(tmp_path / "a.py")
        record = await engine.cache(path, "exploit")

        assert await engine.mirror(record) == MirrorResult.UNCHANGED
        assert registry.find("exploit", path).object_timestamp == record.object_timestamp

    @pytest.mark.asyncio
    async def test_mirror_refreshes_stale(self, engine, registry, make_script, tmp_path):
        """스테일 레코드는 다시 캐시"""
        path = make_script(tmp_path / "a.py", version="1.0")
        record = await engine.cache(path, "exploit")

        make_script(path, version="2.0")
        bump_mtime(path)

        assert await engine.mirror(record) == MirrorResult.REFRESHED

        stored = registry.find("exploit", path)
        assert stored.metadata["version"] == "2.0"
        assert stored.object_timestamp == os.stat(path).st_mtime
        assert registry.count() == 1

    @pytest.mark.asyncio
    async def test_mirror_deletes_missing(self, engine, registry, make_script, tmp_path):
        """누락된 레코드는 삭제"""
        path = make_script(tmp_path / "a.py")
        record = await engine.cache(path, "exploit")
        path.unlink()

        assert await engine.mirror(record) == MirrorResult.DELETED
        assert registry.find("exploit", path) is None

    @pytest.mark.asyncio
    async def test_mirror_skips_dirty_record(self, engine, registry, make_script, tmp_path):
        """저장되지 않은 변경이 있는 스테일 레코드는 갱신하지 않음"""
        path = make_script(tmp_path / "a.py", version="1.0")
        await engine.cache(path, "exploit")

        record = registry.find("exploit", path)
        record.metadata["version"] = "local-edit"
        assert record.dirty

        make_script(path, version="2.0")
        bump_mtime(path)

        assert await engine.mirror(record) == MirrorResult.UNCHANGED
        assert registry.find("exploit", path).metadata["version"] == "1.0"

    @pytest.mark.asyncio
    async def test_mirror_category_switch(self, engine, registry, make_script, tmp_path):
        """다른 카테고리로 바뀐 파일은 기존 레코드 삭제 후 새 카테고리 캐시"""
        path = make_script(tmp_path / "a.py", category="exploit")
        record = await engine.cache(path, "exploit")

        make_script(path, category="payload")
        bump_mtime(path)

        assert await engine.mirror(record) == MirrorResult.DELETED
        assert registry.find("exploit", path) is None
        assert registry.find("payload", path).object_timestamp == os.stat(path).st_mtime

    @pytest.mark.asyncio
    async def test_mirror_path_caches_new(self, engine, registry, make_script, tmp_path):
        """레코드가 없는 경로는 새로 캐시"""
        path = make_script(tmp_path / "a.py")

        assert await engine.mirror_path(path, "exploit") == MirrorResult.CACHED
        assert await engine.mirror_path(path, "exploit") == MirrorResult.UNCHANGED
        assert registry.count() == 1


class TestDirectoryOperations:
    """디렉토리 단위 작업 테스트"""

    @pytest.mark.asyncio
    async def test_cache_objects_in(self, engine, registry, make_script, tmp_path):
        """디렉토리 하위 전체 캐시"""
        root = tmp_path / "ov"
        make_script(root / "exploits" / "a.py", name="a")
        make_script(root / "exploits" / "nested" / "b.py", name="b")
        make_script(root / "payloads" / "c.py", category="payload", name="c")
        (root / "exploits" / "README.txt").write_text("not a script", encoding="utf-8")

        report = await engine.cache_objects_in(root)

        assert report.ok
        assert report.processed == 3
        assert report.cached == 3
        assert report.completed_at is not None
        assert registry.count("exploit") == 2
        assert registry.count("payload") == 1

    @pytest.mark.asyncio
    async def test_cache_objects_in_continues_after_failure(self, engine, registry, make_script, tmp_path):
        """한 파일 실패는 나머지 처리를 멈추지 않음"""
        root = tmp_path / "ov"
        make_script(root / "good.py", name="good")
        (root / "broken.py").write_text("def broken(:\n", encoding="utf-8")

        report = await engine.cache_objects_in(root)

        assert not report.ok
        assert report.cached == 1
        assert len(report.failures) == 1
        assert report.failures[0].path == str(root / "broken.py")
        assert report.failures[0].error_code == "SCRIPT_LOAD_ERROR"
        assert registry.count() == 1

    @pytest.mark.asyncio
    async def test_cache_objects_in_cancelled(self, engine, registry, make_script, tmp_path):
        """취소 신호가 설정되면 아무것도 캐시하지 않음"""
        root = tmp_path / "ov"
        make_script(root / "a.py")
        cancel = threading.Event()
        cancel.set()

        report = await engine.cache_objects_in(root, cancel)

        assert report.cancelled
        assert registry.count() == 0

    @pytest.mark.asyncio
    async def test_cache_objects_in_missing_directory(self, engine, tmp_path):
        """존재하지 않는 디렉토리는 빈 보고서"""
        report = await engine.cache_objects_in(tmp_path / "nope")

        assert report.ok
        assert report.processed == 0

    @pytest.mark.asyncio
    async def test_mirror_objects_in(self, engine, registry, make_script, tmp_path):
        """새 파일 캐시, 수정 파일 갱신, 삭제 파일 제거, 나머지 유지"""
        root = tmp_path / "ov"
        unchanged = make_script(root / "unchanged.py", name="unchanged")
        modified = make_script(root / "modified.py", name="modified", version="1.0")
        deleted = make_script(root / "deleted.py", name="deleted")
        await engine.cache_objects_in(root)

        added = make_script(root / "sub" / "added.py", name="added")
        make_script(modified, name="modified", version="2.0")
        bump_mtime(modified)
        deleted.unlink()

        report = await engine.mirror_objects_in(root)

        assert report.ok
        assert report.cached == 1
        assert report.refreshed == 1
        assert report.deleted == 1
        assert report.unchanged == 1

        paths = {record.object_path for record in registry.find_by_prefix(root)}
        assert paths == {str(unchanged), str(modified), str(added)}
        assert registry.find("exploit", modified).metadata["version"] == "2.0"

    @pytest.mark.asyncio
    async def test_mirror_objects_in_respects_segment_boundary(self, engine, registry, make_script, tmp_path):
        """형제 디렉토리의 레코드는 건드리지 않음"""
        make_script(tmp_path / "ov" / "a.py")
        sibling = make_script(tmp_path / "ovx" / "b.py")
        await engine.cache_objects_in(tmp_path / "ov")
        await engine.cache_objects_in(tmp_path / "ovx")
        sibling.unlink()

        report = await engine.mirror_objects_in(tmp_path / "ov")

        assert report.deleted == 0
        assert registry.find("exploit", sibling) is not None

    @pytest.mark.asyncio
    async def test_mirror_objects_in_is_idempotent(self, engine, registry, make_script, tmp_path):
        """두 번째 미러는 변경 없음"""
        root = tmp_path / "ov"
        make_script(root / "a.py")
        make_script(root / "b.py")

        await engine.mirror_objects_in(root)
        report = await engine.mirror_objects_in(root)

        assert report.cached == 0
        assert report.unchanged == 2
        assert registry.count() == 2

    @pytest.mark.asyncio
    async def test_mirror_objects_in_category_switch(self, engine, registry, make_script, tmp_path):
        """카테고리가 바뀐 파일은 새 카테고리 레코드 하나만 남음"""
        root = tmp_path / "ov"
        path = make_script(root / "a.py", category="exploit")
        await engine.cache_objects_in(root)

        make_script(path, category="payload")
        bump_mtime(path)
        report = await engine.mirror_objects_in(root)

        assert report.ok
        assert report.deleted == 1
        assert report.cached == 1
        assert [record.key for record in registry.find_by_path(path)] == [("payload", str(path))]

    @pytest.mark.asyncio
    async def test_mirror_objects_in_added_category(self, engine, registry, make_script, tmp_path):
        """기존 파일에 추가된 카테고리 객체도 캐시"""
        root = tmp_path / "ov"
        path = make_script(root / "a.py", category="exploit")
        await engine.cache_objects_in(root)

        with open(path, "a", encoding="utf-8") as f:
            f.write("payload = ScriptObject(category='payload', name='shell')\n")
        bump_mtime(path)
        report = await engine.mirror_objects_in(root)

        assert report.ok
        assert report.refreshed == 1
        assert report.cached == 1
        records = registry.find_by_path(path)
        assert sorted(record.category for record in records) == ["exploit", "payload"]
        assert all(record.object_timestamp == os.stat(path).st_mtime for record in records)

        report = await engine.mirror_objects_in(root)
        assert report.unchanged == 2
        assert report.cached == 0

    @pytest.mark.asyncio
    async def test_mirror_objects_in_removed_category(self, engine, registry, tmp_path):
        """파일에서 사라진 카테고리의 레코드는 삭제"""
        root = tmp_path / "ov"
        root.mkdir()
        path = root / "both.py"
        path.write_text(
            "from overlay_cache.models import ScriptObject\n"
            "exploit = ScriptObject(category='exploit', name='e')\n"
            "payload = ScriptObject(category='payload', name='p')\n",
            encoding="utf-8",
        )
        await engine.cache_objects_in(root)

        path.write_text(
            "from overlay_cache.models import ScriptObject\n"
            "exploit = ScriptObject(category='exploit', name='e2')\n",
            encoding="utf-8",
        )
        bump_mtime(path)
        report = await engine.mirror_objects_in(root)

        assert report.refreshed == 1
        assert report.deleted == 1
        assert [record.category for record in registry.find_by_path(path)] == ["exploit"]
        assert registry.find("exploit", path).metadata["name"] == "e2"

    @pytest.mark.asyncio
    async def test_path_locks_released(self, engine, make_script, tmp_path):
        """작업이 끝난 경로의 잠금은 유지하지 않음"""
        root = tmp_path / "ov"
        for index in range(5):
            make_script(root / f"s{index}.py")

        await engine.cache_objects_in(root)
        await engine.mirror_objects_in(root)
        gc.collect()

        assert len(engine._locks) == 0

    @pytest.mark.asyncio
    async def test_expunge_objects_from(self, engine, registry, make_script, tmp_path):
        """디렉토리 하위 레코드만 일괄 삭제"""
        make_script(tmp_path / "ov" / "a.py")
        make_script(tmp_path / "ov" / "sub" / "b.py", category="payload")
        kept = make_script(tmp_path / "ovx" / "c.py")
        await engine.cache_objects_in(tmp_path)

        deleted = await engine.expunge_objects_from(tmp_path / "ov")

        assert deleted == 2
        assert [record.object_path for record in registry.all()] == [str(kept)]

    @pytest.mark.asyncio
    async def test_expunge_ignores_filesystem_state(self, engine, registry, make_script, tmp_path):
        """파일이 남아 있어도 레코드 삭제"""
        path = make_script(tmp_path / "ov" / "a.py")
        await engine.cache(path, "exploit")

        assert await engine.expunge_objects_from(tmp_path / "ov") == 1
        assert path.exists()
        assert registry.count() == 0


class TestReconciliationScenarios:
    """캐시 → 수정 → 삭제 → 일괄 삭제 시나리오"""

    @pytest.fixture
    def script(self, make_script, tmp_path):
        return make_script(tmp_path / "ov" / "exploits" / "a.py")

    @pytest.mark.asyncio
    async def test_cache_new_directory(self, engine, registry, script, tmp_path):
        await engine.cache_objects_in(tmp_path / "ov")

        records = registry.all()
        assert len(records) == 1
        assert records[0].key == ("exploit", str(script))
        assert records[0].object_timestamp == os.stat(script).st_mtime

    @pytest.mark.asyncio
    async def test_touched_file_replaces_record(self, engine, registry, script, tmp_path):
        """수정된 파일은 기존 레코드를 지우고 새 레코드 생성"""
        await engine.cache_objects_in(tmp_path / "ov")
        old = registry.find("exploit", script)

        bump_mtime(script)
        await engine.mirror_objects_in(tmp_path / "ov")

        new = registry.find("exploit", script)
        assert new.id != old.id
        assert new.object_timestamp == os.stat(script).st_mtime
        assert registry.count() == 1

    @pytest.mark.asyncio
    async def test_deleted_file_not_recreated(self, engine, registry, script, tmp_path):
        await engine.cache_objects_in(tmp_path / "ov")

        script.unlink()
        report = await engine.mirror_objects_in(tmp_path / "ov")

        assert report.deleted == 1
        assert report.cached == 0
        assert registry.find_by_prefix(tmp_path / "ov") == []

    @pytest.mark.asyncio
    async def test_expunge_after_cache(self, engine, registry, script, tmp_path):
        await engine.cache_objects_in(tmp_path / "ov")

        await engine.expunge_objects_from(tmp_path / "ov")

        assert registry.find_by_prefix(tmp_path / "ov") == []
