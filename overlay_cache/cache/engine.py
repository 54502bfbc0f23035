"""
캐시 엔진 모듈

객체 레코드의 캐시 / 스테일 / 누락 / 미러 전이를 판단하고 수행하며,
디렉토리 단위의 대량 캐시·미러·삭제 작업을 오케스트레이션합니다.
"""

import asyncio
import os
import weakref
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar, Union

from ..config.settings import Settings
from ..exceptions import ObjectSourceNotFoundException
from ..models.base import BatchReport, ScriptObject
from ..models.enums import MirrorResult, RecordState
from ..models.record import ObjectRecord
from ..monitoring.metrics import (
    record_batch_failure,
    record_cached,
    record_expunged,
    record_mirrored,
    track_operation,
)
from ..registry.store import ObjectRegistry
from ..scripts.loader import ScriptLoader
from ..scripts.scanner import CancelToken, DirectoryScanner
from ..utils.helpers import canonical_path, file_mtime
from ..utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CacheEngine:
    """객체 레지스트리 캐시 엔진"""

    def __init__(
        self,
        settings: Settings,
        registry: ObjectRegistry,
        loader: ScriptLoader,
        scanner: Optional[DirectoryScanner] = None
    ):
        """
        캐시 엔진 초기화

        Args:
            settings: 시스템 설정
            registry: 객체 레지스트리
            loader: 스크립트 로더
            scanner: 디렉토리 스캐너 (None이면 설정의 확장자로 생성)
        """
        self.settings = settings
        self.registry = registry
        self.loader = loader
        self.scanner = scanner or DirectoryScanner(settings.script_extension)
        self.logger = logger

        # 경로별 잠금 (같은 경로의 cache/mirror는 직렬화, 사용 중인 잠금만 유지)
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _path_lock(self, path: str) -> asyncio.Lock:
        lock = self._locks.get(path)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[path] = lock
        return lock

    # ── 상태 조사 ──────────────────────────────────────────────────────────

    def missing(self, record: ObjectRecord) -> bool:
        """레코드의 경로가 더 이상 일반 파일이 아니면 True"""
        return not os.path.isfile(record.object_path)

    def stale(self, record: ObjectRecord) -> bool:
        """
        캐시 이후 소스 파일이 수정되었는지 여부

        타임스탬프가 없는 레코드와 누락된 파일은 스테일이 아닙니다.
        """
        if record.object_timestamp is None:
            return False

        mtime = file_mtime(record.object_path)
        if mtime is None:
            return False
        return mtime > record.object_timestamp

    def state(self, record: ObjectRecord) -> RecordState:
        """파일시스템 조사로 레코드 상태 판단"""
        if record.object_timestamp is None:
            return RecordState.UNCACHED
        if self.missing(record):
            return RecordState.MISSING
        if self.stale(record):
            return RecordState.STALE
        return RecordState.CACHED

    # ── 단일 레코드 작업 ───────────────────────────────────────────────────

    async def load_object(self, record: ObjectRecord, **params: Any) -> ScriptObject:
        """레코드의 메모리 객체를 지연 로드"""
        if record.loaded_object is None or params:
            record.loaded_object = await asyncio.to_thread(
                self.loader.load_object, record.category, record.object_path, **params
            )
        return record.loaded_object

    async def cache(self, path: Union[str, Path], category: str, **params: Any) -> ObjectRecord:
        """
        스크립트의 카테고리 객체를 로드하여 캐시

        같은 파일에 반복 호출해도 레코드는 하나이며 타임스탬프만 갱신됩니다.

        Args:
            path: 스크립트 파일 경로
            category: 카테고리 이름
            **params: 객체에 전달할 매개변수

        Returns:
            저장된 레코드

        Raises:
            UnknownCategoryException: 선언되지 않은 카테고리일 때
            ObjectSourceNotFoundException: 파일이 없을 때
            ScriptLoadException: 스크립트 로드 실패 시
        """
        path = canonical_path(path)
        async with self._path_lock(path):
            return await self._cache(path, category, **params)

    async def _cache(self, path: str, category: str, **params: Any) -> ObjectRecord:
        obj = await asyncio.to_thread(self.loader.load_object, category, path, **params)
        return self._store(obj, path)

    def _store(self, obj: ScriptObject, path: str) -> ObjectRecord:
        mtime = file_mtime(path)
        if mtime is None:
            raise ObjectSourceNotFoundException(path)

        record = self.registry.find(obj.category, path)
        if record is None:
            record = ObjectRecord(category=obj.category, object_path=path)

        record.apply_object(obj, mtime)
        self.registry.persist(record)
        record_cached(obj.category)

        self.logger.info(f"객체 캐시 완료: {obj.category} {path}")
        return record

    async def mirror(self, record: ObjectRecord) -> MirrorResult:
        """
        레코드를 파일시스템 상태와 맞춤

        1. 파일이 없으면 레코드 삭제 (DELETED)
        2. 스테일이고 저장되지 않은 변경이 없으면 삭제 후 파일 전체를 다시
           캐시 (REFRESHED, 파일이 더 이상 이 카테고리를 선언하지 않으면 DELETED)
        3. 그 외에는 변경 없음 (UNCHANGED)
        """
        path = canonical_path(record.object_path)
        async with self._path_lock(path):
            results, _ = await self._mirror_file(path, [record])

        record_mirrored(results[0].value)
        return results[0]

    async def _mirror_file(
        self,
        path: str,
        records: list[ObjectRecord]
    ) -> tuple[list[MirrorResult], list[ObjectRecord]]:
        """
        한 파일의 레코드들을 미러링

        Returns:
            records 순서의 미러 결과와, 기존 레코드가 없던 카테고리로 새로 캐시된 레코드
        """
        if self.missing(records[0]):
            for record in records:
                self.registry.delete(record)
                self.logger.info(f"누락된 객체 레코드 삭제: {record.category} {path}")
            return [MirrorResult.DELETED] * len(records), []

        stale = [record for record in records if self.stale(record) and not record.dirty]
        for record in records:
            if record.dirty:
                self.logger.debug(f"저장되지 않은 변경이 있어 갱신 생략: {record.category} {path}")

        if not stale:
            return [MirrorResult.UNCHANGED] * len(records), []

        stale_ids = {id(record) for record in stale}
        for record in stale:
            self.registry.delete(record)

        # 파일 전체를 다시 로드해야 추가되거나 사라진 카테고리까지 반영됨
        stored = await self._refresh_file(path)
        declared = {record.category for record in stored}

        results = []
        for record in records:
            if id(record) not in stale_ids:
                results.append(MirrorResult.UNCHANGED)
            elif record.category in declared:
                results.append(MirrorResult.REFRESHED)
            else:
                results.append(MirrorResult.DELETED)

        known = {record.category for record in records}
        added = [record for record in stored if record.category not in known]

        self.logger.info(f"스테일 스크립트 갱신: {path} (카테고리 {sorted(declared)})")
        return results, added

    async def _refresh_file(self, path: str) -> list[ObjectRecord]:
        """파일의 모든 객체를 다시 캐시하고 더 이상 선언되지 않은 카테고리의 레코드 삭제"""
        objects = await asyncio.to_thread(self.loader.load_objects, path)
        stored = [self._store(obj, path) for obj in objects]

        declared = {record.category for record in stored}
        for existing in self.registry.find_by_path(path):
            if existing.category not in declared:
                self.registry.delete(existing)
                self.logger.info(f"선언이 사라진 객체 레코드 삭제: {existing.category} {path}")

        return stored

    async def mirror_path(self, path: Union[str, Path], category: str, **params: Any) -> MirrorResult:
        """
        경로의 기존 레코드를 미러링하거나, 레코드가 없으면 새로 캐시

        Returns:
            미러 결과 (새로 캐시된 경우 CACHED)
        """
        path = canonical_path(path)
        existing = self.registry.find(category, path)

        if existing is not None:
            return await self.mirror(existing)

        await self.cache(path, category, **params)
        return MirrorResult.CACHED

    async def cache_objects(self, path: Union[str, Path], **params: Any) -> list[ObjectRecord]:
        """
        스크립트가 선언한 모든 객체를 캐시

        Args:
            path: 스크립트 파일 경로
            **params: 객체에 전달할 매개변수

        Returns:
            저장된 레코드 목록
        """
        path = canonical_path(path)
        async with self._path_lock(path):
            objects = await asyncio.to_thread(self.loader.load_objects, path, **params)
            return [self._store(obj, path) for obj in objects]

    async def search(self, category: Optional[str] = None, **metadata: str) -> list[ScriptObject]:
        """메타데이터가 일치하는 레코드의 객체 로드"""
        records = self.registry.search(category, **metadata)
        return [await self.load_object(record) for record in records]

    # ── 디렉토리 단위 작업 ─────────────────────────────────────────────────

    async def _scan(self, directory: str, cancel: Optional[CancelToken]) -> list[str]:
        return await asyncio.to_thread(lambda: list(self.scanner.scan(directory, cancel)))

    async def _for_each(
        self,
        items: Iterable[T],
        worker: Callable[[T], Awaitable[None]],
        cancel: Optional[CancelToken]
    ) -> None:
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_files)

        async def run(item: T) -> None:
            async with semaphore:
                if cancel is not None and cancel.is_set():
                    return
                await worker(item)

        await asyncio.gather(*(run(item) for item in items))

    @track_operation("cache_objects_in")
    async def cache_objects_in(
        self,
        directory: Union[str, Path],
        cancel: Optional[CancelToken] = None
    ) -> BatchReport:
        """
        디렉토리 하위의 모든 스크립트 객체 캐시

        한 파일의 실패는 나머지 파일 처리를 중단하지 않으며 보고서에 기록됩니다.

        Args:
            directory: 대상 디렉토리
            cancel: 취소 신호 (선택사항)

        Returns:
            작업 결과 보고서
        """
        directory = canonical_path(directory)
        report = BatchReport(operation="cache", directory=directory)
        self.logger.info(f"디렉토리 캐시 시작: {directory}")

        paths = await self._scan(directory, cancel)

        async def cache_file(path: str) -> None:
            report.processed += 1
            try:
                records = await self.cache_objects(path)
                report.cached += len(records)
            except Exception as e:
                self.logger.error(f"스크립트 캐시 실패: {path} - {e}")
                report.add_failure(path, e)
                record_batch_failure("cache")

        await self._for_each(paths, cache_file, cancel)

        report.cancelled = cancel is not None and cancel.is_set()
        self._log_report(report)
        return report.finish()

    @track_operation("mirror_objects_in")
    async def mirror_objects_in(
        self,
        directory: Union[str, Path],
        cancel: Optional[CancelToken] = None
    ) -> BatchReport:
        """
        디렉토리 하위의 레코드를 파일시스템과 동기화

        기존 레코드는 미러링하고, 레코드가 없는 새 스크립트는 캐시합니다.
        완료 후 디렉토리 하위 레코드는 스크립트 파일을 정확히 반영합니다.

        Args:
            directory: 대상 디렉토리
            cancel: 취소 신호 (선택사항)

        Returns:
            작업 결과 보고서
        """
        directory = canonical_path(directory)
        report = BatchReport(operation="mirror", directory=directory)
        self.logger.info(f"디렉토리 미러 시작: {directory}")

        new_paths = set(await self._scan(directory, cancel))

        records_by_path: dict[str, list[ObjectRecord]] = {}
        for category in self.registry.categories:
            for record in self.registry.find_by_prefix(directory, category):
                new_paths.discard(record.object_path)
                records_by_path.setdefault(record.object_path, []).append(record)

        async def mirror_file(path: str) -> None:
            records = records_by_path[path]
            report.processed += len(records)
            try:
                async with self._path_lock(path):
                    results, added = await self._mirror_file(path, records)
            except Exception as e:
                self.logger.error(f"객체 미러 실패: {path} - {e}")
                report.add_failure(path, e)
                record_batch_failure("mirror")
                return

            for result in results:
                record_mirrored(result.value)
                if result is MirrorResult.DELETED:
                    report.deleted += 1
                elif result is MirrorResult.REFRESHED:
                    report.refreshed += 1
                else:
                    report.unchanged += 1
            report.cached += len(added)

        async def cache_file(path: str) -> None:
            report.processed += 1
            try:
                cached = await self.cache_objects(path)
                report.cached += len(cached)
            except Exception as e:
                self.logger.error(f"새 스크립트 캐시 실패: {path} - {e}")
                report.add_failure(path, e)
                record_batch_failure("mirror")

        await self._for_each(sorted(records_by_path), mirror_file, cancel)
        await self._for_each(sorted(new_paths), cache_file, cancel)

        report.cancelled = cancel is not None and cancel.is_set()
        self._log_report(report)
        return report.finish()

    @track_operation("expunge_objects_from")
    async def expunge_objects_from(self, directory: Union[str, Path]) -> int:
        """
        디렉토리 하위의 모든 레코드를 파일시스템 상태와 무관하게 삭제

        Args:
            directory: 대상 디렉토리

        Returns:
            삭제된 레코드 수
        """
        directory = canonical_path(directory)
        deleted = self.registry.delete_by_prefix(directory)
        record_expunged(deleted)

        self.logger.info(f"레코드 일괄 삭제 완료: {directory} ({deleted}개)")
        return deleted

    def _log_report(self, report: BatchReport) -> None:
        summary = (
            f"처리 {report.processed}, 캐시 {report.cached}, 갱신 {report.refreshed}, "
            f"삭제 {report.deleted}, 실패 {len(report.failures)}"
        )
        if report.cancelled:
            self.logger.warning(f"디렉토리 {report.operation} 취소됨: {report.directory} ({summary})")
        elif report.failures:
            self.logger.warning(f"디렉토리 {report.operation} 완료 (실패 포함): {report.directory} ({summary})")
        else:
            self.logger.info(f"디렉토리 {report.operation} 완료: {report.directory} ({summary})")
