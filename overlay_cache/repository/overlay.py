"""
오버레이 모듈

여러 저장소를 하나의 논리적 네임스페이스로 묶고, 저장소 갱신 후
레지스트리 미러링을 수행합니다.
"""

from typing import Iterable, Iterator, Optional

from pydantic import BaseModel, Field

from ..cache.engine import CacheEngine
from ..config.overlay import OverlayConfig
from ..config.settings import Settings
from ..exceptions import OverlayCacheException, RepositoryNotFoundException
from ..models.base import BatchReport
from ..scripts.loader import ScriptLoader
from ..scripts.scanner import CancelToken
from ..utils.logging import get_logger
from .repository import RepositoryBase, create_repository

logger = get_logger(__name__)


class UpdateResult(BaseModel):
    """저장소 갱신 + 미러링 결과"""

    repository: str = Field(
        ...,
        description="저장소 이름"
    )
    refreshed: bool = Field(
        default=False,
        description="원격 갱신 성공 여부"
    )
    error: Optional[str] = Field(
        default=None,
        description="갱신 또는 미러링 오류 메시지"
    )
    report: Optional[BatchReport] = Field(
        default=None,
        description="미러링 보고서 (갱신 성공 시)"
    )

    @property
    def ok(self) -> bool:
        return self.refreshed and self.error is None and self.report is not None and self.report.ok


class Overlay:
    """순서가 있는 저장소 모음"""

    def __init__(
        self,
        engine: CacheEngine,
        repositories: Optional[Iterable[RepositoryBase]] = None,
        refresh_timeout: Optional[float] = None
    ):
        """
        오버레이 초기화

        Args:
            engine: 캐시 엔진
            repositories: 초기 저장소 목록 (순서 유지)
            refresh_timeout: 저장소 갱신 타임아웃 (초)
        """
        self.engine = engine
        self.refresh_timeout = refresh_timeout
        self.logger = logger
        self._repositories: dict[str, RepositoryBase] = {}

        for repository in repositories or []:
            self.add(repository)

    @classmethod
    def from_config(
        cls,
        config: OverlayConfig,
        engine: CacheEngine,
        loader: ScriptLoader,
        settings: Settings
    ) -> "Overlay":
        """설정 파일의 저장소 순서대로 오버레이 구성"""
        repositories = [
            create_repository(name, descriptor, loader, settings.overlay_root_dir)
            for name, descriptor in config.repositories.items()
        ]
        return cls(engine, repositories, refresh_timeout=settings.refresh_timeout)

    # ── 저장소 모음 ────────────────────────────────────────────────────────

    def __iter__(self) -> Iterator[RepositoryBase]:
        return iter(list(self._repositories.values()))

    def __len__(self) -> int:
        return len(self._repositories)

    def __contains__(self, name: object) -> bool:
        return name in self._repositories

    @property
    def names(self) -> list[str]:
        return list(self._repositories)

    def get(self, name: str) -> RepositoryBase:
        """
        저장소 조회

        Raises:
            RepositoryNotFoundException: 오버레이에 없는 저장소일 때
        """
        try:
            return self._repositories[name]
        except KeyError:
            raise RepositoryNotFoundException(name) from None

    def add(self, repository: RepositoryBase) -> None:
        if repository.name in self._repositories:
            raise OverlayCacheException(
                f"이미 오버레이에 있는 저장소입니다: {repository.name}", "DUPLICATE_REPOSITORY"
            )
        self._repositories[repository.name] = repository
        self.logger.debug(f"오버레이에 저장소 추가: {repository.name}")

    async def remove(self, name: str) -> int:
        """
        저장소 제거

        저장소 경로 하위의 레코드를 모두 삭제합니다.

        Returns:
            삭제된 레코드 수
        """
        repository = self.get(name)
        expunged = await self.engine.expunge_objects_from(repository.path)
        del self._repositories[name]

        self.logger.info(f"오버레이에서 저장소 제거: {name} (레코드 {expunged}개 삭제)")
        return expunged

    # ── 갱신 ───────────────────────────────────────────────────────────────

    async def update_repository(
        self,
        repository: RepositoryBase,
        cancel: Optional[CancelToken] = None
    ) -> UpdateResult:
        """
        저장소 갱신 후 미러링

        갱신이 실패하면 미러링하지 않으므로 레지스트리는 변경되지 않습니다.
        """
        result = UpdateResult(repository=repository.name)

        try:
            await repository.refresh(self.refresh_timeout)
        except OverlayCacheException as e:
            result.error = e.message
            return result

        result.refreshed = True

        try:
            result.report = await self.engine.mirror_objects_in(repository.path, cancel)
        except OverlayCacheException as e:
            self.logger.error(f"저장소 미러링 실패: {repository.name} - {e.message}")
            result.error = e.message

        return result

    async def update(
        self,
        names: Optional[Iterable[str]] = None,
        cancel: Optional[CancelToken] = None
    ) -> list[UpdateResult]:
        """
        저장소 갱신 및 미러링

        Args:
            names: 갱신할 저장소 이름 (None 또는 빈 목록이면 전체)
            cancel: 취소 신호 (선택사항)

        Returns:
            저장소별 결과 (오버레이 순서 또는 지정 순서)

        Raises:
            RepositoryNotFoundException: 오버레이에 없는 이름이 있을 때
        """
        names = list(names or [])
        repositories = [self.get(name) for name in names] if names else list(self)

        results = []
        for repository in repositories:
            if cancel is not None and cancel.is_set():
                self.logger.info("오버레이 갱신 취소됨")
                break
            results.append(await self.update_repository(repository, cancel))

        failed = [result.repository for result in results if not result.ok]
        if failed:
            self.logger.warning(f"오버레이 갱신 완료 (실패: {', '.join(failed)})")
        else:
            self.logger.info(f"오버레이 갱신 완료: {len(results)}개 저장소")
        return results
