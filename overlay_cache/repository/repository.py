"""
저장소 통합 모듈

로컬 체크아웃으로 존재하는 객체 저장소와 그 카테고리를 표현하고,
Git 원격 저장소에서 체크아웃을 갱신하는 기능을 제공합니다.
"""

import asyncio
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import ClassVar, Optional, Union

import git

from ..config.overlay import OverlayConfig, RepositoryDescriptor
from ..exceptions import (
    CategoryNotFoundException,
    ConfigurationException,
    RepositoryRefreshException,
)
from ..models.enums import RepositoryAdapter
from ..monitoring.metrics import record_refresh
from ..scripts.loader import ScriptLoader
from ..utils.helpers import canonical_path
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Category:
    """저장소에 속한 카테고리 (하위 디렉토리)"""

    repository: "RepositoryBase"
    name: str
    context: Optional[ModuleType] = None

    @property
    def path(self) -> str:
        return os.path.join(self.repository.path, self.name)


class RepositoryBase(ABC):
    """저장소 기본 추상 클래스"""

    adapter: ClassVar[RepositoryAdapter]

    def __init__(
        self,
        name: str,
        path: Union[str, Path],
        loader: ScriptLoader,
        url: Optional[str] = None
    ):
        """
        저장소 기본 초기화

        Args:
            name: 저장소 이름
            path: 로컬 체크아웃 경로
            loader: 카테고리 컨텍스트 스크립트를 실행할 로더
            url: 원격 저장소 URL (선택사항)
        """
        self.name = name
        self.path = canonical_path(path)
        self.loader = loader
        self.url = url
        self.logger = logger

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, path={self.path!r})"

    # ── 카테고리 ───────────────────────────────────────────────────────────

    def has_category(self, name: str) -> bool:
        """저장소 경로/이름이 존재하는 디렉토리인지 확인"""
        return os.path.isdir(os.path.join(self.path, name))

    def categories(self) -> list[str]:
        """카테고리 이름 목록 (숨김 디렉토리 제외, 이름순)"""
        if not os.path.isdir(self.path):
            return []
        return sorted(
            entry.name for entry in os.scandir(self.path)
            if entry.is_dir() and not entry.name.startswith(".") and entry.name != "__pycache__"
        )

    def load_category(self, name: str) -> Category:
        """
        카테고리 로드

        '<저장소>/<이름>/<이름>.py' 스크립트가 있으면 실행하여 카테고리
        컨텍스트로 연결하고, 없으면 컨텍스트 없이 반환합니다.

        Args:
            name: 카테고리 이름

        Returns:
            로드된 카테고리

        Raises:
            CategoryNotFoundException: 카테고리 디렉토리가 없을 때
            ScriptLoadException: 컨텍스트 스크립트 실행 실패 시
        """
        if not self.has_category(name):
            raise CategoryNotFoundException(name, self.name)

        context_path = os.path.join(
            self.path, name, f"{name}{self.loader.extension}"
        )
        if os.path.isfile(context_path):
            context = self.loader.load_module(context_path)
            self.logger.debug(f"카테고리 컨텍스트 로드: {self.name}/{name}")
            return Category(self, name, context)

        return Category(self, name, None)

    # ── 갱신 ───────────────────────────────────────────────────────────────

    @abstractmethod
    def fetch(self, timeout: Optional[float] = None) -> None:
        """
        원격 내용을 로컬 체크아웃에 반영 (추상 메서드, 블로킹)

        외부 프로세스를 쓰는 구현은 timeout이 지나면 프로세스를 종료해야
        합니다. 그렇지 않으면 refresh가 시간 초과로 반환된 뒤에도 워커
        스레드가 남아 이벤트 루프 종료를 지연시킵니다.

        Args:
            timeout: 작업 제한 시간 (초, None이면 무제한)

        Raises:
            RepositoryRefreshException: 갱신 실패 시
        """
        pass

    async def refresh(self, timeout: Optional[float] = None) -> None:
        """
        저장소 갱신

        블로킹 갱신 작업을 워커 스레드에서 실행하고 타임아웃으로 제한합니다.

        Args:
            timeout: 타임아웃 (초, None이면 무제한)

        Raises:
            RepositoryRefreshException: 갱신 실패 또는 시간 초과 시
        """
        start_time = time.time()
        status = "failed"

        try:
            await asyncio.wait_for(asyncio.to_thread(self.fetch, timeout), timeout)
            status = "success"
            self.logger.info(f"저장소 갱신 완료: {self.name}")

        except asyncio.TimeoutError as e:
            status = "timeout"
            self.logger.error(f"저장소 갱신 시간 초과: {self.name} ({timeout}초)")
            raise RepositoryRefreshException(self.name, f"{timeout}초 시간 초과") from e

        except RepositoryRefreshException:
            raise

        except (git.GitError, OSError) as e:
            self.logger.error(f"저장소 갱신 실패: {self.name} - {e}")
            raise RepositoryRefreshException(self.name, str(e)) from e

        finally:
            record_refresh(self.name, status, time.time() - start_time)


class GitRepository(RepositoryBase):
    """Git 저장소 클래스"""

    adapter = RepositoryAdapter.GIT

    def __init__(
        self,
        name: str,
        path: Union[str, Path],
        loader: ScriptLoader,
        url: Optional[str] = None
    ):
        """
        Git 저장소 초기화

        Args:
            name: 저장소 이름
            path: 로컬 체크아웃 경로
            loader: 스크립트 로더
            url: Git 저장소 URL
        """
        super().__init__(name, path, loader, url)
        self.repo: Optional[git.Repo] = None

    def fetch(self, timeout: Optional[float] = None) -> None:
        """저장소 복제 또는 업데이트 (timeout이 지나면 git 프로세스 종료)"""
        local_path = Path(self.path)

        if (local_path / ".git").exists():
            # 기존 저장소 업데이트
            self.repo = git.Repo(local_path)
            origin = self.repo.remotes.origin
            origin.pull(kill_after_timeout=timeout)
            self.logger.info(f"저장소 업데이트 완료: {self.url or self.path}")
        else:
            # 새로운 저장소 복제
            self._clone_fresh(timeout)

    def _clone_fresh(self, timeout: Optional[float] = None) -> None:
        """새로운 저장소 복제"""
        if not self.url:
            raise RepositoryRefreshException(self.name, "복제할 저장소 URL이 없습니다")

        local_path = Path(self.path)
        if local_path.exists() and any(local_path.iterdir()):
            raise RepositoryRefreshException(
                self.name, f"Git 저장소가 아닌 디렉토리가 이미 존재합니다: {local_path}"
            )

        local_path.mkdir(parents=True, exist_ok=True)
        # Repo.clone_from은 kill_after_timeout을 적용하지 않으므로 git 명령을 직접 실행
        git.Git().clone(
            self.url,
            str(local_path),
            depth=1,  # 얕은 복제로 성능 향상
            kill_after_timeout=timeout
        )
        self.repo = git.Repo(local_path)
        self.logger.info(f"저장소 복제 완료: {self.url}")


class LocalRepository(RepositoryBase):
    """원격 없이 로컬 디렉토리만 사용하는 저장소 클래스"""

    adapter = RepositoryAdapter.LOCAL

    def fetch(self, timeout: Optional[float] = None) -> None:
        """로컬 디렉토리 존재 확인 (원격 동기화 없음)"""
        if not os.path.isdir(self.path):
            raise RepositoryRefreshException(self.name, f"로컬 디렉토리가 없습니다: {self.path}")


_ADAPTERS: dict[RepositoryAdapter, type[RepositoryBase]] = {
    RepositoryAdapter.GIT: GitRepository,
    RepositoryAdapter.LOCAL: LocalRepository,
}


def create_repository(
    name: str,
    descriptor: RepositoryDescriptor,
    loader: ScriptLoader,
    overlay_root: Union[str, Path]
) -> RepositoryBase:
    """
    설정 항목에 따른 저장소 인스턴스 생성

    Args:
        name: 저장소 이름
        descriptor: 저장소 정보
        loader: 스크립트 로더
        overlay_root: 경로가 없는 저장소의 체크아웃 루트

    Returns:
        저장소 인스턴스
    """
    repository_class = _ADAPTERS.get(descriptor.adapter)
    if repository_class is None:
        raise ConfigurationException(name, f"지원하지 않는 저장소 어댑터: {descriptor.adapter}")

    path = descriptor.path or os.path.join(str(overlay_root), name)
    return repository_class(name, path, loader, url=descriptor.url)


def get_repository(
    config: OverlayConfig,
    name: str,
    loader: ScriptLoader,
    overlay_root: Union[str, Path]
) -> RepositoryBase:
    """
    설정에서 저장소 조회

    Raises:
        RepositoryNotFoundException: 설정에 없는 저장소일 때
    """
    return create_repository(name, config.get_repository(name), loader, overlay_root)
