"""
오버레이 설정 모듈

저장소 이름과 저장소 정보(어댑터, URL, 로컬 경로)의 매핑을 JSON 파일로 관리합니다.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr, ValidationError

from ..exceptions import ConfigurationException, RepositoryNotFoundException
from ..models.enums import RepositoryAdapter
from ..utils.logging import get_logger

logger = get_logger(__name__)


class RepositoryDescriptor(BaseModel):
    """오버레이 설정의 저장소 항목"""

    adapter: RepositoryAdapter = Field(
        default=RepositoryAdapter.GIT,
        description="저장소 어댑터 타입"
    )
    url: Optional[str] = Field(
        default=None,
        description="원격 저장소 URL (갱신용)"
    )
    path: Optional[str] = Field(
        default=None,
        description="로컬 체크아웃 경로 (없으면 오버레이 루트/이름)"
    )


class OverlayConfig(BaseModel):
    """오버레이 저장소 설정"""

    repositories: Dict[str, RepositoryDescriptor] = Field(
        default_factory=dict,
        description="저장소 이름 → 저장소 정보"
    )

    _source_path: Optional[Path] = PrivateAttr(default=None)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "OverlayConfig":
        """
        설정 파일 로드

        파일이 없으면 빈 설정을 반환합니다.

        Args:
            path: 설정 파일 경로

        Returns:
            로드된 오버레이 설정

        Raises:
            ConfigurationException: 파일 형식이 잘못되었을 때
        """
        path = Path(path).expanduser()

        if not path.exists():
            logger.debug(f"오버레이 설정 파일 없음, 빈 설정 사용: {path}")
            config = cls()
        else:
            try:
                with open(path, encoding='utf-8') as f:
                    data = json.load(f)
                config = cls.model_validate(data)
            except json.JSONDecodeError as e:
                raise ConfigurationException("OVERLAY_CONFIG_PATH", f"JSON 파싱 오류: {e}") from e
            except ValidationError as e:
                raise ConfigurationException("OVERLAY_CONFIG_PATH", f"설정 형식 오류: {e}") from e

        config._source_path = path
        return config

    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        """
        설정 파일 저장

        Args:
            path: 저장 경로 (None이면 로드한 경로)

        Returns:
            저장된 파일 경로
        """
        target = Path(path).expanduser() if path else self._source_path
        if target is None:
            raise ConfigurationException("OVERLAY_CONFIG_PATH", "저장할 경로가 지정되지 않았습니다")

        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, 'w', encoding='utf-8') as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, ensure_ascii=False)

        self._source_path = target
        logger.info(f"오버레이 설정 저장 완료: {target}")
        return target

    def get_repository(self, name: str) -> RepositoryDescriptor:
        """
        저장소 정보 조회

        Raises:
            RepositoryNotFoundException: 설정에 없는 저장소일 때
        """
        descriptor = self.repositories.get(name)
        if descriptor is None:
            source = str(self._source_path) if self._source_path else None
            raise RepositoryNotFoundException(name, source)
        return descriptor

    def add_repository(self, name: str, descriptor: RepositoryDescriptor) -> None:
        if name in self.repositories:
            raise ConfigurationException(name, "이미 등록된 저장소입니다")
        self.repositories[name] = descriptor

    def remove_repository(self, name: str) -> RepositoryDescriptor:
        descriptor = self.get_repository(name)
        del self.repositories[name]
        return descriptor

    def update_repository(self, name: str, **changes: Any) -> RepositoryDescriptor:
        """
        저장소 정보 일부 변경

        None인 항목은 기존 값을 유지합니다.

        Raises:
            RepositoryNotFoundException: 설정에 없는 저장소일 때
        """
        current = self.get_repository(name)
        values = {key: value for key, value in changes.items() if value is not None}

        try:
            descriptor = RepositoryDescriptor.model_validate({**current.model_dump(), **values})
        except ValidationError as e:
            raise ConfigurationException(name, f"저장소 정보 형식 오류: {e}") from e

        self.repositories[name] = descriptor
        return descriptor
