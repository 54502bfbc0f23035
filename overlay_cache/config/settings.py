"""
설정 관리 모듈

환경 변수를 통한 시스템 설정을 관리합니다.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from ..exceptions import ConfigurationException


class Settings(BaseSettings):
    """시스템 설정 관리 클래스"""

    # 레지스트리 설정
    registry_db_path: str = Field(
        default="~/.overlay_cache/registry.db",
        description="객체 레지스트리 SQLite 파일 경로"
    )

    # 오버레이 설정
    overlay_config_path: str = Field(
        default="~/.overlay_cache/overlay.json",
        description="저장소 이름 → 저장소 정보 매핑 파일 경로"
    )
    overlay_root: str = Field(
        default="~/.overlay_cache/repos",
        description="경로가 지정되지 않은 저장소의 로컬 체크아웃 루트"
    )

    # 카테고리 설정
    categories: list[str] = Field(
        default=["advisory", "exploit", "payload"],
        description="시작 시 선언할 객체 카테고리 목록"
    )
    script_extension: str = Field(
        default=".py",
        description="객체 스크립트 파일 확장자"
    )

    # 동시성 설정
    max_concurrent_files: int = Field(
        default=8,
        description="대량 캐시/미러 작업의 최대 동시 파일 수"
    )
    refresh_timeout: int = Field(
        default=300,
        description="저장소 갱신 타임아웃 (초)"
    )

    # 로깅 설정
    log_level: str = Field(
        default="INFO",
        description="로그 레벨"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="로그 포맷"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="로그 파일 경로"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        # 환경 변수 이름을 대문자로 변환
        case_sensitive = False

    @property
    def registry_path(self) -> Path:
        return Path(self.registry_db_path).expanduser()

    @property
    def overlay_config_file(self) -> Path:
        return Path(self.overlay_config_path).expanduser()

    @property
    def overlay_root_dir(self) -> Path:
        return Path(self.overlay_root).expanduser()

    def validate_configuration(self) -> None:
        """설정 유효성 검증"""
        if not self.categories:
            raise ConfigurationException(
                "CATEGORIES", "최소 하나의 카테고리가 필요합니다"
            )

        if not self.script_extension.startswith("."):
            raise ConfigurationException(
                "SCRIPT_EXTENSION", f"'.'으로 시작해야 합니다: {self.script_extension}"
            )

        if self.max_concurrent_files < 1:
            raise ConfigurationException(
                "MAX_CONCURRENT_FILES", "1 이상이어야 합니다"
            )

        if self.refresh_timeout <= 0:
            raise ConfigurationException(
                "REFRESH_TIMEOUT", "0보다 커야 합니다"
            )

        # 레지스트리 및 체크아웃 디렉토리 생성
        os.makedirs(self.registry_path.parent, exist_ok=True)
        os.makedirs(self.overlay_root_dir, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    """
    설정 인스턴스를 반환합니다 (싱글톤 패턴)

    Returns:
        Settings: 설정 인스턴스
    """
    settings = Settings()
    settings.validate_configuration()
    return settings
