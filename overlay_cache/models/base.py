"""
기본 데이터 모델 모듈

스크립트가 선언하는 객체, 카테고리 정의, 대량 작업 보고서를 정의합니다.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class ScriptObject(BaseModel):
    """스크립트 파일이 선언하는 객체 (권고문, 익스플로잇, 페이로드 등)"""

    model_config = ConfigDict(extra="allow")

    category: str = Field(
        ...,
        description="객체 카테고리 이름",
        min_length=1
    )
    name: str = Field(
        ...,
        description="객체 이름",
        min_length=1
    )
    version: str = Field(
        default="",
        description="객체 버전"
    )
    author: str = Field(
        default="",
        description="객체 작성자"
    )
    description: str = Field(
        default="",
        description="객체 설명"
    )
    params: Dict[str, Any] = Field(
        default_factory=dict,
        description="로드 시 전달된 매개변수"
    )
    object_path: Optional[str] = Field(
        default=None,
        description="객체를 정의한 스크립트의 정규 경로 (로더가 설정)"
    )

    @property
    def metadata(self) -> Dict[str, str]:
        """레지스트리에 저장되는 선언 메타데이터"""
        return {
            "name": self.name,
            "version": self.version,
            "author": self.author,
        }


class CategoryDefinition(BaseModel):
    """카테고리 테이블 항목 (이름, 객체 모델, 설명)"""

    name: str = Field(
        ...,
        description="카테고리 이름",
        min_length=1,
        max_length=100
    )
    object_model: Type[ScriptObject] = Field(
        default=ScriptObject,
        description="이 카테고리의 객체가 가져야 하는 모델 타입"
    )
    description: str = Field(
        default="",
        description="카테고리 설명"
    )


class BatchFailure(BaseModel):
    """대량 작업 중 개별 파일 처리 실패 정보"""

    path: str = Field(
        ...,
        description="실패한 스크립트 경로"
    )
    category: Optional[str] = Field(
        default=None,
        description="관련 카테고리 (알 수 있는 경우)"
    )
    error_code: Optional[str] = Field(
        default=None,
        description="오류 코드"
    )
    message: str = Field(
        ...,
        description="오류 메시지"
    )


class BatchReport(BaseModel):
    """cache_objects_in / mirror_objects_in 작업 결과 보고서"""

    operation: str = Field(
        ...,
        description="작업 이름 (cache, mirror)"
    )
    directory: str = Field(
        ...,
        description="작업 대상 디렉토리"
    )
    processed: int = Field(
        default=0,
        description="처리한 스크립트 파일 수",
        ge=0
    )
    cached: int = Field(
        default=0,
        description="새로 캐시된 레코드 수",
        ge=0
    )
    refreshed: int = Field(
        default=0,
        description="갱신된 레코드 수",
        ge=0
    )
    deleted: int = Field(
        default=0,
        description="삭제된 레코드 수",
        ge=0
    )
    unchanged: int = Field(
        default=0,
        description="변경 없는 레코드 수",
        ge=0
    )
    failures: List[BatchFailure] = Field(
        default_factory=list,
        description="실패 목록"
    )
    cancelled: bool = Field(
        default=False,
        description="스캔이 취소되었는지 여부"
    )
    started_at: datetime = Field(
        default_factory=datetime.now,
        description="작업 시작 시간"
    )
    completed_at: Optional[datetime] = Field(
        default=None,
        description="작업 완료 시간"
    )

    @property
    def ok(self) -> bool:
        """실패 없이 완료되었는지 여부"""
        return not self.failures

    def add_failure(self, path: str, error: Exception, category: Optional[str] = None) -> None:
        """실패 기록 추가"""
        self.failures.append(BatchFailure(
            path=path,
            category=category,
            error_code=getattr(error, "error_code", None),
            message=str(error)
        ))

    def finish(self) -> "BatchReport":
        """완료 시간 기록"""
        self.completed_at = datetime.now()
        return self
