"""
객체 레코드 모델 모듈

레지스트리에 저장되는 (카테고리, 정규 경로) 단위의 레코드를 정의합니다.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from .base import ScriptObject


@dataclass
class ObjectRecord:
    """객체 레지스트리 레코드 모델"""

    # 식별 정보
    category: str
    object_path: str

    # 캐시 정보 (마지막 캐시 시점의 소스 파일 수정 시간, POSIX 초)
    object_timestamp: Optional[float] = None

    # 선언 메타데이터
    metadata: Dict[str, str] = field(default_factory=dict)

    # 저장 전에는 None
    id: Optional[int] = None

    # 지연 로드되는 메모리 객체 (저장되지 않음)
    loaded_object: Optional[ScriptObject] = field(default=None, repr=False, compare=False)

    _snapshot: Optional[Tuple[Optional[float], Tuple[Tuple[str, str], ...]]] = field(
        default=None, init=False, repr=False, compare=False
    )

    @property
    def key(self) -> Tuple[str, str]:
        """레코드 식별 키 (카테고리, 정규 경로)"""
        return (self.category, self.object_path)

    @property
    def cached_at(self) -> Optional[datetime]:
        """마지막 캐시 시점의 수정 시간 (datetime)"""
        if self.object_timestamp is None:
            return None
        return datetime.fromtimestamp(self.object_timestamp)

    @property
    def persisted(self) -> bool:
        return self.id is not None

    @property
    def dirty(self) -> bool:
        """
        저장되지 않은 메모리상의 변경이 있는지 여부

        마지막으로 저장(또는 조회)된 상태와 타임스탬프/메타데이터가 다르면
        dirty 상태입니다. 한 번도 저장되지 않은 레코드는 dirty가 아닙니다.
        """
        if self._snapshot is None:
            return False
        return self._snapshot != self._current_state()

    def mark_clean(self) -> None:
        """현재 상태를 저장된 상태로 기록"""
        self._snapshot = self._current_state()

    def apply_object(self, obj: ScriptObject, timestamp: float) -> None:
        """로드된 객체의 메타데이터와 수정 시간을 레코드에 반영"""
        self.metadata = dict(obj.metadata)
        self.object_timestamp = timestamp
        self.loaded_object = obj

    def _current_state(self) -> Tuple[Optional[float], Tuple[Tuple[str, str], ...]]:
        return (self.object_timestamp, tuple(sorted(self.metadata.items())))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "object_path": self.object_path,
            "object_timestamp": self.object_timestamp,
            "metadata": dict(self.metadata),
        }
