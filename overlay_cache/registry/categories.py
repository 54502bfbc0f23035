"""
카테고리 테이블 모듈

시작 시 구성되는 카테고리 정의 테이블입니다. 레지스트리와 스크립트 로더가
같은 테이블 인스턴스를 공유합니다.
"""

from typing import Iterable, Iterator, Optional

from ..exceptions import UnknownCategoryException
from ..models.base import CategoryDefinition


class CategoryTable:
    """카테고리 이름 → 카테고리 정의"""

    def __init__(self, definitions: Optional[Iterable[CategoryDefinition]] = None):
        self._definitions: dict[str, CategoryDefinition] = {}
        for definition in definitions or []:
            self.declare(definition)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "CategoryTable":
        """이름 목록으로 기본 모델을 사용하는 테이블 생성"""
        return cls(CategoryDefinition(name=name) for name in names)

    def declare(self, definition: CategoryDefinition) -> None:
        self._definitions[definition.name] = definition

    def get(self, name: str) -> CategoryDefinition:
        """
        카테고리 정의 조회

        Raises:
            UnknownCategoryException: 선언되지 않은 카테고리일 때
        """
        try:
            return self._definitions[name]
        except KeyError:
            raise UnknownCategoryException(name) from None

    @property
    def names(self) -> list[str]:
        return list(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __iter__(self) -> Iterator[CategoryDefinition]:
        return iter(list(self._definitions.values()))

    def __len__(self) -> int:
        return len(self._definitions)
