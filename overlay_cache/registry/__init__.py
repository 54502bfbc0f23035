"""
객체 레지스트리 패키지

(카테고리, 정규 경로) 단위 레코드의 영속 저장소와 카테고리 테이블을 제공합니다.
"""

from .categories import CategoryTable
from .store import ObjectRegistry

__all__ = ["CategoryTable", "ObjectRegistry"]
