"""
저장소 관리 패키지

저장소/카테고리 해석과 오버레이 갱신 기능을 제공합니다.
"""

from .overlay import Overlay, UpdateResult
from .repository import (
    Category,
    GitRepository,
    LocalRepository,
    RepositoryBase,
    create_repository,
    get_repository,
)

__all__ = [
    "Overlay",
    "UpdateResult",
    "Category",
    "RepositoryBase",
    "GitRepository",
    "LocalRepository",
    "create_repository",
    "get_repository",
]
