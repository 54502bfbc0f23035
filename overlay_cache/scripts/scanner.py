"""
디렉토리 스캐너 모듈

루트 경로 하위의 객체 스크립트 파일을 재귀적으로 탐색합니다.
"""

import os
from pathlib import Path
from typing import Iterator, Optional, Protocol, Union

from ..utils.helpers import canonical_path
from ..utils.logging import get_logger

logger = get_logger(__name__)

# 탐색하지 않는 디렉토리
IGNORED_DIRECTORIES = frozenset({"__pycache__"})


class CancelToken(Protocol):
    """asyncio.Event, threading.Event 등 is_set()을 제공하는 취소 신호"""

    def is_set(self) -> bool:
        ...


class DirectoryScanner:
    """객체 스크립트 디렉토리 스캐너"""

    def __init__(self, extension: str = ".py"):
        """
        스캐너 초기화

        Args:
            extension: 스크립트 파일 확장자
        """
        self.extension = extension
        self.logger = logger

    def is_script(self, name: str) -> bool:
        return (
            name.endswith(self.extension)
            and not name.startswith(".")
            and name != f"__init__{self.extension}"
        )

    def is_category_context(self, dirpath: str, name: str) -> bool:
        """카테고리 컨텍스트 스크립트 (<카테고리>/<카테고리>.py) 여부"""
        return name[:-len(self.extension)] == os.path.basename(dirpath)

    def scan(
        self,
        root: Union[str, Path],
        cancel: Optional[CancelToken] = None
    ) -> Iterator[str]:
        """
        스크립트 파일 경로 탐색

        숨김 디렉토리(.git 등)와 __pycache__, 카테고리 컨텍스트 스크립트는
        건너뜁니다. 접근할 수 없는 디렉토리는 경고를 남기고 건너뜁니다.
        취소 신호가 설정되면 더 이상 경로를 내보내지 않습니다. 순서는
        보장되지 않습니다.

        Args:
            root: 탐색 루트 디렉토리
            cancel: 취소 신호 (선택사항)

        Yields:
            스크립트 파일의 정규 경로
        """
        root = canonical_path(root)

        if not os.path.isdir(root):
            self.logger.warning(f"스캔 대상 디렉토리가 없습니다: {root}")
            return

        def _on_error(error: OSError) -> None:
            self.logger.warning(f"디렉토리 탐색 실패, 건너뜀: {error.filename} - {error.strerror}")

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            if cancel is not None and cancel.is_set():
                self.logger.info(f"스캔 취소됨: {root}")
                return

            dirnames[:] = [
                name for name in dirnames
                if not name.startswith(".") and name not in IGNORED_DIRECTORIES
            ]

            for filename in filenames:
                if cancel is not None and cancel.is_set():
                    self.logger.info(f"스캔 취소됨: {root}")
                    return

                if not self.is_script(filename):
                    continue

                if self.is_category_context(dirpath, filename):
                    continue

                path = os.path.join(dirpath, filename)
                if not os.path.isfile(path):
                    # 깨진 심볼릭 링크 등
                    self.logger.warning(f"일반 파일이 아니므로 건너뜀: {path}")
                    continue

                yield path
