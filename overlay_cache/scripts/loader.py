"""
스크립트 로더 모듈

객체 스크립트 파일을 실행하여 선언된 객체(ScriptObject)와 메타데이터를 추출합니다.

스크립트는 모듈 최상위에 ScriptObject 인스턴스를 선언합니다::

    from overlay_cache.models import ScriptObject

    exploit = ScriptObject(
        category="exploit",
        name="wu-ftpd-overflow",
        version="0.1",
        author="postmodern",
    )

하나의 파일이 여러 카테고리의 객체를 선언할 수 있습니다.
"""

import hashlib
import importlib.util
import os
from pathlib import Path
from types import ModuleType
from typing import Any, Union

from ..exceptions import (
    ObjectSourceNotFoundException,
    ScriptLoadException,
    UnknownCategoryException,
)
from ..models.base import ScriptObject
from ..registry.categories import CategoryTable
from ..utils.helpers import canonical_path
from ..utils.logging import get_logger

logger = get_logger(__name__)


class ScriptLoader:
    """객체 스크립트 로더"""

    def __init__(self, categories: CategoryTable, extension: str = ".py"):
        """
        스크립트 로더 초기화

        Args:
            categories: 공유 카테고리 테이블
            extension: 스크립트 파일 확장자
        """
        self.categories = categories
        self.extension = extension
        self.logger = logger

    def load_module(self, path: Union[str, Path]) -> ModuleType:
        """
        스크립트 파일을 모듈로 실행

        모듈은 sys.modules에 등록되지 않으므로 매번 새로 실행됩니다.
        스크립트 실행 중 발생한 모든 예외는 ScriptLoadException으로 변환됩니다.

        Args:
            path: 스크립트 파일 경로

        Returns:
            실행된 모듈

        Raises:
            ObjectSourceNotFoundException: 파일이 없을 때
            ScriptLoadException: 스크립트 실행 중 오류가 발생했을 때
        """
        path = canonical_path(path)

        if not os.path.isfile(path):
            raise ObjectSourceNotFoundException(path)

        module_name = "overlay_cache_script_" + hashlib.sha1(path.encode("utf-8")).hexdigest()[:16]
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ScriptLoadException(path, "모듈 명세를 만들 수 없습니다")

        module = importlib.util.module_from_spec(spec)
        try:
            # __pycache__ 바이트코드를 쓰거나 읽지 않고 매번 소스를 컴파일
            with open(path, "rb") as f:
                code = compile(f.read(), path, "exec")
            exec(code, module.__dict__)
        except Exception as e:
            self.logger.error(f"스크립트 실행 오류: {path} - {e}")
            raise ScriptLoadException(path, f"{type(e).__name__}: {e}") from e

        self.logger.debug(f"스크립트 모듈 로드 완료: {path}")
        return module

    def load_objects(self, path: Union[str, Path], **params: Any) -> list[ScriptObject]:
        """
        스크립트가 선언한 모든 객체 로드

        Args:
            path: 스크립트 파일 경로
            **params: 각 객체의 params에 병합할 매개변수

        Returns:
            선언 순서대로 정렬된 객체 목록 (선언이 없으면 빈 목록)

        Raises:
            ObjectSourceNotFoundException: 파일이 없을 때
            UnknownCategoryException: 선언되지 않은 카테고리의 객체가 있을 때
            ScriptLoadException: 실행 실패 또는 카테고리 모델 불일치
        """
        path = canonical_path(path)
        module = self.load_module(path)

        objects = []
        seen = set()
        for value in vars(module).values():
            if not isinstance(value, ScriptObject) or id(value) in seen:
                continue
            seen.add(id(value))

            definition = self.categories.get(value.category)
            if not isinstance(value, definition.object_model):
                raise ScriptLoadException(
                    path,
                    f"'{value.name}' 객체는 {definition.object_model.__name__} 타입이어야 합니다"
                )

            update: dict[str, Any] = {"object_path": path}
            if params:
                update["params"] = {**value.params, **params}
            objects.append(value.model_copy(update=update))

        self.logger.debug(f"스크립트 객체 {len(objects)}개 로드: {path}")
        return objects

    def load_object(self, category: str, path: Union[str, Path], **params: Any) -> ScriptObject:
        """
        스크립트에서 특정 카테고리의 객체 로드

        Args:
            category: 카테고리 이름
            path: 스크립트 파일 경로
            **params: 객체에 전달할 매개변수

        Returns:
            해당 카테고리의 첫 번째 객체

        Raises:
            UnknownCategoryException: 선언되지 않은 카테고리일 때
            ObjectSourceNotFoundException: 파일이 없을 때
            ScriptLoadException: 해당 카테고리의 객체가 없을 때
        """
        if category not in self.categories:
            raise UnknownCategoryException(category)

        path = canonical_path(path)
        for obj in self.load_objects(path, **params):
            if obj.category == category:
                return obj

        raise ScriptLoadException(path, f"'{category}' 카테고리 객체가 선언되지 않았습니다")
