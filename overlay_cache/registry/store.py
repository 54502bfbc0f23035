"""
객체 레지스트리 모듈

(카테고리, 정규 경로)를 키로 하는 객체 레코드를 SQLite에 영속 저장합니다.

Usage::

    registry = ObjectRegistry("~/.overlay_cache/registry.db")
    registry.declare(CategoryDefinition(name="exploit"))

    record = registry.register("exploit", "/ov/exploits/a.py")
    record.object_timestamp = os.stat(record.object_path).st_mtime
    registry.persist(record)

    for record in registry.find_by_prefix("/ov"):
        ...
"""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from ..exceptions import RegistryException, UnknownCategoryException
from ..models.base import CategoryDefinition
from ..models.record import ObjectRecord
from ..utils.helpers import canonical_path, directory_prefix
from ..utils.logging import get_logger
from .categories import CategoryTable

logger = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS objects (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    category         TEXT    NOT NULL,
    object_path      TEXT    NOT NULL,
    object_timestamp REAL,
    metadata         TEXT    NOT NULL DEFAULT '{}',
    UNIQUE (category, object_path)
);
CREATE INDEX IF NOT EXISTS idx_objects_path ON objects (object_path);
"""

# 디렉토리 자신 또는 세그먼트 경계 접두사로 시작하는 경로
_UNDER_DIRECTORY = "(object_path = ? OR substr(object_path, 1, length(?)) = ?)"


class ObjectRegistry:
    """
    객체 레코드의 영속 저장소

    레코드 조회/저장/삭제는 호출마다 새 연결을 사용하므로 여러 스레드에서
    안전하게 호출할 수 있으며, 자체 캐시 계층이 없어 변경은 즉시 이후
    조회에 반영됩니다.
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        categories: Optional[Union[CategoryTable, Iterable[CategoryDefinition]]] = None
    ):
        """
        레지스트리 초기화

        Args:
            db_path: SQLite 파일 경로
            categories: 공유 카테고리 테이블 또는 초기 카테고리 정의 목록
        """
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logger
        if isinstance(categories, CategoryTable):
            self.category_table = categories
        else:
            self.category_table = CategoryTable(categories)

        self._ensure_schema()

    # ── 내부 헬퍼 ──────────────────────────────────────────────────────────

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            self.logger.error(f"레지스트리 쿼리 실패: {e}")
            raise RegistryException(str(e)) from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        """테이블이 없으면 생성"""
        with self._connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(_SCHEMA)

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> ObjectRecord:
        record = ObjectRecord(
            id=row["id"],
            category=row["category"],
            object_path=row["object_path"],
            object_timestamp=row["object_timestamp"],
            metadata=json.loads(row["metadata"] or "{}"),
        )
        record.mark_clean()
        return record

    def _require_category(self, category: str) -> None:
        if category not in self.category_table:
            raise UnknownCategoryException(category)

    # ── 카테고리 테이블 ────────────────────────────────────────────────────

    def declare(self, definition: CategoryDefinition) -> None:
        """카테고리를 레지스트리에 선언"""
        self.category_table.declare(definition)
        self.logger.debug(f"카테고리 선언: {definition.name}")

    def is_declared(self, category: str) -> bool:
        return category in self.category_table

    def get_definition(self, category: str) -> CategoryDefinition:
        return self.category_table.get(category)

    @property
    def categories(self) -> list[str]:
        """선언된 카테고리 이름 목록 (선언 순서)"""
        return self.category_table.names

    # ── 레코드 CRUD ────────────────────────────────────────────────────────

    def register(self, category: str, path: Union[str, Path]) -> ObjectRecord:
        """
        레코드 등록

        (카테고리, 경로) 레코드가 없으면 타임스탬프 없이 새로 만들고,
        있으면 기존 레코드를 반환합니다.

        Raises:
            UnknownCategoryException: 선언되지 않은 카테고리일 때
        """
        self._require_category(category)
        path = canonical_path(path)

        with self._connection() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO objects (category, object_path) VALUES (?, ?)",
                (category, path),
            )
            row = conn.execute(
                "SELECT * FROM objects WHERE category=? AND object_path=?",
                (category, path),
            ).fetchone()

        return self._row_to_record(row)

    def find(self, category: str, path: Union[str, Path]) -> Optional[ObjectRecord]:
        """
        (카테고리, 경로)로 레코드 조회

        Returns:
            ObjectRecord, 없으면 None
        """
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM objects WHERE category=? AND object_path=?",
                (category, canonical_path(path)),
            ).fetchone()
        return self._row_to_record(row) if row else None

    def find_by_path(self, path: Union[str, Path]) -> list[ObjectRecord]:
        """모든 카테고리에서 정확히 해당 경로의 레코드 조회"""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM objects WHERE object_path=? ORDER BY category",
                (canonical_path(path),),
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def find_by_prefix(
        self,
        directory: Union[str, Path],
        category: Optional[str] = None
    ) -> list[ObjectRecord]:
        """
        디렉토리 하위의 레코드 조회

        경로 세그먼트 단위로 비교하므로 '/ov'는 '/ovx/a.py'와 일치하지 않습니다.

        Args:
            directory: 기준 디렉토리
            category: 특정 카테고리로 제한 (None이면 전체)

        Returns:
            일치하는 레코드 목록
        """
        directory = canonical_path(directory)
        prefix = directory_prefix(directory)
        query = f"SELECT * FROM objects WHERE {_UNDER_DIRECTORY}"
        params: list = [directory, prefix, prefix]

        if category is not None:
            query += " AND category=?"
            params.append(category)

        with self._connection() as conn:
            rows = conn.execute(query + " ORDER BY object_path", params).fetchall()
        return [self._row_to_record(r) for r in rows]

    def persist(self, record: ObjectRecord) -> ObjectRecord:
        """
        레코드 저장 (생성 또는 갱신)

        (카테고리, 경로)가 이미 존재하면 갱신하므로 중복 레코드가 생기지 않습니다.

        Raises:
            UnknownCategoryException: 선언되지 않은 카테고리일 때
        """
        self._require_category(record.category)
        record.object_path = canonical_path(record.object_path)

        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO objects (category, object_path, object_timestamp, metadata)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (category, object_path) DO UPDATE SET
                    object_timestamp = excluded.object_timestamp,
                    metadata = excluded.metadata
                """,
                (
                    record.category,
                    record.object_path,
                    record.object_timestamp,
                    json.dumps(record.metadata, ensure_ascii=False),
                ),
            )
            row = conn.execute(
                "SELECT id FROM objects WHERE category=? AND object_path=?",
                (record.category, record.object_path),
            ).fetchone()

        record.id = row["id"]
        record.mark_clean()
        return record

    def delete(self, record: ObjectRecord) -> bool:
        """
        레코드 삭제

        Returns:
            삭제되었으면 True, 이미 없었으면 False
        """
        with self._connection() as conn:
            cur = conn.execute(
                "DELETE FROM objects WHERE category=? AND object_path=?",
                (record.category, canonical_path(record.object_path)),
            )
            deleted = cur.rowcount > 0

        record.id = None
        return deleted

    def delete_by_prefix(
        self,
        directory: Union[str, Path],
        category: Optional[str] = None
    ) -> int:
        """
        디렉토리 하위 레코드 일괄 삭제

        Returns:
            삭제된 레코드 수
        """
        directory = canonical_path(directory)
        prefix = directory_prefix(directory)
        query = f"DELETE FROM objects WHERE {_UNDER_DIRECTORY}"
        params: list = [directory, prefix, prefix]

        if category is not None:
            query += " AND category=?"
            params.append(category)

        with self._connection() as conn:
            cur = conn.execute(query, params)
            return cur.rowcount

    def all(self, category: Optional[str] = None) -> list[ObjectRecord]:
        """전체 (또는 카테고리별) 레코드 조회"""
        with self._connection() as conn:
            if category is None:
                rows = conn.execute(
                    "SELECT * FROM objects ORDER BY category, object_path"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM objects WHERE category=? ORDER BY object_path",
                    (category,),
                ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def search(self, category: Optional[str] = None, **metadata: str) -> list[ObjectRecord]:
        """
        메타데이터로 레코드 검색

        Args:
            category: 카테고리 (None이면 전체)
            **metadata: 일치해야 하는 메타데이터 값 (name, version, author)

        Returns:
            모든 조건과 일치하는 레코드 목록
        """
        return [
            record for record in self.all(category)
            if all(record.metadata.get(key) == value for key, value in metadata.items())
        ]

    def count(self, category: Optional[str] = None) -> int:
        with self._connection() as conn:
            if category is None:
                row = conn.execute("SELECT COUNT(*) AS n FROM objects").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM objects WHERE category=?", (category,)
                ).fetchone()
        return row["n"]
