"""Postgres-backed content store (psycopg + SQL)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import psycopg
from psycopg.types.json import Jsonb

from contentrank.ingestion.content_types import (
    ContentRecord,
    ContentType,
    NormalizedItem,
    metrics_from_dict,
    metrics_to_dict,
)
from contentrank.storage.content_store import ContentStore, StorageUnavailableError

logger = logging.getLogger(__name__)

_COLUMNS = "id, source_id, title, content_type, metrics, published_at, score, created_at, updated_at"


def _like_pattern(keyword: str) -> str:
    escaped = keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _filters(keyword: Optional[str], content_type: Optional[ContentType]) -> Tuple[str, List[Any]]:
    where = ["1=1"]
    params: List[Any] = []
    if keyword:
        where.append("title ILIKE %s ESCAPE '\\'")
        params.append(_like_pattern(keyword))
    if content_type is not None:
        where.append("content_type = %s")
        params.append(content_type.value)
    return " AND ".join(where), params


@dataclass
class PostgresContentStore(ContentStore):
    pg_dsn: str

    def _connect(self, **kwargs):
        try:
            return psycopg.connect(self.pg_dsn, **kwargs)
        except psycopg.OperationalError as e:
            raise StorageUnavailableError(f"cannot connect to Postgres: {e}") from e

    def get(self, content_id: int) -> Optional[ContentRecord]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM contents WHERE id = %s", (int(content_id),))
                row = cur.fetchone()
        return self._row_to_record(row) if row else None

    def get_by_source_id(self, source_id: str) -> Optional[ContentRecord]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM contents WHERE source_id = %s", (source_id,))
                row = cur.fetchone()
        return self._row_to_record(row) if row else None

    def insert(self, item: NormalizedItem) -> Optional[ContentRecord]:
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO contents (source_id, title, content_type, metrics, published_at)
                    VALUES (%(source_id)s, %(title)s, %(content_type)s, %(metrics)s, %(published_at)s)
                    ON CONFLICT (source_id) DO NOTHING
                    RETURNING {_COLUMNS}
                    """,
                    {
                        "source_id": item.source_id,
                        "title": item.title,
                        "content_type": item.content_type.value,
                        "metrics": Jsonb(metrics_to_dict(item.metrics)),
                        "published_at": item.published_at,
                    },
                )
                row = cur.fetchone()
        return self._row_to_record(row) if row else None

    def save_score(self, content_id: int, score: float) -> bool:
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE contents SET score = %s, updated_at = now() WHERE id = %s",
                    (float(score), int(content_id)),
                )
                return cur.rowcount > 0

    def search(self, *, keyword=None, content_type=None, page=1, page_size=10) -> List[ContentRecord]:
        where, params = _filters(keyword, content_type)
        offset = (max(1, int(page)) - 1) * int(page_size)
        sql = f"""
        SELECT {_COLUMNS}
        FROM contents
        WHERE {where}
        ORDER BY score DESC NULLS LAST, published_at DESC, id DESC
        LIMIT %s OFFSET %s
        """
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params + [int(page_size), offset])
                rows = cur.fetchall()
        return [self._row_to_record(row) for row in rows]

    def count(self, *, keyword=None, content_type=None) -> int:
        where, params = _filters(keyword, content_type)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT COUNT(*) FROM contents WHERE {where}", params)
                return int(cur.fetchone()[0] or 0)

    def list_unscored(self, *, limit: int = 500) -> List[int]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT id FROM contents WHERE score IS NULL ORDER BY id LIMIT %s",
                    (int(limit),),
                )
                return [int(r[0]) for r in cur.fetchall()]

    def delete(self, content_id: int) -> bool:
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM contents WHERE id = %s", (int(content_id),))
                return cur.rowcount > 0

    def _row_to_record(self, row) -> ContentRecord:
        # Row ordering matches _COLUMNS.
        (cid, source_id, title, content_type, metrics, published_at, score, created_at, updated_at) = row
        ct = ContentType.parse(content_type)
        return ContentRecord(
            id=int(cid),
            source_id=source_id,
            title=title,
            content_type=ct,
            metrics=metrics_from_dict(ct, metrics),
            published_at=published_at,
            score=float(score) if score is not None else None,
            created_at=created_at,
            updated_at=updated_at,
        )
