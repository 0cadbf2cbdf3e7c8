"""In-process content store (local runs and tests)."""

from __future__ import annotations

import dataclasses
import itertools
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from contentrank.ingestion.content_types import ContentRecord, ContentType, NormalizedItem, utcnow
from contentrank.storage.content_store import ContentStore

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _matches(rec: ContentRecord, keyword: Optional[str], content_type: Optional[ContentType]) -> bool:
    if keyword and keyword.lower() not in rec.title.lower():
        return False
    if content_type is not None and rec.content_type is not content_type:
        return False
    return True


class InMemoryContentStore(ContentStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[int, ContentRecord] = {}
        self._by_source: Dict[str, int] = {}
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def get(self, content_id: int) -> Optional[ContentRecord]:
        with self._lock:
            rec = self._records.get(int(content_id))
            return dataclasses.replace(rec) if rec else None

    def get_by_source_id(self, source_id: str) -> Optional[ContentRecord]:
        with self._lock:
            cid = self._by_source.get(source_id)
            return dataclasses.replace(self._records[cid]) if cid is not None else None

    def insert(self, item: NormalizedItem) -> Optional[ContentRecord]:
        with self._lock:
            if item.source_id in self._by_source:
                return None
            now = utcnow()
            rec = ContentRecord(
                id=next(self._ids),
                source_id=item.source_id,
                title=item.title,
                content_type=item.content_type,
                metrics=item.metrics,
                published_at=item.published_at,
                score=None,
                created_at=now,
                updated_at=now,
            )
            self._records[rec.id] = rec
            self._by_source[rec.source_id] = rec.id
            return dataclasses.replace(rec)

    def save_score(self, content_id: int, score: float) -> bool:
        with self._lock:
            rec = self._records.get(int(content_id))
            if rec is None:
                return False
            self._records[rec.id] = dataclasses.replace(rec, score=float(score), updated_at=utcnow())
            return True

    def search(self, *, keyword=None, content_type=None, page=1, page_size=10) -> List[ContentRecord]:
        with self._lock:
            hits = [r for r in self._records.values() if _matches(r, keyword, content_type)]
        # score DESC with NULL last, then published_at DESC, then id DESC (two stable passes)
        hits.sort(key=lambda r: (r.published_at or _EPOCH, r.id), reverse=True)
        hits.sort(key=lambda r: (r.score is not None, r.score or 0.0), reverse=True)
        offset = (max(1, page) - 1) * page_size
        return [dataclasses.replace(r) for r in hits[offset: offset + page_size]]

    def count(self, *, keyword=None, content_type=None) -> int:
        with self._lock:
            return sum(1 for r in self._records.values() if _matches(r, keyword, content_type))

    def list_unscored(self, *, limit: int = 500) -> List[int]:
        with self._lock:
            ids = sorted(cid for cid, r in self._records.items() if r.score is None)
        return ids[:limit]

    def delete(self, content_id: int) -> bool:
        with self._lock:
            rec = self._records.pop(int(content_id), None)
            if rec is None:
                return False
            self._by_source.pop(rec.source_id, None)
            return True
