"""Search query path: cache lookup, storage fallback, cache populate."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional, Union

from contentrank.cache.search_cache import BoundedSearchCache, make_cache_key
from contentrank.ingestion.content_types import ContentType
from contentrank.storage.content_store import ContentStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class SearchService:
    def __init__(self, store: ContentStore, cache: Optional[BoundedSearchCache] = None):
        self.store = store
        self.cache = cache

    def search(
        self,
        keyword: Optional[str] = None,
        content_type: Union[ContentType, str, None] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Dict[str, Any]:
        """Return {"data": [...], "meta": {page, limit, total, total_pages}}.

        `content_type` must already be validated by the caller; an unknown
        value raises ValueError. A broken cache never fails the search.
        """
        ct = ContentType.parse(content_type) if content_type else None
        kw = (keyword or "").strip() or None
        page = max(1, int(page))
        page_size = max(1, int(page_size))

        key = make_cache_key(kw, ct.value if ct else None, page, page_size)
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        records = self.store.search(keyword=kw, content_type=ct, page=page, page_size=page_size)
        total = self.store.count(keyword=kw, content_type=ct)
        result = {
            "data": [r.to_dict() for r in records],
            "meta": {
                "page": page,
                "limit": page_size,
                "total": total,
                "total_pages": int(math.ceil(total / page_size)),
            },
        }
        self._cache_set(key, result)
        return result

    def _cache_get(self, key: str) -> Optional[Dict[str, Any]]:
        if self.cache is None:
            return None
        try:
            return self.cache.get(key)
        except Exception as e:
            logger.warning(f"Search cache read failed; treating as miss: {e}")
            return None

    def _cache_set(self, key: str, result: Dict[str, Any]) -> None:
        if self.cache is None:
            return
        try:
            self.cache.set(key, result)
        except Exception as e:
            logger.warning(f"Search cache write failed; serving uncached result: {e}")
