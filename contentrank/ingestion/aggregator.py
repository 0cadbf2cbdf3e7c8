"""Concurrent fan-out over every configured source."""

from __future__ import annotations

import concurrent.futures
import logging
import time
from typing import List, Optional, Sequence

from contentrank.ingestion.content_types import NormalizedItem
from contentrank.ingestion.sources import BaseSource

logger = logging.getLogger(__name__)


class SourceAggregator:
    """Runs every source in its own thread and merges results in arrival order.

    A source that raises, times out or returns nothing contributes zero items;
    the others are unaffected. There is no retry within a run.
    """

    def __init__(self, sources: Sequence[BaseSource], *, max_workers: Optional[int] = None, timeout: Optional[float] = None):
        self.sources = list(sources)
        self.max_workers = max_workers
        # Upper bound on the whole fan-in; each source also enforces its own request timeout.
        self.timeout = timeout

    def fetch_all(self, limit: int = 30) -> List[NormalizedItem]:
        if not self.sources:
            logger.warning("No sources configured; nothing to fetch")
            return []
        start = time.monotonic()
        logger.info(f"Starting parallel source fetch sources={len(self.sources)} limit_per_source={limit}")

        merged: List[NormalizedItem] = []
        workers = self.max_workers or len(self.sources)
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix="source")
        try:
            future_to_source = {executor.submit(self._fetch_one, src, limit): src for src in self.sources}
            try:
                for future in concurrent.futures.as_completed(future_to_source, timeout=self.timeout):
                    src = future_to_source[future]
                    try:
                        items = future.result()
                    except Exception as e:
                        logger.error(f"Source fetch failed source={src.name} error={e}")
                        continue
                    merged.extend(items)
            except concurrent.futures.TimeoutError:
                pending = [future_to_source[f].name for f in future_to_source if not f.done()]
                logger.error(f"Source fetch exceeded {self.timeout}s; dropping pending sources={pending}")
        finally:
            # Stragglers past the deadline are abandoned.
            executor.shutdown(wait=False, cancel_futures=True)

        logger.info(f"All sources fetched total_items={len(merged)} duration_ms={round((time.monotonic() - start) * 1000, 2)}")
        return merged

    @staticmethod
    def _fetch_one(source: BaseSource, limit: int) -> List[NormalizedItem]:
        start = time.monotonic()
        items = source.fetch(limit=limit) or []
        logger.info(
            f"Source fetch completed source={source.name} count={len(items)} "
            f"duration_ms={round((time.monotonic() - start) * 1000, 2)}"
        )
        return list(items)
