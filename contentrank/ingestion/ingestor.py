"""Ingestion: fetch from every source, dedup by source_id, persist, request scoring."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict

from contentrank.ingestion.aggregator import SourceAggregator
from contentrank.storage.content_store import ContentStore, StorageUnavailableError
from contentrank.tasks.messages import DEFAULT_INGEST_LIMIT, ScoringRequested
from contentrank.tasks.task_queue import TaskQueue

logger = logging.getLogger(__name__)


@dataclass
class IngestionStats:
    ingested: int = 0
    skipped: int = 0
    dispatched: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


class Ingestor:
    """Idempotent ingestion run.

    Re-running over overlapping source data only ever adds unseen source_ids.
    Per-item failures are logged and counted as skipped; only an unreachable
    store aborts the run.
    """

    def __init__(self, aggregator: SourceAggregator, store: ContentStore, tasks: TaskQueue):
        self.aggregator = aggregator
        self.store = store
        self.tasks = tasks

    def ingest(self, limit: int = DEFAULT_INGEST_LIMIT) -> IngestionStats:
        logger.info(f"Starting content ingestion limit={limit}")
        items = self.aggregator.fetch_all(limit)
        stats = IngestionStats()

        for item in items:
            try:
                if self.store.get_by_source_id(item.source_id) is not None:
                    stats.skipped += 1
                    continue
                record = self.store.insert(item)
                if record is None:
                    # Lost a race with a concurrent insert of the same source_id.
                    stats.skipped += 1
                    continue
            except StorageUnavailableError:
                logger.error(f"Storage unavailable; aborting ingestion after {stats.as_dict()}")
                raise
            except Exception as e:
                logger.error(f"Failed to ingest content source_id={item.source_id}: {e}")
                stats.skipped += 1
                continue

            stats.ingested += 1
            logger.info(f"Content ingested content_id={record.id} source_id={record.source_id} title={record.title!r}")
            try:
                self.tasks.enqueue(ScoringRequested(content_id=record.id))
            except Exception as e:
                # The record stays unscored until the pending-score sweep picks it up.
                logger.error(f"Failed to dispatch scoring content_id={record.id}: {e}")
                continue
            stats.dispatched += 1

        logger.info(f"Ingestion completed {stats.as_dict()}")
        return stats
