"""Message handlers for scoring and scheduled ingestion."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from contentrank.ingestion.ingestor import IngestionStats, Ingestor
from contentrank.scoring.content_scoring import score_breakdown
from contentrank.storage.content_store import ContentStore
from contentrank.tasks.messages import DEFAULT_INGEST_LIMIT, IngestionRequested, ScoringRequested
from contentrank.tasks.task_queue import TaskQueue

logger = logging.getLogger(__name__)


class ScoreContentHandler:
    """Load the record, compute its score, write it back.

    Safe to run more than once per id: the score is recomputed and overwritten.
    A record that no longer exists is logged and the message dropped.
    """

    def __init__(self, store: ContentStore, *, clock: Optional[Callable] = None):
        self.store = store
        self.clock = clock

    def __call__(self, message: ScoringRequested) -> Optional[float]:
        record = self.store.get(message.content_id)
        if record is None:
            logger.error(f"Content not found for scoring content_id={message.content_id}; dropping message")
            return None

        now = self.clock() if self.clock else None
        b = score_breakdown(record, now=now)
        logger.debug(
            f"Score calculated content_id={record.id} type={record.content_type.value} base={round(b.base, 2)} "
            f"coef={b.type_coefficient} freshness={b.freshness} interaction={round(b.interaction, 2)} final={b.final}"
        )
        if not self.store.save_score(record.id, b.final):
            logger.error(f"Content disappeared before score was saved content_id={record.id}")
            return None
        logger.info(f"Score calculation completed content_id={record.id} score={b.final}")
        return b.final


class IngestContentHandler:
    def __init__(self, ingestor: Ingestor):
        self.ingestor = ingestor

    def __call__(self, message: IngestionRequested) -> IngestionStats:
        limit = message.limit or DEFAULT_INGEST_LIMIT
        logger.info(f"Scheduled content ingestion started limit={limit}")
        try:
            stats = self.ingestor.ingest(limit)
        except Exception as e:
            logger.error(f"Scheduled content ingestion failed: {e}")
            raise
        logger.info(
            f"Scheduled content ingestion completed ingested={stats.ingested} "
            f"skipped={stats.skipped} jobs_dispatched={stats.dispatched}"
        )
        return stats


def register_handlers(tasks: TaskQueue, *, store: ContentStore, ingestor: Optional[Ingestor] = None) -> None:
    tasks.register_handler(ScoringRequested, ScoreContentHandler(store))
    if ingestor is not None:
        tasks.register_handler(IngestionRequested, IngestContentHandler(ingestor))
