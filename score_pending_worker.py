#!/usr/bin/env python3
"""Re-queue scoring for records whose score is still NULL.

Covers scoring requests that were dropped or exhausted their retries.
Scoring is idempotent, so overlapping with live workers is harmless.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv

from contentrank.config import Settings
from contentrank.storage.content_store import ContentStore
from contentrank.storage.postgres_contents import PostgresContentStore
from contentrank.storage.postgres_schema import ensure_postgres_schema
from contentrank.tasks.handlers import register_handlers
from contentrank.tasks.messages import ScoringRequested
from contentrank.tasks.task_queue import TaskQueue

logger = logging.getLogger(__name__)


def score_pending(store: ContentStore, tasks: TaskQueue, *, batch_size: int = 500) -> int:
    ids = store.list_unscored(limit=batch_size)
    for cid in ids:
        tasks.enqueue(ScoringRequested(content_id=cid))
    logger.info(f"Queued scoring for {len(ids)} unscored records")
    return len(ids)


def main(store: Optional[ContentStore] = None) -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    settings = Settings.from_env()
    if store is None:
        ensure_postgres_schema(settings.pg_dsn)
        store = PostgresContentStore(settings.pg_dsn)
    batch_size = int(os.environ.get("SCORE_PENDING_BATCH", "500"))

    tasks = TaskQueue(workers=settings.scoring_workers)
    register_handlers(tasks, store=store)
    queued = score_pending(store, tasks, batch_size=batch_size)
    tasks.start()
    tasks.stop()
    print(f"[score] queued={queued} handled={tasks.processed} failed={tasks.failed}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
