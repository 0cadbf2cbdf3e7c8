#!/usr/bin/env python3
"""Content ingestion worker.

Runs one ingestion cycle (INGEST_MODE=once) or a daily scheduled cycle
(INGEST_MODE=scheduled, at INGEST_AT) over every configured source:
- JSON endpoint (JSON_SOURCE_URL)
- XML feed (XML_SOURCE_URL)
- RSS feeds (RSS_FEEDS)

New records are stored unscored and a scoring request is queued for each;
the scoring handlers run on the same process's task workers.

`--now` sends an IngestionRequested through the task queue straight away,
the same message the daily schedule sends.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List, Optional, Tuple

import schedule
from dotenv import load_dotenv

from contentrank.config import Settings
from contentrank.ingestion.aggregator import SourceAggregator
from contentrank.ingestion.ingestor import IngestionStats, Ingestor
from contentrank.storage.content_store import ContentStore
from contentrank.storage.postgres_contents import PostgresContentStore
from contentrank.storage.postgres_schema import ensure_postgres_schema
from contentrank.tasks.handlers import register_handlers
from contentrank.tasks.messages import IngestionRequested
from contentrank.tasks.task_queue import TaskQueue

logger = logging.getLogger(__name__)


def build_pipeline(settings: Settings, store: Optional[ContentStore] = None) -> Tuple[Ingestor, TaskQueue]:
    if store is None:
        ensure_postgres_schema(settings.pg_dsn)
        store = PostgresContentStore(settings.pg_dsn)
    tasks = TaskQueue(workers=settings.scoring_workers)
    aggregator = SourceAggregator(settings.build_sources(), timeout=settings.source_timeout * 3)
    ingestor = Ingestor(aggregator, store, tasks)
    register_handlers(tasks, store=store, ingestor=ingestor)
    return ingestor, tasks


def format_summary(stats: IngestionStats) -> str:
    rows = [
        ("Ingested", stats.ingested),
        ("Skipped (already exists)", stats.skipped),
        ("Scoring jobs dispatched", stats.dispatched),
    ]
    width = max(len(name) for name, _ in rows)
    return "\n".join(f"{name.ljust(width)}  {count}" for name, count in rows)


def run_once(settings: Settings, store: Optional[ContentStore] = None) -> IngestionStats:
    ingestor, tasks = build_pipeline(settings, store)
    stats = ingestor.ingest(settings.ingest_limit)
    scored = tasks.drain()
    print(format_summary(stats))
    print(f"[ingest] scoring handled={scored} failed={tasks.failed}")
    return stats


def trigger_now(settings: Settings, store: Optional[ContentStore] = None) -> Tuple[int, int]:
    """Dispatch one IngestionRequested and handle it, plus the scoring it queues."""
    _, tasks = build_pipeline(settings, store)
    tasks.enqueue(IngestionRequested(limit=settings.ingest_limit))
    logger.info(f"Ingestion message dispatched limit={settings.ingest_limit}")
    handled = tasks.drain()
    print(f"[ingest] triggered handled={handled} failed={tasks.failed}")
    return handled, tasks.failed


def run_scheduled(settings: Settings, *, run_now: bool = False) -> None:
    _, tasks = build_pipeline(settings)
    tasks.start()
    message = IngestionRequested(limit=settings.ingest_limit)
    if run_now:
        tasks.enqueue(message)
    schedule.every().day.at(settings.ingest_at).do(tasks.enqueue, message)
    logger.info(f"Scheduled daily ingestion at {settings.ingest_at} limit={settings.ingest_limit}")
    try:
        while True:
            schedule.run_pending()
            time.sleep(5)
    finally:
        tasks.stop(timeout=30)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Content ingestion worker")
    parser.add_argument("--now", action="store_true", help="Dispatch an ingestion message immediately")
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = Settings.from_env()
    if settings.ingest_mode in ("scheduled", "daemon"):
        run_scheduled(settings, run_now=args.now)
        return 0
    try:
        if args.now:
            _, failed = trigger_now(settings)
            return 1 if failed else 0
        run_once(settings)
    except Exception as e:
        logger.error(f"Ingestion failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
