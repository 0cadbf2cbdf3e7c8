"""Postgres schema management for ContentRank.

Schema creation is idempotent (CREATE IF NOT EXISTS).
"""

from __future__ import annotations

from typing import Iterable, Optional

import psycopg


SCHEMA_STATEMENTS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS contents (
      id BIGSERIAL PRIMARY KEY,
      source_id TEXT NOT NULL UNIQUE,
      title TEXT NOT NULL,
      content_type TEXT NOT NULL CHECK (content_type IN ('video', 'article')),
      metrics JSONB NOT NULL DEFAULT '{}'::jsonb,
      published_at TIMESTAMPTZ NOT NULL,
      score DOUBLE PRECISION,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_contents_content_type ON contents (content_type);",
    "CREATE INDEX IF NOT EXISTS idx_contents_score ON contents (score DESC NULLS LAST);",
    "CREATE INDEX IF NOT EXISTS idx_contents_published_at ON contents (published_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_contents_unscored ON contents (id) WHERE score IS NULL;",
]


def ensure_postgres_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)
