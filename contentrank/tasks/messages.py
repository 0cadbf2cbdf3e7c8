"""Typed task messages."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_INGEST_LIMIT = 30


@dataclass(frozen=True)
class ScoringRequested:
    content_id: int


@dataclass(frozen=True)
class IngestionRequested:
    limit: int = DEFAULT_INGEST_LIMIT
