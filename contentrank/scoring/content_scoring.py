"""Deterministic content scoring.

final = round(base * type_coefficient + freshness + interaction, 2)

- base:        video  views/1000 + likes/100
               article reading_time + reactions/50
- freshness:   whole days since publication: <=7 -> 5, <=30 -> 3, <=90 -> 1, else 0
- interaction: video  likes / max(views, 1) * 10
               article reactions / max(reading_time, 1) * 5

Only the final value is rounded. The wall clock is used for the freshness
bucket alone; pass `now` to pin it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from contentrank.ingestion.content_types import ArticleMetrics, ContentRecord, Metrics, VideoMetrics


FRESHNESS_BUCKETS = (
    (7, 5),
    (30, 3),
    (90, 1),
)


def days_since(published_at: datetime, *, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    dt = published_at
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(abs((now - dt).total_seconds()) // 86400)


def freshness_score(published_at: datetime, *, now: Optional[datetime] = None) -> int:
    days = days_since(published_at, now=now)
    for max_days, points in FRESHNESS_BUCKETS:
        if days <= max_days:
            return points
    return 0


def base_score(metrics: Metrics) -> float:
    if isinstance(metrics, VideoMetrics):
        return metrics.views / 1000 + metrics.likes / 100
    if isinstance(metrics, ArticleMetrics):
        return metrics.reading_time + metrics.reactions / 50
    raise TypeError(f"unsupported metrics: {type(metrics).__name__}")


def interaction_score(metrics: Metrics) -> float:
    if isinstance(metrics, VideoMetrics):
        return (metrics.likes / max(metrics.views, 1)) * 10
    if isinstance(metrics, ArticleMetrics):
        return (metrics.reactions / max(metrics.reading_time, 1)) * 5
    raise TypeError(f"unsupported metrics: {type(metrics).__name__}")


@dataclass(frozen=True)
class ScoreBreakdown:
    base: float
    type_coefficient: float
    freshness: int
    interaction: float
    final: float


def score_breakdown(record: ContentRecord, *, now: Optional[datetime] = None) -> ScoreBreakdown:
    base = base_score(record.metrics)
    coef = record.content_type.coefficient
    fresh = freshness_score(record.published_at, now=now)
    inter = interaction_score(record.metrics)
    return ScoreBreakdown(
        base=base,
        type_coefficient=coef,
        freshness=fresh,
        interaction=inter,
        final=round(base * coef + fresh + inter, 2),
    )


def calculate_score(record: ContentRecord, *, now: Optional[datetime] = None) -> float:
    return score_breakdown(record, now=now).final
