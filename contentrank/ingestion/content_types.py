"""Shared content data types.

Every source normalizes into `NormalizedItem`; storage hands back `ContentRecord`.
Metrics are a tagged variant: the metrics class always matches the content type.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union


class ContentType(str, Enum):
    VIDEO = "video"
    ARTICLE = "article"

    @property
    def coefficient(self) -> float:
        if self is ContentType.VIDEO:
            return 1.5
        return 1.0

    @classmethod
    def parse(cls, value: Any) -> "ContentType":
        """Parse a wire value ("video", " Article ") into a ContentType.

        Raises ValueError for anything outside the closed set.
        """
        if isinstance(value, cls):
            return value
        s = str(value or "").strip().lower()
        for ct in cls:
            if ct.value == s:
                return ct
        raise ValueError(f"unrecognized content type: {value!r}")


@dataclass(frozen=True)
class VideoMetrics:
    views: int = 0
    likes: int = 0
    duration: str = "0:00"


@dataclass(frozen=True)
class ArticleMetrics:
    reading_time: int = 0
    reactions: int = 0


Metrics = Union[VideoMetrics, ArticleMetrics]


def _as_count(value: Any, name: str) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError(f"metric {name} must be numeric")
    try:
        n = int(float(value))
    except (TypeError, ValueError):
        raise ValueError(f"metric {name} must be numeric, got {value!r}")
    if n < 0:
        raise ValueError(f"metric {name} must be >= 0")
    return n


def metrics_from_dict(content_type: ContentType, data: Optional[Mapping[str, Any]]) -> Metrics:
    """Build the metrics variant for `content_type`; unknown keys are ignored."""
    data = data or {}
    if content_type is ContentType.VIDEO:
        return VideoMetrics(
            views=_as_count(data.get("views"), "views"),
            likes=_as_count(data.get("likes"), "likes"),
            duration=str(data.get("duration") or "0:00"),
        )
    if content_type is ContentType.ARTICLE:
        return ArticleMetrics(
            reading_time=_as_count(data.get("reading_time"), "reading_time"),
            reactions=_as_count(data.get("reactions"), "reactions"),
        )
    raise ValueError(f"unsupported content type: {content_type!r}")


def metrics_to_dict(metrics: Metrics) -> Dict[str, Any]:
    return asdict(metrics)


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO-8601-ish timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        s = str(value or "").strip()
        if not s:
            raise ValueError("empty timestamp")
        s = s.replace("Z", "+00:00")
        if " " in s and "T" not in s:
            s = s.replace(" ", "T", 1)
        parsed = datetime.fromisoformat(s)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NormalizedItem:
    """Source-independent item, ready for dedup + persistence."""

    source_id: str
    title: str
    content_type: ContentType
    metrics: Metrics
    published_at: datetime
    source_name: str = "unknown"

    def __post_init__(self) -> None:
        if not self.source_id or not str(self.source_id).strip():
            raise ValueError("source_id is required")
        if not self.title or not str(self.title).strip():
            raise ValueError("title is required")
        expected = VideoMetrics if self.content_type is ContentType.VIDEO else ArticleMetrics
        if not isinstance(self.metrics, expected):
            raise ValueError(f"{self.content_type.value} item carries {type(self.metrics).__name__}")


@dataclass
class ContentRecord:
    """Canonical storage-resident content item."""

    id: int
    source_id: str
    title: str
    content_type: ContentType
    metrics: Metrics
    published_at: datetime
    score: Optional[float] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_scored(self) -> bool:
        return self.score is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": int(self.id),
            "source_id": self.source_id,
            "title": self.title,
            "type": self.content_type.value,
            "metrics": metrics_to_dict(self.metrics),
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "score": self.score,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
