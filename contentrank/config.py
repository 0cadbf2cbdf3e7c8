"""Environment-driven configuration."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import List, Tuple

from contentrank.ingestion.sources import BaseSource, JsonSource, RssSource, XmlSource, parse_rss_feeds

DEFAULT_PG_DSN = "dbname=contentrank user=contentrank password=contentrank host=localhost port=5432"
DEFAULT_CORS_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")


def _split_csv(value):
    return [part.strip() for part in (value or "").split(",") if part.strip()]


@dataclass
class Settings:
    pg_dsn: str = DEFAULT_PG_DSN
    json_source_url: str = ""
    xml_source_url: str = ""
    rss_feeds: List[Tuple[str, str]] = field(default_factory=list)
    source_timeout: float = 10.0
    ingest_limit: int = 30
    ingest_mode: str = "once"
    ingest_at: str = "02:00"
    scoring_workers: int = 2
    search_cache_ttl: float = 3600.0
    api_rate_limit: str = "100 per hour"
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @classmethod
    def from_env(cls) -> "Settings":
        """Load and validate settings from environment variables."""
        settings = cls(
            pg_dsn=os.getenv("PG_DSN", DEFAULT_PG_DSN),
            json_source_url=os.getenv("JSON_SOURCE_URL", "").strip(),
            xml_source_url=os.getenv("XML_SOURCE_URL", "").strip(),
            rss_feeds=parse_rss_feeds(os.getenv("RSS_FEEDS", "")),
            source_timeout=float(os.getenv("SOURCE_TIMEOUT", "10")),
            ingest_limit=int(os.getenv("INGEST_LIMIT", "30")),
            ingest_mode=(os.getenv("INGEST_MODE") or "once").lower().strip(),
            ingest_at=os.getenv("INGEST_AT", "02:00").strip(),
            scoring_workers=int(os.getenv("SCORING_WORKERS", "2")),
            search_cache_ttl=float(os.getenv("SEARCH_CACHE_TTL", "3600")),
            api_rate_limit=os.getenv("API_RATE_LIMIT", "100 per hour").strip(),
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS")) or list(DEFAULT_CORS_ORIGINS),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        errors = []
        if not self.pg_dsn:
            errors.append("PG_DSN is required")
        for name, url in (("JSON_SOURCE_URL", self.json_source_url), ("XML_SOURCE_URL", self.xml_source_url)):
            if url and not url.startswith(("http://", "https://")):
                errors.append(f"{name} must be an http(s) URL")
        for feed_name, url in self.rss_feeds:
            if not url.startswith(("http://", "https://")):
                errors.append(f"RSS feed {feed_name!r} must be an http(s) URL")
        if self.source_timeout < 1 or self.source_timeout > 120:
            errors.append("SOURCE_TIMEOUT should be between 1 and 120 seconds")
        if self.ingest_limit < 1 or self.ingest_limit > 500:
            errors.append("INGEST_LIMIT should be between 1 and 500")
        if self.ingest_mode not in ("once", "scheduled", "daemon"):
            errors.append("INGEST_MODE should be 'once' or 'scheduled'")
        if not re.fullmatch(r"([01]\d|2[0-3]):[0-5]\d", self.ingest_at):
            errors.append("INGEST_AT should be HH:MM (24h)")
        if self.scoring_workers < 1 or self.scoring_workers > 32:
            errors.append("SCORING_WORKERS should be between 1 and 32")
        if self.search_cache_ttl <= 0:
            errors.append("SEARCH_CACHE_TTL must be positive")
        for origin in self.cors_origins:
            if origin != "*" and not origin.startswith(("http://", "https://")):
                errors.append(f"CORS origin {origin!r} must be an http(s) origin or *")
        if errors:
            raise ValueError("Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

    def build_sources(self) -> List[BaseSource]:
        sources: List[BaseSource] = []
        if self.json_source_url:
            sources.append(JsonSource(url=self.json_source_url, timeout=self.source_timeout))
        if self.xml_source_url:
            sources.append(XmlSource(url=self.xml_source_url, timeout=self.source_timeout))
        # One source per feed so each feed is its own task under the fan-out deadline.
        for feed_name, feed_url in self.rss_feeds:
            sources.append(
                RssSource(feeds=((feed_name, feed_url),), timeout=self.source_timeout, name=f"rss:{feed_name}")
            )
        return sources
