"""Content sources (one per external wire format).

Each source fetches with a bounded timeout and normalizes into NormalizedItem.
A source never raises to its caller: transport errors, non-200 responses and
malformed payloads are logged and yield an empty list. Items that fail
validation are dropped one at a time.
"""

from __future__ import annotations

import logging
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import feedparser
import requests
from jsonschema import Draft202012Validator

from contentrank.ingestion.content_types import (
    ArticleMetrics,
    ContentType,
    NormalizedItem,
    metrics_from_dict,
    parse_datetime,
)

logger = logging.getLogger(__name__)

USER_AGENT = "ContentRank/1.0"
DEFAULT_TIMEOUT = 10


JSON_ITEM_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["id", "title", "type", "published_at"],
    "properties": {
        "id": {"type": ["string", "integer"]},
        "title": {"type": "string", "minLength": 1},
        "type": {"type": "string", "enum": [ct.value for ct in ContentType]},
        "published_at": {"type": "string", "minLength": 1},
        "metrics": {"type": ["object", "null"]},
    },
    "additionalProperties": True,
}

_json_item_validator = Draft202012Validator(JSON_ITEM_SCHEMA)


class BaseSource:
    name: str = "base"

    def fetch(self, *, limit: int = 30) -> List[NormalizedItem]:
        raise NotImplementedError


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)


def _get(url: str, *, limit: int, timeout: float, accept: str) -> Optional[requests.Response]:
    resp = requests.get(
        url,
        params={"limit": limit},
        headers={"Accept": accept, "User-Agent": USER_AGENT},
        timeout=timeout,
    )
    if resp.status_code != 200:
        logger.error(f"Source returned non-200 status {resp.status_code} for {url}")
        return None
    return resp


@dataclass(frozen=True)
class JsonSource(BaseSource):
    """JSON endpoint returning a list of items, {"items": [...]} or {key: item}."""

    url: str
    timeout: float = DEFAULT_TIMEOUT
    name: str = "json_provider"

    def fetch(self, *, limit: int = 30) -> List[NormalizedItem]:
        start = time.monotonic()
        logger.info(f"[{self.name}] fetching url={self.url} limit={limit}")
        try:
            resp = _get(self.url, limit=limit, timeout=self.timeout, accept="application/json")
            if resp is None:
                return []
            data = resp.json()
        except requests.Timeout:
            logger.error(f"[{self.name}] timed out after {self.timeout}s: {self.url}")
            return []
        except requests.RequestException as e:
            logger.error(f"[{self.name}] transport error: {e}")
            return []
        except ValueError as e:
            logger.error(f"[{self.name}] malformed JSON payload: {e}")
            return []

        if isinstance(data, dict):
            # {"items": [...]} envelope, otherwise a keyed collection of items
            items = data.get("items")
            data = items if items is not None else list(data.values())
        if not isinstance(data, list):
            logger.error(f"[{self.name}] unexpected payload shape: {type(data).__name__}")
            return []

        out = self.transform(data)
        logger.info(f"[{self.name}] fetch completed count={len(out)} duration_ms={_elapsed_ms(start)}")
        return out

    def transform(self, raw_items: Iterable[Any]) -> List[NormalizedItem]:
        out: List[NormalizedItem] = []
        for raw in raw_items:
            errors = sorted(_json_item_validator.iter_errors(raw), key=lambda e: list(e.path))
            if errors:
                logger.warning(f"[{self.name}] dropping invalid item: {errors[0].message}")
                continue
            try:
                content_type = ContentType.parse(raw["type"])
                out.append(
                    NormalizedItem(
                        source_id=str(raw["id"]).strip(),
                        title=str(raw["title"]).strip(),
                        content_type=content_type,
                        metrics=metrics_from_dict(content_type, raw.get("metrics")),
                        published_at=parse_datetime(raw["published_at"]),
                        source_name=self.name,
                    )
                )
            except ValueError as e:
                logger.warning(f"[{self.name}] failed to transform item id={raw.get('id')!r}: {e}")
        return out


def _text(node: Optional[ET.Element]) -> Optional[str]:
    if node is None or node.text is None:
        return None
    s = node.text.strip()
    return s or None


@dataclass(frozen=True)
class XmlSource(BaseSource):
    """XML feed of <item> elements (id, headline, type, publication_date, stats)."""

    url: str
    timeout: float = DEFAULT_TIMEOUT
    name: str = "xml_provider"

    def fetch(self, *, limit: int = 30) -> List[NormalizedItem]:
        start = time.monotonic()
        logger.info(f"[{self.name}] fetching url={self.url} limit={limit}")
        try:
            resp = _get(self.url, limit=limit, timeout=self.timeout, accept="application/xml, text/xml")
            if resp is None:
                return []
            root = ET.fromstring(resp.content)
        except requests.Timeout:
            logger.error(f"[{self.name}] timed out after {self.timeout}s: {self.url}")
            return []
        except requests.RequestException as e:
            logger.error(f"[{self.name}] transport error: {e}")
            return []
        except ET.ParseError as e:
            logger.error(f"[{self.name}] malformed XML payload: {e}")
            return []

        out = self.transform(root)
        logger.info(f"[{self.name}] fetch completed count={len(out)} duration_ms={_elapsed_ms(start)}")
        return out

    def transform(self, root: ET.Element) -> List[NormalizedItem]:
        items = [root] if root.tag == "item" else root.iter("item")
        out: List[NormalizedItem] = []
        for item in items:
            source_id = _text(item.find("id"))
            title = _text(item.find("headline"))
            raw_type = _text(item.find("type"))
            published = _text(item.find("publication_date"))
            if not (source_id and title and raw_type and published):
                logger.warning(f"[{self.name}] dropping item missing required fields (id={source_id!r})")
                continue
            try:
                content_type = ContentType.parse(raw_type)
                stats = item.find("stats")
                raw_metrics: Dict[str, Any] = {}
                if stats is not None:
                    for child in stats:
                        raw_metrics[child.tag] = _text(child)
                out.append(
                    NormalizedItem(
                        source_id=source_id,
                        title=title,
                        content_type=content_type,
                        metrics=metrics_from_dict(content_type, raw_metrics),
                        published_at=parse_datetime(published),
                        source_name=self.name,
                    )
                )
            except ValueError as e:
                logger.warning(f"[{self.name}] failed to transform item id={source_id!r}: {e}")
        return out


WORDS_PER_MINUTE = 200


def estimate_reading_time(text: Optional[str]) -> int:
    words = len((text or "").split())
    return max(1, round(words / WORDS_PER_MINUTE))


@dataclass(frozen=True)
class RssSource(BaseSource):
    """RSS/Atom feeds; every entry becomes an Article."""

    feeds: Sequence[Tuple[str, str]]  # (feed_name, feed_url)
    timeout: float = DEFAULT_TIMEOUT
    name: str = "rss"

    def fetch(self, *, limit: int = 30) -> List[NormalizedItem]:
        start = time.monotonic()
        out: List[NormalizedItem] = []
        for feed_name, feed_url in self.feeds:
            try:
                resp = requests.get(feed_url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout)
            except requests.RequestException as e:
                logger.error(f"[{self.name}] {feed_name} transport error: {e}")
                continue
            if resp.status_code != 200:
                logger.error(f"[{self.name}] {feed_name} returned non-200 status {resp.status_code}")
                continue
            parsed = feedparser.parse(resp.content)
            if parsed.bozo and not parsed.entries:
                logger.error(f"[{self.name}] {feed_name} malformed feed: {parsed.get('bozo_exception')}")
                continue
            for entry in (parsed.entries or [])[: max(0, limit)]:
                item = self._entry_to_item(entry, feed_name)
                if item is not None:
                    out.append(item)
                if len(out) >= limit:
                    break
            if len(out) >= limit:
                break
        logger.info(f"[{self.name}] fetch completed count={len(out)} duration_ms={_elapsed_ms(start)}")
        return out

    def _entry_to_item(self, entry: Any, feed_name: str) -> Optional[NormalizedItem]:
        source_id = entry.get("id") or entry.get("link")
        title = entry.get("title")
        published = entry.get("published") or entry.get("updated")
        if not source_id or not title or not published:
            logger.warning(f"[{self.name}] {feed_name} dropping entry missing required fields")
            return None
        try:
            # feedparser already parsed the date into a UTC struct_time
            parsed_time = entry.get("published_parsed") or entry.get("updated_parsed")
            if parsed_time:
                published_at = parse_datetime(time.strftime("%Y-%m-%dT%H:%M:%S", parsed_time))
            else:
                published_at = parse_datetime(published)
            return NormalizedItem(
                source_id=str(source_id).strip(),
                title=str(title).strip(),
                content_type=ContentType.ARTICLE,
                metrics=ArticleMetrics(reading_time=estimate_reading_time(entry.get("summary")), reactions=0),
                published_at=published_at,
                source_name=feed_name,
            )
        except ValueError as e:
            logger.warning(f"[{self.name}] {feed_name} failed to transform entry {source_id!r}: {e}")
            return None


def parse_rss_feeds(value: Optional[str]) -> List[Tuple[str, str]]:
    """Parse "Name=https://a/rss,Other=https://b/rss" into (name, url) pairs."""
    feeds: List[Tuple[str, str]] = []
    for part in (value or "").split(","):
        part = part.strip()
        if not part:
            continue
        name, sep, url = part.partition("=")
        name, url = name.strip(), url.strip()
        # "=" inside a bare URL's query string is not a name separator
        if not sep or name.startswith(("http://", "https://")):
            name, url = part, part
        if url:
            feeds.append((name or url, url))
    return feeds
