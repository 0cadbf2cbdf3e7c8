import threading
import time
import unittest
from datetime import datetime, timezone
from unittest import mock

from contentrank.config import Settings
from contentrank.ingestion.aggregator import SourceAggregator
from contentrank.ingestion.content_types import ArticleMetrics, ContentType, NormalizedItem
from contentrank.ingestion.sources import BaseSource


def _item(source_id):
    return NormalizedItem(
        source_id=source_id,
        title=f"Title {source_id}",
        content_type=ContentType.ARTICLE,
        metrics=ArticleMetrics(reading_time=3, reactions=1),
        published_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
    )


class StaticSource(BaseSource):
    def __init__(self, name, ids, barrier=None, delay=0.0):
        self.name = name
        self.ids = ids
        self.barrier = barrier
        self.delay = delay
        self.limits = []

    def fetch(self, *, limit=30):
        self.limits.append(limit)
        if self.barrier is not None:
            self.barrier.wait()
        if self.delay:
            time.sleep(self.delay)
        return [_item(i) for i in self.ids]


class BrokenSource(BaseSource):
    name = "broken"

    def fetch(self, *, limit=30):
        raise RuntimeError("provider exploded")


class TestSourceAggregator(unittest.TestCase):
    def test_merges_all_sources(self):
        a = StaticSource("a", ["a1", "a2"])
        b = StaticSource("b", ["b1"])
        items = SourceAggregator([a, b]).fetch_all(limit=7)
        self.assertEqual(sorted(i.source_id for i in items), ["a1", "a2", "b1"])
        self.assertEqual(a.limits, [7])
        self.assertEqual(b.limits, [7])

    def test_sources_run_concurrently(self):
        # Each source blocks until the other has started; a sequential loop would break the barrier.
        barrier = threading.Barrier(2, timeout=5)
        a = StaticSource("a", ["a1"], barrier=barrier)
        b = StaticSource("b", ["b1"], barrier=barrier)
        items = SourceAggregator([a, b]).fetch_all()
        self.assertEqual(sorted(i.source_id for i in items), ["a1", "b1"])

    def test_failing_source_is_isolated(self):
        good = StaticSource("good", ["g1", "g2"])
        items = SourceAggregator([BrokenSource(), good]).fetch_all()
        self.assertEqual(sorted(i.source_id for i in items), ["g1", "g2"])

    def test_empty_source_contributes_nothing(self):
        items = SourceAggregator([StaticSource("empty", []), StaticSource("one", ["x"])]).fetch_all()
        self.assertEqual([i.source_id for i in items], ["x"])

    def test_no_sources(self):
        self.assertEqual(SourceAggregator([]).fetch_all(), [])

    def test_overall_deadline_drops_slow_source(self):
        fast = StaticSource("fast", ["f1"])
        slow = StaticSource("slow", ["s1"], delay=1.0)
        items = SourceAggregator([fast, slow], timeout=0.3).fetch_all()
        self.assertEqual([i.source_id for i in items], ["f1"])


FEED_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel><title>{name}</title>
<item><guid>{url}/1</guid><title>{name} story</title>
<pubDate>Wed, 14 Oct 2026 10:00:00 GMT</pubDate><description>short</description></item>
</channel></rss>"""


class TestRssFeedFanOut(unittest.TestCase):
    def test_slow_healthy_feeds_all_arrive_within_deadline(self):
        settings = Settings(
            rss_feeds=[(f"F{i}", f"https://feed{i}.example/rss") for i in range(4)],
            source_timeout=1.0,
        )

        def slow_get(url, **kwargs):
            time.sleep(0.4)
            resp = mock.Mock()
            resp.status_code = 200
            resp.content = FEED_TEMPLATE.format(name=url.split("//")[1], url=url).encode("utf-8")
            return resp

        with mock.patch("contentrank.ingestion.sources.requests.get", side_effect=slow_get):
            items = SourceAggregator(settings.build_sources(), timeout=settings.source_timeout).fetch_all()
        self.assertEqual(len(items), 4)
        self.assertEqual(len({i.source_id for i in items}), 4)


if __name__ == "__main__":
    unittest.main()
