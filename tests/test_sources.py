import unittest
from datetime import datetime, timezone
from unittest import mock

import requests

from contentrank.ingestion.content_types import ArticleMetrics, ContentType, VideoMetrics
from contentrank.ingestion.sources import (
    JsonSource,
    RssSource,
    XmlSource,
    estimate_reading_time,
    parse_rss_feeds,
)


def _response(status=200, json_data=None, content=b"", json_error=None):
    resp = mock.Mock()
    resp.status_code = status
    resp.content = content
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = json_data
    return resp


JSON_PAYLOAD = {
    "items": [
        {
            "id": "v1",
            "title": "Intro to AI",
            "type": "video",
            "metrics": {"views": 5000, "likes": 200, "duration": "12:30"},
            "published_at": "2026-10-14T10:00:00Z",
        },
        {
            "id": 42,
            "title": "AI in practice",
            "type": "article",
            "metrics": {"reading_time": 10, "reactions": 25},
            "published_at": "2026-09-01 08:00:00",
        },
        {"id": "x1", "title": "Podcast", "type": "podcast", "published_at": "2026-10-01T00:00:00Z"},
        {"id": "x2", "type": "video", "published_at": "2026-10-01T00:00:00Z"},
        {"id": "x3", "title": "Bad date", "type": "video", "published_at": "yesterday"},
        "not-an-object",
    ]
}

XML_PAYLOAD = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed>
  <items>
    <item>
      <id>xv1</id>
      <headline>Deep learning talk</headline>
      <type>video</type>
      <publication_date>2026-10-10</publication_date>
      <stats><views>1500</views><likes>30</likes><duration>8:15</duration></stats>
    </item>
    <item>
      <id>xa1</id>
      <headline>Reading list</headline>
      <type>article</type>
      <publication_date>2026-08-20T09:30:00</publication_date>
      <stats><reading_time>7</reading_time><reactions>14</reactions></stats>
    </item>
    <item>
      <id>xa2</id>
      <headline>No stats</headline>
      <type>article</type>
      <publication_date>2026-08-21</publication_date>
    </item>
    <item>
      <id>broken</id>
      <type>video</type>
    </item>
    <item>
      <id>xq</id>
      <headline>Quiz</headline>
      <type>quiz</type>
      <publication_date>2026-08-21</publication_date>
    </item>
  </items>
</feed>
"""

RSS_PAYLOAD = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example</title>
    <link>https://example.com</link>
    <description>Example feed</description>
    <item>
      <title>First post</title>
      <link>https://example.com/first</link>
      <guid>https://example.com/first</guid>
      <description>short summary text</description>
      <pubDate>Wed, 14 Oct 2026 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Undated post</title>
      <link>https://example.com/undated</link>
    </item>
  </channel>
</rss>
"""


class TestJsonSource(unittest.TestCase):
    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_fetch_normalizes_valid_items_and_drops_invalid(self, get):
        get.return_value = _response(json_data=JSON_PAYLOAD)
        items = JsonSource(url="https://json.example/api").fetch(limit=30)

        self.assertEqual([i.source_id for i in items], ["v1", "42"])
        video, article = items
        self.assertEqual(video.content_type, ContentType.VIDEO)
        self.assertEqual(video.metrics, VideoMetrics(views=5000, likes=200, duration="12:30"))
        self.assertEqual(video.published_at, datetime(2026, 10, 14, 10, 0, tzinfo=timezone.utc))
        self.assertEqual(article.metrics, ArticleMetrics(reading_time=10, reactions=25))
        self.assertEqual(article.source_name, "json_provider")

        _, kwargs = get.call_args
        self.assertEqual(kwargs["params"], {"limit": 30})
        self.assertEqual(kwargs["timeout"], 10)

    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_bare_list_payload(self, get):
        get.return_value = _response(json_data=JSON_PAYLOAD["items"][:1])
        self.assertEqual(len(JsonSource(url="https://json.example/api").fetch()), 1)

    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_keyed_object_payload_without_items_envelope(self, get):
        get.return_value = _response(json_data={
            "first": JSON_PAYLOAD["items"][0],
            "second": JSON_PAYLOAD["items"][1],
            "total": 2,
        })
        items = JsonSource(url="https://json.example/api").fetch()
        self.assertEqual([i.source_id for i in items], ["v1", "42"])

    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_missing_metrics_default_to_zero(self, get):
        get.return_value = _response(json_data=[
            {"id": "a", "title": "T", "type": "article", "published_at": "2026-10-01T00:00:00Z"},
        ])
        items = JsonSource(url="https://json.example/api").fetch()
        self.assertEqual(items[0].metrics, ArticleMetrics(reading_time=0, reactions=0))

    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_non_200_returns_empty(self, get):
        get.return_value = _response(status=503)
        self.assertEqual(JsonSource(url="https://json.example/api").fetch(), [])

    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_timeout_returns_empty(self, get):
        get.side_effect = requests.Timeout("slow")
        self.assertEqual(JsonSource(url="https://json.example/api").fetch(), [])

    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_transport_error_returns_empty(self, get):
        get.side_effect = requests.ConnectionError("refused")
        self.assertEqual(JsonSource(url="https://json.example/api").fetch(), [])

    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_malformed_json_returns_empty(self, get):
        get.return_value = _response(json_error=ValueError("Expecting value"))
        self.assertEqual(JsonSource(url="https://json.example/api").fetch(), [])

    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_unexpected_shape_returns_empty(self, get):
        get.return_value = _response(json_data="nope")
        self.assertEqual(JsonSource(url="https://json.example/api").fetch(), [])


class TestXmlSource(unittest.TestCase):
    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_fetch_parses_items(self, get):
        get.return_value = _response(content=XML_PAYLOAD)
        items = XmlSource(url="https://xml.example/feed").fetch(limit=5)

        self.assertEqual([i.source_id for i in items], ["xv1", "xa1", "xa2"])
        self.assertEqual(items[0].metrics, VideoMetrics(views=1500, likes=30, duration="8:15"))
        self.assertEqual(items[0].title, "Deep learning talk")
        self.assertEqual(items[1].metrics, ArticleMetrics(reading_time=7, reactions=14))
        self.assertEqual(items[2].metrics, ArticleMetrics(reading_time=0, reactions=0))
        self.assertEqual(items[1].published_at.tzinfo, timezone.utc)

    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_malformed_xml_returns_empty(self, get):
        get.return_value = _response(content=b"<items><item>")
        self.assertEqual(XmlSource(url="https://xml.example/feed").fetch(), [])

    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_non_200_returns_empty(self, get):
        get.return_value = _response(status=404, content=XML_PAYLOAD)
        self.assertEqual(XmlSource(url="https://xml.example/feed").fetch(), [])


class TestRssSource(unittest.TestCase):
    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_entries_become_articles(self, get):
        get.return_value = _response(content=RSS_PAYLOAD)
        items = RssSource(feeds=[("Example", "https://example.com/rss")]).fetch(limit=10)

        self.assertEqual(len(items), 1)
        item = items[0]
        self.assertEqual(item.source_id, "https://example.com/first")
        self.assertEqual(item.content_type, ContentType.ARTICLE)
        self.assertEqual(item.metrics, ArticleMetrics(reading_time=1, reactions=0))
        self.assertEqual(item.published_at, datetime(2026, 10, 14, 10, 0, tzinfo=timezone.utc))
        self.assertEqual(item.source_name, "Example")

    @mock.patch("contentrank.ingestion.sources.requests.get")
    def test_failing_feed_is_skipped(self, get):
        get.side_effect = [requests.ConnectionError("down"), _response(content=RSS_PAYLOAD)]
        feeds = [("Down", "https://down.example/rss"), ("Example", "https://example.com/rss")]
        items = RssSource(feeds=feeds).fetch(limit=10)
        self.assertEqual([i.source_name for i in items], ["Example"])

    def test_reading_time_estimate(self):
        self.assertEqual(estimate_reading_time(None), 1)
        self.assertEqual(estimate_reading_time("word " * 1000), 5)

    def test_parse_rss_feeds(self):
        feeds = parse_rss_feeds("BBC=https://bbc.example/rss, https://plain.example/rss ,")
        self.assertEqual(feeds, [("BBC", "https://bbc.example/rss"), ("https://plain.example/rss", "https://plain.example/rss")])


if __name__ == "__main__":
    unittest.main()
