from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient
from httpx import Response

from api.dependencies import get_news_aggregator
from config import NewsFeedConfig
from services.news import FeedParseError, NewsAggregator, WaterNewsArticle, combine_articles, parse_feed
from services.timed_cache import TimedCache

RSS_URL = "https://news.example.org/rss.xml"
ATOM_URL = "https://atom.example.org/feed"

RSS_BODY = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>Water news</title>
    <item>
      <title>Older story</title>
      <link>https://news.example.org/older</link>
      <pubDate>Mon, 03 Jun 2024 08:00:00 GMT</pubDate>
      <description>&lt;p&gt;Rivers &amp;amp; lakes&lt;/p&gt;</description>
      <media:thumbnail url="/images/older.jpg" />
    </item>
    <item>
      <title>Newer story</title>
      <link>https://news.example.org/newer</link>
      <pubDate>Tue, 04 Jun 2024 08:00:00 GMT</pubDate>
      <enclosure url="https://cdn.example.org/newer.jpg" type="image/jpeg" />
    </item>
    <item>
      <link>https://news.example.org/undated</link>
    </item>
  </channel>
</rss>
"""

ATOM_BODY = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom water</title>
  <entry>
    <title>Atom story</title>
    <link href="https://atom.example.org/story" rel="alternate" />
    <updated>2024-06-05T09:30:00Z</updated>
    <summary>Glacier melt</summary>
  </entry>
  <entry>
    <title>Duplicate</title>
    <link href="https://news.example.org/newer" />
    <updated>2024-06-06T09:30:00Z</updated>
  </entry>
</feed>
"""


def _article(link: str, date: str | None) -> WaterNewsArticle:
    return WaterNewsArticle(title=link, link=link, date=date, summary="", source="test", image=None)


def test_parse_rss_feed_items() -> None:
    articles = parse_feed(RSS_BODY, NewsFeedConfig(url=RSS_URL, source="Example"))

    assert [a.title for a in articles] == ["Older story", "Newer story", "Untitled article"]
    older = articles[0]
    assert older.summary == "Rivers & lakes"
    assert older.date == "2024-06-03T08:00:00.000Z"
    assert older.image == "https://news.example.org/images/older.jpg"
    assert older.source == "Example"
    assert articles[1].image == "https://cdn.example.org/newer.jpg"
    assert articles[2].date is None


def test_parse_atom_feed_entries() -> None:
    articles = parse_feed(ATOM_BODY, NewsFeedConfig(url=ATOM_URL, source="Atom"))

    assert articles[0].link == "https://atom.example.org/story"
    assert articles[0].date == "2024-06-05T09:30:00.000Z"
    assert articles[0].summary == "Glacier melt"


def test_parse_feed_rejects_non_feed_documents() -> None:
    with pytest.raises(FeedParseError):
        parse_feed("<html><body/></html>", NewsFeedConfig(url=RSS_URL, source="Example"))
    with pytest.raises(FeedParseError):
        parse_feed("not xml", NewsFeedConfig(url=RSS_URL, source="Example"))


def test_combine_articles_dedupes_sorts_and_truncates() -> None:
    first = [_article("a", "2024-06-01T00:00:00Z"), _article("b", None), _article("c", "2024-06-03T00:00:00Z")]
    second = [_article("a", "2024-06-09T00:00:00Z"), _article("d", "2024-06-02T00:00:00Z")]

    combined = combine_articles([first, second], limit=3)

    assert [a.link for a in combined] == ["c", "d", "a"]
    assert combined[2].date == "2024-06-01T00:00:00Z"


@pytest.mark.anyio
async def test_aggregator_tolerates_failing_feed_and_caches(respx_mock) -> None:
    rss_route = respx_mock.get(RSS_URL).mock(return_value=Response(200, text=RSS_BODY))
    atom_route = respx_mock.get(ATOM_URL).mock(side_effect=httpx.ConnectError("offline"))
    aggregator = NewsAggregator(
        TimedCache(600),
        feeds=[NewsFeedConfig(url=RSS_URL, source="Example"), NewsFeedConfig(url=ATOM_URL, source="Atom")],
        max_articles=8,
    )
    try:
        articles = await aggregator.latest()
        again = await aggregator.latest()
    finally:
        await aggregator.close()

    assert [a.link for a in articles] == [
        "https://news.example.org/newer",
        "https://news.example.org/older",
        "https://news.example.org/undated",
    ]
    assert again is articles
    assert rss_route.call_count == 1
    assert atom_route.call_count == 1


@pytest.mark.anyio
async def test_aggregator_retries_when_nothing_was_fetched(respx_mock) -> None:
    route = respx_mock.get(RSS_URL).mock(side_effect=[Response(503), Response(200, text=RSS_BODY)])
    aggregator = NewsAggregator(TimedCache(600), feeds=[NewsFeedConfig(url=RSS_URL, source="Example")])
    try:
        assert await aggregator.latest() == []
        assert len(await aggregator.latest()) == 3
    finally:
        await aggregator.close()
    assert route.call_count == 2


def test_news_endpoint_returns_articles(app, client: TestClient, respx_mock) -> None:
    respx_mock.get(RSS_URL).mock(return_value=Response(200, text=RSS_BODY))
    respx_mock.get(ATOM_URL).mock(return_value=Response(200, text=ATOM_BODY))
    aggregator = NewsAggregator(
        TimedCache(600),
        feeds=[NewsFeedConfig(url=RSS_URL, source="Example"), NewsFeedConfig(url=ATOM_URL, source="Atom")],
        max_articles=3,
    )
    app.dependency_overrides[get_news_aggregator] = lambda: aggregator

    response = client.get("/api/news")

    assert response.status_code == 200
    payload = response.json()
    assert [item["link"] for item in payload] == [
        "https://atom.example.org/story",
        "https://news.example.org/newer",
        "https://news.example.org/older",
    ]
    assert payload[0]["source"] == "Atom"
    assert payload[1]["source"] == "Example"
    assert set(payload[0]) == {"title", "link", "date", "summary", "source", "image"}


def test_news_endpoint_reports_failures(app, client: TestClient) -> None:
    class _Broken:
        async def latest(self):
            raise RuntimeError("parser crashed")

    app.dependency_overrides[get_news_aggregator] = lambda: _Broken()

    response = client.get("/api/news")

    assert response.status_code == 500
    assert response.json() == {"detail": "Unable to fetch water news"}
