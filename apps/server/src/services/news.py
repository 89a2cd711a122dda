from __future__ import annotations

import asyncio
import html
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urljoin, urlsplit

import httpx

from config import NewsFeedConfig, settings
from services.normalizers import isoformat_utc, parse_timestamp
from services.timed_cache import TimedCache

logger = logging.getLogger("waterlab.server.news")

ATOM_NS = "{http://www.w3.org/2005/Atom}"
MEDIA_NS = "{http://search.yahoo.com/mrss/}"
CONTENT_NS = "{http://purl.org/rss/1.0/modules/content/}"
_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")
_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)
_CACHE_KEY = "news"


class FeedParseError(ValueError):
    """Raised when a feed body is neither RSS 2.0 nor Atom."""


@dataclass(slots=True)
class WaterNewsArticle:
    title: str
    link: str
    date: Optional[str]
    summary: str
    source: str
    image: Optional[str]

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)


def _text(element: Optional[ET.Element]) -> Optional[str]:
    if element is None or element.text is None:
        return None
    value = element.text.strip()
    return value or None


def _plain_text(markup: Optional[str]) -> str:
    if not markup:
        return ""
    stripped = _TAG_RE.sub(" ", markup)
    return _SPACE_RE.sub(" ", html.unescape(stripped)).strip()


def _parse_feed_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        parsed = None
    if parsed is None:
        return parse_timestamp(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _normalize_date(value: Optional[str]) -> Optional[str]:
    parsed = _parse_feed_date(value)
    if parsed is not None:
        return isoformat_utc(parsed)
    return value


def _absolute_url(candidate: Optional[str], article_link: str) -> Optional[str]:
    if not candidate:
        return None
    trimmed = candidate.strip()
    if not trimmed:
        return None
    if trimmed.startswith(("http://", "https://")):
        return trimmed
    parts = urlsplit(article_link)
    if not parts.scheme or not parts.netloc:
        return None
    return urljoin(f"{parts.scheme}://{parts.netloc}", trimmed)


def _media_url(item: ET.Element, article_link: str) -> Optional[str]:
    candidates = [
        *(el.get("url") for el in item.findall("enclosure")),
        *(el.get("url") for el in item.findall(f"{MEDIA_NS}content")),
        *(el.get("url") for el in item.findall(f"{MEDIA_NS}thumbnail")),
        *(el.get("href") for el in item.findall(f"{ATOM_NS}link") if el.get("rel") == "enclosure"),
    ]
    for candidate in candidates:
        normalized = _absolute_url(candidate, article_link)
        if normalized:
            return normalized
    return None


def parse_feed(body: str | bytes, feed: NewsFeedConfig) -> List[WaterNewsArticle]:
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise FeedParseError(f"Feed {feed.url} is not valid XML: {exc}") from exc

    articles: List[WaterNewsArticle] = []
    if root.tag == f"{ATOM_NS}feed":
        for entry in root.findall(f"{ATOM_NS}entry"):
            link_el = next(
                (el for el in entry.findall(f"{ATOM_NS}link") if el.get("rel") in (None, "alternate")),
                None,
            )
            link = (link_el.get("href") if link_el is not None else None) or feed.url
            summary = _text(entry.find(f"{ATOM_NS}summary")) or _text(entry.find(f"{ATOM_NS}content"))
            articles.append(
                WaterNewsArticle(
                    title=_text(entry.find(f"{ATOM_NS}title")) or "Untitled article",
                    link=link,
                    date=_normalize_date(
                        _text(entry.find(f"{ATOM_NS}updated")) or _text(entry.find(f"{ATOM_NS}published"))
                    ),
                    summary=_plain_text(summary),
                    source=feed.source,
                    image=_media_url(entry, link),
                )
            )
        return articles

    channel = root.find("channel")
    if root.tag != "rss" or channel is None:
        raise FeedParseError(f"Feed {feed.url} is neither RSS nor Atom")
    for item in channel.findall("item"):
        link = _text(item.find("link")) or feed.url
        summary = _text(item.find("description")) or _text(item.find(f"{CONTENT_NS}encoded"))
        articles.append(
            WaterNewsArticle(
                title=_text(item.find("title")) or "Untitled article",
                link=link,
                date=_normalize_date(_text(item.find("pubDate"))),
                summary=_plain_text(summary),
                source=feed.source,
                image=_media_url(item, link),
            )
        )
    return articles


def _sort_key(article: WaterNewsArticle) -> datetime:
    return _parse_feed_date(article.date) or _EPOCH


def combine_articles(batches: Sequence[Sequence[WaterNewsArticle]], limit: int) -> List[WaterNewsArticle]:
    """Dedupe by link (first occurrence wins), newest first, at most ``limit`` entries."""
    seen: set[str] = set()
    unique: List[WaterNewsArticle] = []
    for batch in batches:
        for article in batch:
            if article.link in seen:
                continue
            seen.add(article.link)
            unique.append(article)
    unique.sort(key=_sort_key, reverse=True)
    return unique[:limit]


class NewsAggregator:
    def __init__(
        self,
        cache: TimedCache[List[WaterNewsArticle]],
        *,
        feeds: Sequence[NewsFeedConfig] | None = None,
        max_articles: int | None = None,
    ) -> None:
        self._cache = cache
        self._feeds = list(settings.news_feeds if feeds is None else feeds)
        self._max_articles = max_articles or settings.news_max_articles
        self._client: Optional[httpx.AsyncClient] = None
        self._lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "User-Agent": settings.news_user_agent,
                "Accept": "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8",
            }
            self._client = httpx.AsyncClient(
                headers=headers,
                timeout=settings.news_request_timeout,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def clear(self) -> None:
        self._cache.clear()

    async def latest(self) -> List[WaterNewsArticle]:
        cached = self._cache.get(_CACHE_KEY)
        if cached is not None:
            return cached
        async with self._lock:
            return await self._cache.get_or_load_async(_CACHE_KEY, self._collect)

    async def _fetch_feed(self, feed: NewsFeedConfig) -> List[WaterNewsArticle]:
        client = await self._get_client()
        response = await client.get(feed.url)
        response.raise_for_status()
        return parse_feed(response.content, feed)

    async def _collect(self) -> List[WaterNewsArticle]:
        results = await asyncio.gather(
            *(self._fetch_feed(feed) for feed in self._feeds),
            return_exceptions=True,
        )
        batches: List[List[WaterNewsArticle]] = []
        for feed, result in zip(self._feeds, results):
            if isinstance(result, BaseException):
                logger.warning("News source failed (%s): %s", feed.source, result)
                continue
            logger.info("Fetched %d items from %s", len(result), feed.source)
            batches.append(result)

        articles = combine_articles(batches, self._max_articles)
        if not articles:
            logger.warning("No news articles available from configured sources.")
        return articles


news_aggregator = NewsAggregator(TimedCache(settings.news_cache_ttl))

__all__ = [
    "FeedParseError",
    "NewsAggregator",
    "WaterNewsArticle",
    "combine_articles",
    "news_aggregator",
    "parse_feed",
]
