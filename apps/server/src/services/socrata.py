from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from config import settings
from services.normalizers import isoformat_utc, parse_timestamp, resolve_field, text_or_none, to_number
from services.timed_cache import TimedCache
from services.water_models import StationInfo, StationPayload, build_measurements

logger = logging.getLogger("waterlab.server.socrata")


class FetchError(RuntimeError):
    """Raised when an upstream source answers with something unusable."""


class NoTimestampError(FetchError):
    """Raised when none of the upstream records carries a parseable timestamp."""


@dataclass(frozen=True, slots=True)
class SocrataSource:
    station_id: str
    name: str
    water_body: str | None
    canton: str | None
    dataset: str


# Basel stations with a live dataset on opendata.bs.ch.
SOCRATA_SOURCES: Dict[str, SocrataSource] = {
    "2106": SocrataSource(
        station_id="2106",
        name="Birs / Hofmatt",
        water_body="Birs",
        canton="BS",
        dataset="100236",
    ),
}


class SocrataClient:
    def __init__(
        self,
        cache: TimedCache[StationPayload],
        *,
        sources: Dict[str, SocrataSource] | None = None,
        base_url: str | None = None,
    ) -> None:
        self._cache = cache
        self._sources = dict(SOCRATA_SOURCES if sources is None else sources)
        self._base_url = (base_url or settings.socrata_base_url).rstrip("/")
        self._client: Optional[httpx.AsyncClient] = None
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def sources(self) -> Dict[str, SocrataSource]:
        return dict(self._sources)

    def dataset_url(self, source: SocrataSource) -> str:
        return f"{self._base_url}/{source.dataset}/records"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "User-Agent": settings.socrata_user_agent,
                "Accept": "application/json",
            }
            self._client = httpx.AsyncClient(headers=headers, timeout=settings.socrata_request_timeout)
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def clear(self) -> None:
        self._cache.clear()
        self._locks.clear()

    async def fetch_station_data(self, station_id: str) -> Optional[StationPayload]:
        source = self._sources.get(station_id)
        if source is None:
            return None
        cached = self._cache.get(station_id)
        if cached is not None:
            return cached
        # One upstream request per station while the cache is cold.
        lock = self._locks.setdefault(station_id, asyncio.Lock())
        async with lock:
            return await self._cache.get_or_load_async(station_id, lambda: self._fetch(source))

    async def _fetch(self, source: SocrataSource) -> StationPayload:
        client = await self._get_client()
        url = self.dataset_url(source)
        logger.debug("Fetching Socrata dataset %s for station %s", url, source.station_id)
        response = await client.get(url, params={"limit": settings.socrata_record_limit})
        if not response.is_success:
            raise FetchError(f"Socrata endpoint responded with {response.status_code}")
        try:
            body = response.json()
        except ValueError as exc:
            raise FetchError("Socrata endpoint returned invalid JSON") from exc

        records = body.get("records") if isinstance(body, dict) else None
        if not isinstance(records, list):
            raise FetchError("Unexpected Socrata JSON format")
        if not records:
            raise FetchError("Socrata dataset returned no records")

        latest_fields, latest_ts = self._latest_record(records)
        return self._to_payload(source, latest_fields, latest_ts)

    @staticmethod
    def _record_fields(item: Any) -> Dict[str, Any]:
        if not isinstance(item, dict):
            return {}
        record = item.get("record")
        fields = record.get("fields") if isinstance(record, dict) else None
        return fields if isinstance(fields, dict) else {}

    def _latest_record(self, records: list[Any]) -> tuple[Dict[str, Any], datetime]:
        latest_fields: Dict[str, Any] | None = None
        latest_ts: datetime | None = None
        for item in records:
            fields = self._record_fields(item)
            ts = parse_timestamp(resolve_field(fields, "timestamp"))
            if ts is None:
                continue
            if latest_ts is None or ts > latest_ts:
                latest_fields = fields
                latest_ts = ts
        if latest_fields is None or latest_ts is None:
            raise NoTimestampError("Socrata dataset did not include parsable timestamps")
        return latest_fields, latest_ts

    @staticmethod
    def _to_payload(source: SocrataSource, fields: Dict[str, Any], timestamp: datetime) -> StationPayload:
        measurements = build_measurements(
            source.station_id,
            to_number(resolve_field(fields, "temperature")),
            to_number(resolve_field(fields, "discharge")),
            to_number(resolve_field(fields, "water_level")),
            isoformat_utc(timestamp),
        )
        station = StationInfo(
            id=source.station_id,
            name=text_or_none(resolve_field(fields, "station_name")) or source.name,
            water_body=text_or_none(resolve_field(fields, "water_body")) or source.water_body,
            canton=text_or_none(resolve_field(fields, "canton")) or source.canton,
        )
        return StationPayload(station=station, measurements=measurements, raw=dict(fields))


socrata_client = SocrataClient(TimedCache(settings.socrata_cache_ttl))

__all__ = [
    "FetchError",
    "NoTimestampError",
    "SOCRATA_SOURCES",
    "SocrataClient",
    "SocrataSource",
    "socrata_client",
]
