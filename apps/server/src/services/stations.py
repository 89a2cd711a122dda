from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Sequence, Union

from services.foen import FoenClient, foen_client
from services.local_snapshot import LocalSnapshot, local_snapshot
from services.socrata import SocrataClient, socrata_client
from services.water_models import StationPayload, StationSummary

logger = logging.getLogger("waterlab.server.stations")

SOURCE_FOEN = "foen"
SOURCE_SOCRATA = "opendata.bs.ch"
SOURCE_SNAPSHOT = "local-snapshot"
SOURCE_DEFAULT = "default"

# Stations always exposed, regardless of upstream availability.
DEFAULT_STATIONS: tuple[tuple[str, str], ...] = (
    ("2061", "Zürich / Limmat"),
    ("2141", "Bern / Aare"),
    ("2155", "Thun / Aare"),
    ("2325", "Luzern / Reuss"),
    ("2409", "Basel / Rhein"),
)

ProviderFetch = Callable[[str], Union[Optional[StationPayload], Awaitable[Optional[StationPayload]]]]


@dataclass(frozen=True, slots=True)
class StationProvider:
    label: str
    fetch: ProviderFetch


@dataclass(frozen=True, slots=True)
class SourceResult:
    label: str
    status: Literal["ok", "empty", "failed"]
    payload: Optional[StationPayload] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


async def attempt(provider: StationProvider, station_id: str) -> SourceResult:
    try:
        result: Any = provider.fetch(station_id)
        if inspect.isawaitable(result):
            result = await result
    except Exception as exc:  # noqa: BLE001 - logged by first_non_empty
        return SourceResult(label=provider.label, status="failed", error=exc)
    if result is None or not result.measurements:
        return SourceResult(label=provider.label, status="empty")
    return SourceResult(label=provider.label, status="ok", payload=result.with_source(provider.label))


async def first_non_empty(providers: Sequence[StationProvider], station_id: str) -> Optional[SourceResult]:
    """Try providers one after another and return the first with measurements."""
    for provider in providers:
        result = await attempt(provider, station_id)
        if result.ok:
            return result
        if result.status == "failed":
            logger.warning("%s source unavailable for station %s: %s", provider.label, station_id, result.error)
        else:
            logger.debug("%s source has no data for station %s", provider.label, station_id)
    return None


class StationReconciler:
    def __init__(
        self,
        providers: Sequence[StationProvider],
        *,
        snapshot: LocalSnapshot,
        socrata: SocrataClient,
        defaults: Sequence[tuple[str, str]] = DEFAULT_STATIONS,
    ) -> None:
        self._providers = list(providers)
        self._snapshot = snapshot
        self._socrata = socrata
        self._defaults = list(defaults)

    @property
    def providers(self) -> List[StationProvider]:
        return list(self._providers)

    async def resolve(self, station_id: str) -> Optional[StationPayload]:
        result = await first_non_empty(self._providers, station_id)
        if result is None:
            return None
        logger.info("Responding with %s for station %s", result.label, station_id)
        return result.payload

    def list_stations(self) -> List[StationSummary]:
        stations: Dict[str, StationSummary] = {}
        for station_id, name in self._defaults:
            stations[station_id] = StationSummary(id=station_id, name=name, source=SOURCE_DEFAULT)

        for source in self._socrata.sources.values():
            stations[source.station_id] = StationSummary(
                id=source.station_id,
                name=source.name,
                source=SOURCE_SOCRATA,
            )

        for entry in self._snapshot.load():
            station_id = str(entry.get("station_id") or "").strip()
            if not station_id:
                continue
            csv_name = str(entry.get("station_name") or "").strip()
            existing = stations.get(station_id)
            if existing is None:
                stations[station_id] = StationSummary(
                    id=station_id,
                    name=csv_name or station_id,
                    source=SOURCE_SNAPSHOT,
                )
            elif not existing.name and csv_name:
                existing.name = csv_name

        return list(stations.values())


def default_providers(
    foen: FoenClient,
    socrata: SocrataClient,
    snapshot: LocalSnapshot,
) -> List[StationProvider]:
    return [
        StationProvider(SOURCE_FOEN, foen.fetch_station_data),
        StationProvider(SOURCE_SOCRATA, socrata.fetch_station_data),
        StationProvider(SOURCE_SNAPSHOT, snapshot.station_data),
    ]


station_reconciler = StationReconciler(
    default_providers(foen_client, socrata_client, local_snapshot),
    snapshot=local_snapshot,
    socrata=socrata_client,
)

__all__ = [
    "DEFAULT_STATIONS",
    "SOURCE_DEFAULT",
    "SOURCE_FOEN",
    "SOURCE_SNAPSHOT",
    "SOURCE_SOCRATA",
    "SourceResult",
    "StationProvider",
    "StationReconciler",
    "attempt",
    "default_providers",
    "first_non_empty",
    "station_reconciler",
]
