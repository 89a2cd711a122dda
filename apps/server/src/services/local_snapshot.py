from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import settings
from services.normalizers import text_or_none, to_number
from services.timed_cache import TimedCache
from services.water_models import StationInfo, StationPayload, build_measurements

logger = logging.getLogger("waterlab.server.snapshot")

NUMERIC_COLUMNS = ("temperature_c", "discharge_m3s", "water_level_cm")
_CACHE_KEY = "snapshot"


class LocalSnapshot:
    """CSV snapshot of the latest station readings, used when live sources fail."""

    def __init__(self, path: str | Path, cache: TimedCache[List[Dict[str, Any]]]) -> None:
        self._path = Path(path)
        self._cache = cache

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> List[Dict[str, Any]]:
        return self._cache.get_or_load(_CACHE_KEY, self._read)

    def _read(self) -> List[Dict[str, Any]]:
        if not self._path.exists():
            logger.warning("Local water dataset not found at %s", self._path)
            return []
        try:
            text = self._path.read_text(encoding="utf-8-sig")
            lines = [line.strip() for line in text.splitlines()]
            rows = list(csv.reader(line for line in lines if line))
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            logger.warning("Failed to load local water dataset %s: %s", self._path, exc)
            return []
        if len(rows) <= 1:
            return []

        headers = [header.strip() for header in rows[0]]
        records: List[Dict[str, Any]] = []
        for columns in rows[1:]:
            record: Dict[str, Any] = {}
            for index, header in enumerate(headers):
                record[header] = columns[index].strip() if index < len(columns) else ""
            for column in NUMERIC_COLUMNS:
                record[column] = to_number(record.get(column))
            records.append(record)
        logger.debug("Loaded %d snapshot rows from %s", len(records), self._path)
        return records

    def station_data(self, station_id: str) -> Optional[StationPayload]:
        entry = next((row for row in self.load() if row.get("station_id") == station_id), None)
        if entry is None:
            return None
        timestamp = text_or_none(entry.get("timestamp"))
        measurements = build_measurements(
            station_id,
            entry.get("temperature_c"),
            entry.get("discharge_m3s"),
            entry.get("water_level_cm"),
            timestamp,
        )
        station = StationInfo(
            id=station_id,
            name=text_or_none(entry.get("station_name")) or station_id,
            water_body=text_or_none(entry.get("water_body")),
            canton=text_or_none(entry.get("canton")),
        )
        return StationPayload(station=station, measurements=measurements, raw=dict(entry))

    def clear(self) -> None:
        self._cache.clear()


local_snapshot = LocalSnapshot(
    settings.snapshot_path,
    TimedCache(settings.snapshot_cache_ttl),
)

__all__ = ["LocalSnapshot", "NUMERIC_COLUMNS", "local_snapshot"]
