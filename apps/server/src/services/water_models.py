from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

# (suffix, label, shortName, unit) for every measurement a station can expose.
MEASUREMENT_KINDS: tuple[tuple[str, str, str, str], ...] = (
    ("temperature", "Water Temperature", "temperature", "°C"),
    ("discharge", "Discharge", "discharge", "m³/s"),
    ("water-level", "Water Level", "water_level", "cm"),
)


@dataclass(frozen=True, slots=True)
class Measurement:
    id: str
    label: str
    short_name: str
    unit: str
    value: Optional[float]
    timestamp: Optional[str]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "shortName": self.short_name,
            "unit": self.unit,
            "value": self.value,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class StationInfo:
    id: str
    name: str
    water_body: Optional[str] = None
    canton: Optional[str] = None
    coordinates: Optional[tuple[float, float]] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "waterBody": self.water_body,
            "canton": self.canton,
            "coordinates": list(self.coordinates) if self.coordinates else None,
        }


@dataclass(frozen=True, slots=True)
class StationPayload:
    station: StationInfo
    measurements: List[Measurement]
    raw: Dict[str, Any] = field(default_factory=dict)
    source: Optional[str] = None

    def with_source(self, source: str) -> "StationPayload":
        return replace(self, source=source)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "station": self.station.to_payload(),
            "measurements": [measurement.to_payload() for measurement in self.measurements],
            "raw": self.raw,
        }
        if self.source is not None:
            payload["source"] = self.source
        return payload


@dataclass(slots=True)
class StationSummary:
    id: str
    name: str
    source: str

    def to_payload(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "source": self.source}


def build_measurements(
    station_id: str,
    temperature: Optional[float],
    discharge: Optional[float],
    water_level: Optional[float],
    timestamp: Optional[str],
) -> List[Measurement]:
    """Build the station's measurement list, dropping readings without a value."""
    values = (temperature, discharge, water_level)
    measurements: List[Measurement] = []
    for (suffix, label, short_name, unit), value in zip(MEASUREMENT_KINDS, values):
        if value is None:
            continue
        measurements.append(
            Measurement(
                id=f"{station_id}-{suffix}",
                label=label,
                short_name=short_name,
                unit=unit,
                value=value,
                timestamp=timestamp,
            )
        )
    return measurements


__all__ = [
    "MEASUREMENT_KINDS",
    "Measurement",
    "StationInfo",
    "StationPayload",
    "StationSummary",
    "build_measurements",
]
