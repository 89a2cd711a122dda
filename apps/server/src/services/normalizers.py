from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

# Canonical field name -> lowercase key fragments accepted from upstream records.
# Socrata datasets mix German and English column names.
FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    "timestamp": ("zeit", "timestamp", "datum", "time"),
    "temperature": ("temperatur", "temperature", "temp"),
    "discharge": ("abfluss", "durchfluss", "discharge", "fluss"),
    "water_level": ("wasserstand", "pegel", "level"),
    "water_body": ("gewässer", "gewaesser", "river"),
    "station_name": ("standort", "messstelle", "station", "site"),
    "canton": ("kanton", "canton"),
}

# Key fragments that disqualify a key for a canonical field even when a synonym matches.
FIELD_EXCLUSIONS: dict[str, tuple[str, ...]] = {
    "station_name": ("_id", "id_", "nummer", "_nr", "number"),
}


def to_number(value: Any) -> Optional[float]:
    """Convert numeric text such as ``"12.5"`` or ``"12,5"`` into a float."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        numeric = float(value)
        return numeric if math.isfinite(numeric) else None
    trimmed = str(value).strip()
    if not trimmed:
        return None
    try:
        numeric = float(trimmed.replace(",", ".", 1))
    except ValueError:
        return None
    if not math.isfinite(numeric):
        return None
    return numeric


def _timestamp_candidates(text: str) -> list[str]:
    dashed = text.replace(".", "-")
    return [
        text,
        text.replace(" ", "T", 1),
        dashed,
        dashed.replace(" ", "T", 1),
    ]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Best-effort timestamp parsing for ISO and dotted European date strings.

    Candidates are tried in a fixed order and the first one that parses wins.
    Naive values are taken to be UTC so records from different sources compare.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        if not value:
            return None
        parsed = None
        for candidate in _timestamp_candidates(str(value)):
            trimmed = candidate.strip()
            if not trimmed:
                continue
            if trimmed.endswith(("Z", "z")):
                trimmed = trimmed[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(trimmed)
            except ValueError:
                continue
            break
        if parsed is None:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def isoformat_utc(timestamp: datetime) -> str:
    iso = timestamp.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    if iso.endswith("+00:00"):
        return iso[:-6] + "Z"
    return iso


def get_field_by_keywords(
    record: Mapping[str, Any] | None,
    keywords: Iterable[str],
    exclude: Iterable[str] = (),
) -> Any:
    if not record:
        return None
    lowered_keywords = tuple(keyword.lower() for keyword in keywords)
    lowered_exclude = tuple(fragment.lower() for fragment in exclude)
    for key, value in record.items():
        lower_key = str(key).lower()
        if any(fragment in lower_key for fragment in lowered_exclude):
            continue
        if any(keyword in lower_key for keyword in lowered_keywords):
            return value
    return None


def resolve_field(record: Mapping[str, Any] | None, canonical: str) -> Any:
    try:
        synonyms = FIELD_SYNONYMS[canonical]
    except KeyError:
        raise KeyError(f"Unknown canonical field '{canonical}'") from None
    return get_field_by_keywords(record, synonyms, FIELD_EXCLUSIONS.get(canonical, ()))


def text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


__all__ = [
    "FIELD_EXCLUSIONS",
    "FIELD_SYNONYMS",
    "get_field_by_keywords",
    "isoformat_utc",
    "parse_timestamp",
    "resolve_field",
    "text_or_none",
    "to_number",
]
