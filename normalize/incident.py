from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any


INCIDENT_TYPES = ("earthquake", "flood", "fire", "storm", "volcano", "tsunami", "other")

SEVERITIES = ("critical", "high", "moderate", "low")


@dataclass(frozen=True)
class Incident:
    id: str
    type: str
    title: str
    location: str
    lat: float
    lng: float
    severity: str
    time: str | None
    source: str
    url: str
    description: str
    magnitude: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "location": self.location,
            "lat": self.lat,
            "lng": self.lng,
            "severity": self.severity,
            "time": self.time,
            "source": self.source,
            "url": self.url,
            "description": self.description,
        }
        if self.magnitude is not None:
            doc["magnitude"] = self.magnitude
        doc.update(self.extra)
        return doc


@dataclass(frozen=True)
class AggregationResult:
    incidents: tuple[Incident, ...]
    source_status: dict[str, dict[str, Any]]
    fetched_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "incidents": [i.to_dict() for i in self.incidents],
            "sourceStatus": self.source_status,
            "fetchedAt": self.fetched_at,
        }


def coerce_coordinate(value: object, *, limit: float) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        coord = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(coord) or abs(coord) > limit:
        return None
    return coord


def coerce_lat_lng(lat: object, lng: object) -> tuple[float, float] | None:
    lat_f = coerce_coordinate(lat, limit=90.0)
    lng_f = coerce_coordinate(lng, limit=180.0)
    if lat_f is None or lng_f is None:
        return None
    return (lat_f, lng_f)


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit]
