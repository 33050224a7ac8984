from __future__ import annotations

import html
import math
import random
import re
from collections.abc import Sequence
from datetime import UTC, datetime

from geo.gazetteer import Place, jitter, match_place_in_text
from normalize.classify import (
    EONET_CATEGORY_TYPES,
    EONET_TYPE_SEVERITY,
    GDACS_TITLE_KEYWORDS,
    RELIEFWEB_TYPE_CODES,
    classify_text,
    gdacs_alert_severity,
    magnitude_severity,
    social_severity,
)
from normalize.incident import Incident, coerce_lat_lng, truncate


USGS_SOURCE = "USGS Earthquake Hazards"
EONET_SOURCE = "NASA EONET"
GDACS_SOURCE = "GDACS (UN System)"
RELIEFWEB_SOURCE = "ReliefWeb (OCHA)"
REDDIT_SOURCE = "Reddit"

REDDIT_MIN_SCORE = 10

_HTML_TAG_RE = re.compile(r"<[^>]+>", flags=re.UNICODE)
_WS_RE = re.compile(r"\s+", flags=re.UNICODE)


def _iso_from_epoch_ms(ms: float) -> str | None:
    try:
        stamp = datetime.fromtimestamp(ms / 1000.0, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None
    return stamp.isoformat().replace("+00:00", "Z")


def _to_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_int(value: object) -> int:
    number = _to_float(value)
    return int(number) if number is not None else 0


def _as_list(value: object) -> list | tuple:
    return value if isinstance(value, (list, tuple)) else ()


def _first_dict(value: object) -> dict | None:
    items = _as_list(value)
    if items and isinstance(items[0], dict):
        return items[0]
    return None


def _as_dict(value: object) -> dict:
    return value if isinstance(value, dict) else {}


def strip_markup(text: str) -> str:
    cleaned = html.unescape(_HTML_TAG_RE.sub(" ", text))
    return _WS_RE.sub(" ", cleaned).strip()


def normalize_usgs_earthquake(record: dict) -> Incident | None:
    properties = _as_dict(record.get("properties"))
    geometry = _as_dict(record.get("geometry"))
    coords = _as_list(geometry.get("coordinates"))
    if len(coords) < 2:
        return None
    point = coerce_lat_lng(coords[1], coords[0])
    if point is None:
        return None
    lat, lng = point

    mag = _to_float(properties.get("mag"))
    magnitude = round(mag, 1) if mag is not None else None
    depth = _to_float(coords[2]) if len(coords) > 2 else None

    details: list[str] = []
    if magnitude is not None:
        details.append(f"Magnitude {magnitude:.1f}")
    if depth is not None:
        details.append(f"Depth {depth:.0f} km")
    details.append(f"{_to_int(properties.get('felt'))} reports")

    epoch_ms = _to_float(properties.get("time"))
    place = str(properties.get("place") or "")

    return Incident(
        id=f"usgs_{record.get('id')}",
        type="earthquake",
        title=str(properties.get("title") or place or "Earthquake"),
        location=place or "Unknown",
        lat=lat,
        lng=lng,
        severity=magnitude_severity(mag),
        magnitude=magnitude,
        time=_iso_from_epoch_ms(epoch_ms) if epoch_ms is not None else None,
        source=USGS_SOURCE,
        url=str(properties.get("url") or "https://earthquake.usgs.gov"),
        description=" · ".join(details),
    )


def normalize_eonet_event(record: dict, *, fetched_at: str) -> Incident | None:
    category = _first_dict(record.get("categories"))
    category_title = "Unknown"
    if category is not None:
        category_title = str(category.get("title") or "Unknown")
    incident_type = EONET_CATEGORY_TYPES.get(category_title, "other")

    geometries = _as_list(record.get("geometry"))
    if not geometries or not isinstance(geometries[-1], dict):
        return None
    # the last geometry is the most recent observation
    last = geometries[-1]
    coords = _as_list(last.get("coordinates"))
    if not coords:
        return None

    vertex: list | tuple = ()
    geom_type = last.get("type")
    if geom_type == "Point":
        vertex = coords
    elif geom_type == "Polygon":
        # first vertex of the outer ring
        ring = _as_list(coords[0])
        vertex = _as_list(ring[0]) if ring else ()
    if len(vertex) < 2:
        return None
    point = coerce_lat_lng(vertex[1], vertex[0])
    if point is None:
        return None
    lat, lng = point

    url = "https://eonet.gsfc.nasa.gov"
    source = _first_dict(record.get("sources"))
    if source is not None and source.get("url"):
        url = str(source["url"])

    title = str(record.get("title") or "")
    return Incident(
        id=f"nasa_{record.get('id')}",
        type=incident_type,
        title=title,
        location=title,
        lat=lat,
        lng=lng,
        severity=EONET_TYPE_SEVERITY.get(incident_type, "moderate"),
        time=str(last.get("date") or fetched_at),
        source=EONET_SOURCE,
        url=url,
        description=f"{category_title} · {len(geometries)} data points · Active",
    )


def _gdacs_point(record: dict) -> tuple[float, float] | None:
    candidates: list[tuple[object, object]] = []

    georss_point = record.get("georss_point")
    if georss_point:
        parts = str(georss_point).split()
        if len(parts) == 2:
            candidates.append((parts[0], parts[1]))

    if record.get("geo_lat") is not None or record.get("geo_long") is not None:
        candidates.append((record.get("geo_lat"), record.get("geo_long")))

    where = record.get("where")
    if isinstance(where, dict) and where.get("type") == "Point":
        coords = _as_list(where.get("coordinates"))
        if len(coords) == 2:
            candidates.append((coords[1], coords[0]))

    for lat, lng in candidates:
        point = coerce_lat_lng(lat, lng)
        if point is not None:
            return point
    return None


def normalize_gdacs_item(record: dict, *, position: int, now_ms: int) -> Incident | None:
    point = _gdacs_point(record)
    if point is None:
        return None
    lat, lng = point

    title = str(record.get("title") or "").strip()
    location = str(record.get("gdacs_country") or "").strip()
    if not location:
        location = title.split("-")[-1].strip() or "Unknown"

    return Incident(
        # the feed carries no stable identifier
        id=f"gdacs_{position}_{now_ms}",
        type=classify_text(title, GDACS_TITLE_KEYWORDS) or "other",
        title=title,
        location=location,
        lat=lat,
        lng=lng,
        severity=gdacs_alert_severity(record.get("gdacs_alertlevel")),
        time=record.get("published"),
        source=GDACS_SOURCE,
        url=str(record.get("link") or "https://gdacs.org"),
        description=truncate(strip_markup(str(record.get("summary") or "")), 200),
    )


def _reliefweb_point(location: object) -> tuple[float, float] | None:
    if isinstance(location, dict):
        return coerce_lat_lng(location.get("lat"), location.get("lon", location.get("lng")))
    if isinstance(location, str):
        parts = location.split(",")
        if len(parts) != 2:
            return None
        return coerce_lat_lng(parts[1].strip(), parts[0].strip())
    return None


def normalize_reliefweb_disaster(record: dict) -> Incident | None:
    disaster_id = str(record.get("id") or "")
    fields = _as_dict(record.get("fields"))

    country = _first_dict(fields.get("country"))
    if country is None:
        return None
    point = _reliefweb_point(country.get("location"))
    if point is None:
        return None
    lat, lng = point

    type_code = "OT"
    type_name = "Unknown type"
    disaster_type = _first_dict(fields.get("type"))
    if disaster_type is not None:
        type_code = str(disaster_type.get("code") or "OT")
        type_name = str(disaster_type.get("name") or type_name)

    created = None
    dates = fields.get("date")
    if isinstance(dates, dict) and dates.get("created"):
        created = str(dates["created"])

    return Incident(
        id=f"rw_{disaster_id}",
        type=RELIEFWEB_TYPE_CODES.get(type_code, "other"),
        title=str(fields.get("name") or ""),
        location=str(country.get("name") or "Unknown"),
        lat=lat,
        lng=lng,
        # the source carries no finer severity signal
        severity="high",
        time=created,
        source=RELIEFWEB_SOURCE,
        url=str(fields.get("url") or f"https://reliefweb.int/disaster/{disaster_id}"),
        description=f"Active humanitarian disaster · {type_name}",
    )


def normalize_reddit_post(
    record: dict,
    *,
    subreddit: str,
    places: Sequence[Place],
    rng: random.Random,
) -> Incident | None:
    title = str(record.get("title") or "")
    score = _to_int(record.get("score"))
    if not title or score < REDDIT_MIN_SCORE:
        return None

    selftext = str(record.get("selftext") or "")
    text = f"{title} {selftext}"
    incident_type = classify_text(text)
    if incident_type is None:
        return None
    place = match_place_in_text(places, text)
    if place is None:
        return None
    lat, lng = jitter(place.lat, place.lng, rng)

    created_utc = _to_float(record.get("created_utc"))
    created_at = (
        _iso_from_epoch_ms(created_utc * 1000) if created_utc is not None else None
    )

    return Incident(
        id=f"reddit_{record.get('id')}",
        type=incident_type,
        title=truncate(title, 120),
        location=place.name,
        lat=lat,
        lng=lng,
        severity=social_severity(score, title),
        time=created_at,
        source=REDDIT_SOURCE,
        url=f"https://reddit.com{record.get('permalink') or ''}",
        description=truncate(selftext, 150),
        extra={
            "upvotes": score,
            "comments": _to_int(record.get("num_comments")),
            "subreddit": subreddit,
        },
    )
