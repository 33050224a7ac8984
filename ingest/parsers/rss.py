from __future__ import annotations

from datetime import UTC
from email.utils import parsedate_to_datetime

import feedparser


def _to_iso(value: str | None) -> str | None:
    if not value:
        return None
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(tz=UTC).isoformat().replace("+00:00", "Z")


def parse_rss(data: bytes, *, extension_prefixes: tuple[str, ...] = ()) -> list[dict]:
    parsed = feedparser.parse(data)
    if parsed.bozo and not parsed.entries:
        raise ValueError(f"unparseable feed: {parsed.get('bozo_exception')}")

    records: list[dict] = []
    for entry in parsed.entries:
        where = entry.get("where")
        record = {
            "id": entry.get("id") or entry.get("guid") or entry.get("link"),
            "link": entry.get("link"),
            "title": entry.get("title", ""),
            "summary": entry.get("summary", ""),
            "published": _to_iso(entry.get("published")),
            "updated": _to_iso(entry.get("updated")),
            "georss_point": entry.get("georss_point"),
            "geo_lat": entry.get("geo_lat"),
            "geo_long": entry.get("geo_long"),
            "where": dict(where) if where else None,
        }
        for key, value in entry.items():
            if extension_prefixes and key.startswith(extension_prefixes):
                record[key] = value
        records.append(record)
    return records
