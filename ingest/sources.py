from __future__ import annotations

import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from app.settings import Settings
from geo.gazetteer import default_places
from ingest.fetch import fetch
from ingest.parsers.geojson import parse_geojson
from ingest.parsers.json import parse_json_records
from ingest.parsers.rss import parse_rss
from ingest.reddit import RedditTokenProvider, fetch_reddit_posts
from normalize.incident import Incident
from normalize.normalize import (
    normalize_eonet_event,
    normalize_gdacs_item,
    normalize_reliefweb_disaster,
    normalize_usgs_earthquake,
)


FetchFn = Callable[[], Awaitable[list[Incident]]]

USGS_URL = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/2.5_day.geojson"
EONET_URL = "https://eonet.gsfc.nasa.gov/api/v3/events"
GDACS_URL = "https://www.gdacs.org/xml/rss.xml"
RELIEFWEB_URL = "https://api.reliefweb.int/v1/disasters"

GDACS_MAX_ENTRIES = 30


@dataclass(frozen=True)
class SourcePlugin:
    name: str
    fetch: FetchFn


def _utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat().replace("+00:00", "Z")


async def fetch_usgs(client: httpx.AsyncClient, *, user_agent: str) -> list[Incident]:
    data = await fetch(client, url=USGS_URL, user_agent=user_agent)
    incidents: list[Incident] = []
    for feature in parse_geojson(data):
        incident = normalize_usgs_earthquake(feature)
        if incident is not None:
            incidents.append(incident)
    return incidents


async def fetch_eonet(client: httpx.AsyncClient, *, user_agent: str) -> list[Incident]:
    data = await fetch(
        client,
        url=EONET_URL,
        user_agent=user_agent,
        params={"status": "open", "days": "14", "limit": "80"},
    )
    fetched_at = _utc_now_iso()
    incidents: list[Incident] = []
    for event in parse_json_records(data, key="events"):
        incident = normalize_eonet_event(event, fetched_at=fetched_at)
        if incident is not None:
            incidents.append(incident)
    return incidents


async def fetch_gdacs(client: httpx.AsyncClient, *, user_agent: str) -> list[Incident]:
    data = await fetch(client, url=GDACS_URL, user_agent=user_agent)
    entries = parse_rss(data, extension_prefixes=("gdacs_",))[:GDACS_MAX_ENTRIES]
    now_ms = int(time.time() * 1000)
    incidents: list[Incident] = []
    for position, entry in enumerate(entries):
        incident = normalize_gdacs_item(entry, position=position, now_ms=now_ms)
        if incident is not None:
            incidents.append(incident)
    return incidents


async def fetch_reliefweb(
    client: httpx.AsyncClient, *, user_agent: str, appname: str = "disasterwatch"
) -> list[Incident]:
    params = [("appname", appname)]
    params.extend(
        ("fields[include][]", name) for name in ("name", "country", "date", "type", "url")
    )
    params.extend(
        [
            ("filter[field]", "status"),
            ("filter[value]", "current"),
            ("limit", "30"),
        ]
    )
    data = await fetch(client, url=RELIEFWEB_URL, user_agent=user_agent, params=params)
    incidents: list[Incident] = []
    for record in parse_json_records(data, key="data"):
        incident = normalize_reliefweb_disaster(record)
        if incident is not None:
            incidents.append(incident)
    return incidents


def build_sources(
    client: httpx.AsyncClient,
    settings: Settings,
    tokens: RedditTokenProvider,
    *,
    rng: random.Random | None = None,
) -> list[SourcePlugin]:
    user_agent = settings.user_agent
    reddit_rng = rng or random.Random()
    places = default_places()
    return [
        SourcePlugin(
            name="USGS",
            fetch=lambda: fetch_usgs(client, user_agent=user_agent),
        ),
        SourcePlugin(
            name="NASA EONET",
            fetch=lambda: fetch_eonet(client, user_agent=user_agent),
        ),
        SourcePlugin(
            name="GDACS",
            fetch=lambda: fetch_gdacs(client, user_agent=user_agent),
        ),
        SourcePlugin(
            name="ReliefWeb",
            fetch=lambda: fetch_reliefweb(client, user_agent=user_agent),
        ),
        SourcePlugin(
            name="Reddit",
            fetch=lambda: fetch_reddit_posts(
                client,
                tokens,
                places=places,
                rng=reddit_rng,
                pace_seconds=settings.reddit_pace_seconds,
            ),
        ),
    ]
