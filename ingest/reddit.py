from __future__ import annotations

import asyncio
import json
import logging
import random
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import httpx

from geo.gazetteer import Place
from ingest.fetch import fetch, request_timeout
from normalize.incident import Incident
from normalize.normalize import normalize_reddit_post


logger = logging.getLogger(__name__)

TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
API_BASE_URL = "https://oauth.reddit.com"
TOKEN_REFRESH_MARGIN_SECONDS = 30.0


class RedditAuthError(Exception):
    """Raised when the token endpoint answers without an access token."""


@dataclass(frozen=True)
class Community:
    name: str
    query: str


COMMUNITIES: tuple[Community, ...] = (
    Community(
        "worldnews", "earthquake OR flood OR hurricane OR wildfire OR tsunami OR volcano"
    ),
    Community("news", "earthquake OR flood OR hurricane OR wildfire"),
    Community("earthquake", ""),
    Community("weather", "disaster OR severe OR emergency"),
)


@dataclass(frozen=True)
class RedditToken:
    value: str
    expires_at: float


class RedditTokenProvider:
    """Holds the app-only OAuth token and renews it shortly before expiry."""

    def __init__(
        self,
        *,
        client_id: str | None,
        client_secret: str | None,
        username: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._username = username
        self._clock = clock
        self._lock = asyncio.Lock()
        self._token: RedditToken | None = None

    @property
    def configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    @property
    def user_agent(self) -> str:
        return f"DisasterWatch/1.0 by {self._username or 'user'}"

    async def get_token(self, client: httpx.AsyncClient) -> str:
        async with self._lock:
            token = self._token
            if (
                token is None
                or self._clock() >= token.expires_at - TOKEN_REFRESH_MARGIN_SECONDS
            ):
                token = await self._exchange(client)
                self._token = token
            return token.value

    async def _exchange(self, client: httpx.AsyncClient) -> RedditToken:
        if not self.configured:
            raise RedditAuthError("reddit credentials are not configured")
        res = await client.post(
            TOKEN_URL,
            data={"grant_type": "client_credentials"},
            auth=(str(self._client_id), str(self._client_secret)),
            headers={"User-Agent": self.user_agent},
            timeout=request_timeout(10.0),
        )
        res.raise_for_status()
        doc = res.json()
        access_token = doc.get("access_token") if isinstance(doc, dict) else None
        if not access_token:
            raise RedditAuthError("token response without access_token")
        expires_in = float(doc.get("expires_in") or 3600)
        logger.info("Reddit: obtained access token (expires in %.0fs)", expires_in)
        return RedditToken(value=str(access_token), expires_at=self._clock() + expires_in)


def _community_request(community: Community) -> tuple[str, dict[str, str]]:
    if community.query:
        return (
            f"{API_BASE_URL}/r/{community.name}/search",
            {
                "q": community.query,
                "sort": "new",
                "t": "day",
                "limit": "25",
                "restrict_sr": "true",
            },
        )
    return (f"{API_BASE_URL}/r/{community.name}/new", {"limit": "25"})


def parse_listing(data: bytes) -> list[dict]:
    doc = json.loads(data)
    if not isinstance(doc, dict) or not isinstance(doc.get("data"), dict):
        raise ValueError("expected a reddit listing")
    children = doc["data"].get("children") or []
    posts: list[dict] = []
    for child in children:
        if isinstance(child, dict) and isinstance(child.get("data"), dict):
            posts.append(child["data"])
    return posts


async def fetch_reddit_posts(
    client: httpx.AsyncClient,
    tokens: RedditTokenProvider | None,
    *,
    places: Sequence[Place],
    rng: random.Random,
    pace_seconds: float = 0.3,
    communities: Sequence[Community] = COMMUNITIES,
) -> list[Incident]:
    if tokens is None or not tokens.configured:
        logger.info("Reddit: no credentials set, source disabled")
        return []

    token = await tokens.get_token(client)
    headers = {"Authorization": f"Bearer {token}"}

    incidents: list[Incident] = []
    for index, community in enumerate(communities):
        if index and pace_seconds > 0:
            await asyncio.sleep(pace_seconds)

        url, params = _community_request(community)
        try:
            data = await fetch(
                client,
                url=url,
                user_agent=tokens.user_agent,
                params=params,
                extra_headers=headers,
                read_timeout=8.0,
            )
            posts = parse_listing(data)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Reddit r/%s skipped: %s", community.name, e)
            continue

        for post in posts:
            incident = normalize_reddit_post(
                post, subreddit=community.name, places=places, rng=rng
            )
            if incident is not None:
                incidents.append(incident)

    return incidents
