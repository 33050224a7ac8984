from __future__ import annotations

import httpx


DEFAULT_ACCEPT = "application/json, application/xml, application/rss+xml, text/xml, */*"


def request_timeout(read_seconds: float) -> httpx.Timeout:
    return httpx.Timeout(connect=5.0, read=read_seconds, write=5.0, pool=5.0)


async def fetch(
    client: httpx.AsyncClient,
    *,
    url: str,
    user_agent: str,
    params: dict[str, str] | list[tuple[str, str]] | None = None,
    extra_headers: dict[str, str] | None = None,
    read_timeout: float = 10.0,
) -> bytes:
    headers = {"User-Agent": user_agent, "Accept": DEFAULT_ACCEPT}
    if extra_headers:
        headers.update(extra_headers)

    response = await client.get(
        url, params=params, headers=headers, timeout=request_timeout(read_timeout)
    )
    response.raise_for_status()
    return response.content
