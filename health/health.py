from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from normalize.incident import Incident


@dataclass(frozen=True)
class SourceOutcome:
    name: str
    incidents: list[Incident] | None
    error: str | None


def build_source_status(outcomes: Iterable[SourceOutcome]) -> dict[str, dict[str, Any]]:
    status: dict[str, dict[str, Any]] = {}
    for outcome in outcomes:
        if outcome.incidents is not None:
            status[outcome.name] = {"ok": True, "count": len(outcome.incidents)}
        else:
            status[outcome.name] = {"ok": False, "error": outcome.error}
    return status


def format_seconds(seconds: float | None) -> str:
    if seconds is None:
        return "empty"
    return f"{int(seconds)}s"


def build_health_report(
    *, cache_age_seconds: float | None, uptime_seconds: float
) -> dict[str, str]:
    return {
        "status": "ok",
        "cacheAge": format_seconds(cache_age_seconds),
        "uptime": format_seconds(max(uptime_seconds, 0.0)),
    }
