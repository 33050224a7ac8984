from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from normalize.incident import SEVERITIES, Incident


SEVERITY_RANK: dict[str, int] = {severity: n for n, severity in enumerate(SEVERITIES)}

_LOWEST_TIER = len(SEVERITIES) - 1


def _parse_iso(ts: str) -> datetime:
    if ts.endswith("Z"):
        return datetime.fromisoformat(ts.removesuffix("Z") + "+00:00")
    return datetime.fromisoformat(ts)


def incident_timestamp(incident: Incident) -> float:
    if not incident.time:
        return 0.0
    try:
        dt = _parse_iso(incident.time)
    except ValueError:
        return 0.0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.timestamp()


def rank_incidents(incidents: Iterable[Incident]) -> list[Incident]:
    return sorted(
        incidents,
        key=lambda i: (SEVERITY_RANK.get(i.severity, _LOWEST_TIER), -incident_timestamp(i)),
    )
