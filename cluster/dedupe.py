from __future__ import annotations

from collections.abc import Iterable

from normalize.incident import Incident


CLASH_DEGREES = 0.5


def incidents_clash(a: Incident, b: Incident, threshold: float = CLASH_DEGREES) -> bool:
    # per-axis box, not a geodesic radius
    return (
        a.type == b.type
        and abs(a.lat - b.lat) < threshold
        and abs(a.lng - b.lng) < threshold
    )


def dedupe_incidents(
    incidents: Iterable[Incident], threshold: float = CLASH_DEGREES
) -> list[Incident]:
    kept: list[Incident] = []
    for incident in incidents:
        if any(incidents_clash(incident, seen, threshold) for seen in kept):
            continue
        kept.append(incident)
    return kept
