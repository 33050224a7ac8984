from __future__ import annotations

from pathlib import Path

import pytest

from normalize.incident import Incident


FIXTURES = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture
def make_incident():
    def _make(
        incident_id: str = "test_1",
        *,
        type: str = "earthquake",
        lat: float = 10.0,
        lng: float = 20.0,
        severity: str = "moderate",
        time: str | None = "2025-10-13T10:00:00Z",
        source: str = "Test",
    ) -> Incident:
        return Incident(
            id=incident_id,
            type=type,
            title=f"Incident {incident_id}",
            location="Somewhere",
            lat=lat,
            lng=lng,
            severity=severity,
            time=time,
            source=source,
            url=f"https://example.com/{incident_id}",
            description="",
        )

    return _make
