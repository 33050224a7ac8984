from fastapi.testclient import TestClient

from app.main import create_app
from app.settings import Settings
from ingest.aggregator import aggregate_all_sources
from ingest.sources import SourcePlugin


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def _factory(plugins, calls):
    def build(client, settings, tokens):
        calls.append(tokens.configured)
        return plugins

    return build


def _plugin(name, incidents, counter=None):
    async def fetch():
        if counter is not None:
            counter.append(name)
        return list(incidents)

    return SourcePlugin(name=name, fetch=fetch)


def test_incidents_prewarmed_and_served_from_cache(make_incident) -> None:
    runs: list[str] = []
    calls: list[bool] = []
    plugins = [
        _plugin("USGS", [make_incident("usgs_1", severity="high")], runs),
        _plugin("ReliefWeb", [make_incident("rw_1", type="flood", lat=-10.0)]),
    ]
    app = create_app(_settings(), sources_factory=_factory(plugins, calls))

    with TestClient(app) as client:
        assert runs == ["USGS"]
        assert calls == [False]

        first = client.get("/api/incidents")
        second = client.get("/api/incidents")

    assert first.status_code == 200
    body = first.json()
    assert body["fromCache"] is True
    assert [i["id"] for i in body["incidents"]] == ["usgs_1", "rw_1"]
    assert body["sourceStatus"] == {
        "USGS": {"ok": True, "count": 1},
        "ReliefWeb": {"ok": True, "count": 1},
    }
    assert second.json()["incidents"] == body["incidents"]
    assert second.json()["fetchedAt"] == body["fetchedAt"]
    assert runs == ["USGS"]


def test_expired_cache_recomputes(make_incident) -> None:
    runs: list[str] = []
    plugins = [_plugin("USGS", [make_incident("usgs_1")], runs)]
    app = create_app(
        _settings(CACHE_TTL_SECONDS=0), sources_factory=_factory(plugins, [])
    )

    with TestClient(app) as client:
        response = client.get("/api/incidents")

    assert response.json()["fromCache"] is False
    assert runs == ["USGS", "USGS"]


def test_incidents_by_type(make_incident) -> None:
    plugins = [
        _plugin(
            "Mixed",
            [
                make_incident("a", type="flood", lat=0.0),
                make_incident("b", type="fire", lat=20.0),
                make_incident("c", type="flood", lat=40.0),
            ],
        )
    ]
    app = create_app(_settings(), sources_factory=_factory(plugins, []))

    with TestClient(app) as client:
        floods = client.get("/api/incidents/flood").json()
        none = client.get("/api/incidents/tsunami").json()

    assert floods["count"] == 2
    assert {i["id"] for i in floods["incidents"]} == {"a", "c"}
    assert none == {"incidents": [], "count": 0}


def test_health_reports_cache_age_and_uptime() -> None:
    app = create_app(
        _settings(), sources_factory=_factory([_plugin("USGS", [])], [])
    )
    with TestClient(app) as client:
        body = client.get("/api/health").json()

    assert body["status"] == "ok"
    assert body["cacheAge"].endswith("s")
    assert body["cacheAge"] != "empty"
    assert body["uptime"].endswith("s")


def test_source_returning_garbage_is_reported_not_fatal() -> None:
    async def broken():
        return None

    plugins = [SourcePlugin(name="Broken", fetch=broken)]
    app = create_app(_settings(), sources_factory=_factory(plugins, []))

    with TestClient(app) as client:
        health = client.get("/api/health").json()
        response = client.get("/api/incidents")

    assert health["cacheAge"] != "empty"
    assert response.status_code == 200
    body = response.json()
    assert body["incidents"] == []
    assert body["sourceStatus"]["Broken"]["ok"] is False


def test_orchestration_failure_is_a_500(monkeypatch) -> None:
    async def exploding(plugins, *, timeout_seconds):
        raise RuntimeError("dedupe exploded")

    monkeypatch.setattr("app.main.aggregate_all_sources", exploding)
    app = create_app(_settings(), sources_factory=_factory([_plugin("USGS", [])], []))

    with TestClient(app) as client:
        health = client.get("/api/health").json()
        response = client.get("/api/incidents")

    assert health["cacheAge"] == "empty"
    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to fetch disaster data",
        "message": "dedupe exploded",
    }


def test_incidents_by_type_aggregates_when_cache_empty(
    monkeypatch, make_incident
) -> None:
    attempts: list[str] = []

    async def flaky(plugins, *, timeout_seconds):
        if not attempts:
            attempts.append("failed")
            raise RuntimeError("first run fails")
        attempts.append("ok")
        return await aggregate_all_sources(plugins, timeout_seconds=timeout_seconds)

    monkeypatch.setattr("app.main.aggregate_all_sources", flaky)
    plugins = [
        _plugin(
            "Mixed",
            [
                make_incident("a", type="flood", lat=0.0),
                make_incident("b", type="fire", lat=20.0),
            ],
        )
    ]
    app = create_app(_settings(), sources_factory=_factory(plugins, []))

    with TestClient(app) as client:
        assert attempts == ["failed"]
        assert client.get("/api/health").json()["cacheAge"] == "empty"

        floods = client.get("/api/incidents/flood").json()
        fires = client.get("/api/incidents/fire").json()

    assert attempts == ["failed", "ok"]
    assert floods == {
        "incidents": [make_incident("a", type="flood", lat=0.0).to_dict()],
        "count": 1,
    }
    assert fires["count"] == 1


def test_unknown_type_is_empty_without_aggregating() -> None:
    runs: list[str] = []
    app = create_app(
        _settings(CACHE_TTL_SECONDS=0),
        sources_factory=_factory([_plugin("USGS", [], runs)], []),
    )
    with TestClient(app) as client:
        response = client.get("/api/incidents/meteor")

    assert response.status_code == 200
    assert response.json() == {"incidents": [], "count": 0}
    assert runs == ["USGS"]


def test_reddit_credentials_reach_token_provider() -> None:
    calls: list[bool] = []
    settings = _settings(REDDIT_CLIENT_ID="id", REDDIT_CLIENT_SECRET="secret")
    app = create_app(settings, sources_factory=_factory([_plugin("USGS", [])], calls))
    with TestClient(app):
        pass
    assert calls == [True]
