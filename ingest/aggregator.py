from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from cluster.dedupe import dedupe_incidents
from cluster.rank import rank_incidents
from health.health import SourceOutcome, build_source_status
from ingest.sources import SourcePlugin
from normalize.incident import AggregationResult, Incident


logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat().replace("+00:00", "Z")


async def _run_one(plugin: SourcePlugin, timeout_seconds: float) -> SourceOutcome:
    try:
        fetched = await asyncio.wait_for(plugin.fetch(), timeout=timeout_seconds)
        incidents = list(fetched)
    except TimeoutError:
        error = f"timed out after {timeout_seconds:g}s"
        logger.warning("  x %s: %s", plugin.name, error)
        return SourceOutcome(name=plugin.name, incidents=None, error=error)
    except Exception as e:
        error = str(e) or e.__class__.__name__
        logger.warning("  x %s: %s", plugin.name, error)
        return SourceOutcome(name=plugin.name, incidents=None, error=error)

    logger.info("  + %s: %d incidents", plugin.name, len(incidents))
    return SourceOutcome(name=plugin.name, incidents=incidents, error=None)


async def collect_sources(
    plugins: Sequence[SourcePlugin], *, timeout_seconds: float
) -> tuple[list[Incident], list[SourceOutcome]]:
    outcomes = await asyncio.gather(
        *(_run_one(plugin, timeout_seconds) for plugin in plugins)
    )
    combined: list[Incident] = []
    for outcome in outcomes:
        if outcome.incidents is not None:
            combined.extend(outcome.incidents)
    return combined, list(outcomes)


async def aggregate_all_sources(
    plugins: Sequence[SourcePlugin], *, timeout_seconds: float
) -> AggregationResult:
    logger.info("Fetching from %d sources...", len(plugins))
    combined, outcomes = await collect_sources(plugins, timeout_seconds=timeout_seconds)
    deduped = dedupe_incidents(combined)
    ranked = rank_incidents(deduped)
    logger.info(
        "Total: %d unique incidents (%d before dedupe)", len(ranked), len(combined)
    )
    return AggregationResult(
        incidents=tuple(ranked),
        source_status=build_source_status(outcomes),
        fetched_at=_utc_now_iso(),
    )
