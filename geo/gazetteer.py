from __future__ import annotations

import random
import re
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml


_NAME_CLEAN_RE = re.compile(r"[^\w\s]+", flags=re.UNICODE)
_WS_RE = re.compile(r"\s+")

DEFAULT_PLACES_PATH = Path(__file__).resolve().parent / "data" / "places.yaml"


@dataclass(frozen=True)
class Place:
    name: str
    normalized_name: str
    lat: float
    lng: float


def normalize_place_name(name: str) -> str:
    cleaned = _NAME_CLEAN_RE.sub(" ", name.strip().casefold())
    return _WS_RE.sub(" ", cleaned).strip()


def load_places(path: Path) -> list[Place]:
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(f"invalid gazetteer: {path}")

    places: list[Place] = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValueError(f"invalid gazetteer entry in: {path}")
        name = str(entry["name"])
        places.append(
            Place(
                name=name,
                normalized_name=normalize_place_name(name),
                lat=float(entry["lat"]),
                lng=float(entry["lng"]),
            )
        )
    return places


@lru_cache(maxsize=1)
def default_places() -> tuple[Place, ...]:
    return tuple(load_places(DEFAULT_PLACES_PATH))


def match_place_in_text(places: Sequence[Place], text: str) -> Place | None:
    tokens = re.findall(r"[a-z]+", text.casefold())
    if not tokens:
        return None
    joined = f" {' '.join(tokens)} "
    for place in places:
        if f" {place.normalized_name} " in joined:
            return place
    return None


def jitter(lat: float, lng: float, rng: random.Random, spread: float = 1.0) -> tuple[float, float]:
    return (lat + rng.uniform(-spread, spread), lng + rng.uniform(-spread, spread))
