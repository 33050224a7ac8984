from __future__ import annotations

from collections.abc import Sequence


KeywordTable = Sequence[tuple[str, tuple[str, ...]]]


# Evaluated in order; the first category with a matching keyword wins.
DISASTER_KEYWORDS: KeywordTable = (
    ("earthquake", ("earthquake", "quake", "seismic", "tremor", "aftershock", "magnitude")),
    ("flood", ("flood", "flooding", "submerged", "inundation", "flash flood")),
    (
        "fire",
        ("wildfire", "fire", "blaze", "inferno", "burning", "forest fire", "brushfire"),
    ),
    ("storm", ("hurricane", "typhoon", "cyclone", "tornado", "storm", "blizzard")),
    ("volcano", ("volcano", "eruption", "lava", "volcanic")),
    ("tsunami", ("tsunami", "tidal wave")),
)

GDACS_TITLE_KEYWORDS: KeywordTable = (
    ("earthquake", ("earthquake", "quake")),
    ("flood", ("flood",)),
    ("storm", ("cyclone", "hurricane", "typhoon", "storm")),
    ("volcano", ("volcano", "eruption")),
    ("tsunami", ("tsunami",)),
    ("fire", ("fire",)),
)

ALARM_KEYWORDS: tuple[str, ...] = (
    "deadly",
    "deaths",
    "killed",
    "casualties",
    "devastating",
    "catastrophic",
    "emergency",
    "massive",
)

GDACS_ALERT_SEVERITY: dict[str, str] = {
    "red": "critical",
    "orange": "high",
    "green": "moderate",
}

EONET_CATEGORY_TYPES: dict[str, str] = {
    "Wildfires": "fire",
    "Floods": "flood",
    "Severe Storms": "storm",
    "Volcanoes": "volcano",
    "Tsunamis": "tsunami",
    "Earthquakes": "earthquake",
    "Drought": "other",
    "Sea and Lake Ice": "other",
    "Snow": "other",
    "Dust and Haze": "other",
    "Landslides": "other",
    "Manmade": "other",
}

EONET_TYPE_SEVERITY: dict[str, str] = {
    "tsunami": "critical",
    "fire": "high",
    "volcano": "high",
    "storm": "high",
    "flood": "moderate",
}

RELIEFWEB_TYPE_CODES: dict[str, str] = {
    "EQ": "earthquake",
    "FL": "flood",
    "TC": "storm",
    "VO": "volcano",
    "TS": "tsunami",
    "WF": "fire",
    "DR": "other",
    "EP": "other",
    "AC": "other",
    "OT": "other",
}


def classify_text(text: str, table: KeywordTable = DISASTER_KEYWORDS) -> str | None:
    lowered = text.casefold()
    for category, keywords in table:
        if any(kw in lowered for kw in keywords):
            return category
    return None


def has_alarm_keyword(text: str) -> bool:
    lowered = text.casefold()
    return any(word in lowered for word in ALARM_KEYWORDS)


def magnitude_severity(mag: float | None) -> str:
    if mag is None:
        return "low"
    if mag >= 6.5:
        return "critical"
    if mag >= 5.5:
        return "high"
    if mag >= 4.5:
        return "moderate"
    return "low"


def gdacs_alert_severity(alert_level: str | None) -> str:
    if not alert_level:
        return "moderate"
    return GDACS_ALERT_SEVERITY.get(alert_level.strip().casefold(), "moderate")


def social_severity(score: int, title: str) -> str:
    alarm = has_alarm_keyword(title)
    if score > 5000 or (score > 2000 and alarm):
        return "critical"
    if score > 1000 or alarm:
        return "high"
    if score > 200:
        return "moderate"
    return "low"
