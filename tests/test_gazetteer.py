import random

from geo.gazetteer import Place, default_places, jitter, match_place_in_text


def _place(name: str, lat: float, lng: float) -> Place:
    return Place(name=name, normalized_name=name.casefold(), lat=lat, lng=lng)


def test_match_place_in_text_word_boundaries() -> None:
    places = [
        _place("Oman", 21.0, 57.0),
        _place("Japan", 36.0, 138.0),
        _place("New Zealand", -40.9, 174.9),
    ]
    assert match_place_in_text(places, "A woman was rescued.") is None
    assert match_place_in_text(places, "Earthquake in Japan").name == "Japan"
    assert match_place_in_text(places, "Flooding in New-Zealand today").name == (
        "New Zealand"
    )


def test_match_place_first_entry_wins() -> None:
    places = [_place("Japan", 36.0, 138.0), _place("China", 35.9, 104.2)]
    match = match_place_in_text(places, "Storm moves from China towards Japan")
    assert match is not None
    assert match.name == "Japan"


def test_default_places_loaded_in_file_order() -> None:
    places = default_places()
    assert places[0].name == "Turkey"
    names = {p.name for p in places}
    assert {"Los Angeles", "New Zealand", "Alaska"} <= names


def test_jitter_stays_within_one_degree() -> None:
    rng = random.Random(7)
    for _ in range(200):
        lat, lng = jitter(36.2, 138.2, rng)
        assert abs(lat - 36.2) <= 1.0
        assert abs(lng - 138.2) <= 1.0
