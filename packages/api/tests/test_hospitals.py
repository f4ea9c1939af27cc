# This project was developed with assistance from AI tools.
"""Tests for hospital autocomplete."""

from src.services.hospitals import MAX_RESULTS, Hospital, load_hospitals, search_hospitals

_SAMPLE = (
    Hospital(id="h1", name="Strong Memorial Hospital", city="Rochester", state="NY"),
    Hospital(id="h2", name="Mayo Clinic Hospital", city="Rochester", state="MN"),
    Hospital(id="h3", name="Mercy Hospital", city="Springfield", state="MO"),
)


class TestSearchHospitals:
    def test_short_query_returns_nothing(self):
        assert search_hospitals("r", _SAMPLE) == []
        assert search_hospitals("  r  ", _SAMPLE) == []

    def test_matches_city_case_insensitive(self):
        ids = [h.id for h in search_hospitals("ROCHESTER", _SAMPLE)]
        assert ids == ["h1", "h2"]

    def test_matches_name(self):
        assert [h.id for h in search_hospitals("mercy", _SAMPLE)] == ["h3"]

    def test_matches_state(self):
        assert [h.id for h in search_hospitals("mn", _SAMPLE)] == ["h2"]

    def test_result_cap(self):
        many = tuple(
            Hospital(id=f"h{i}", name=f"General {i}", city="Town", state="TX") for i in range(20)
        )
        assert len(search_hospitals("general", many)) == MAX_RESULTS


class TestBundledDirectory:
    def test_loads(self):
        hospitals = load_hospitals()
        assert len(hospitals) > MAX_RESULTS
        assert len({h.id for h in hospitals}) == len(hospitals)


class TestHospitalsRoute:
    def test_suggestions(self, client):
        response = client.get("/api/hospitals", params={"query": "rochester"})
        assert response.status_code == 200
        subtitles = {item["subtitle"] for item in response.json()}
        assert subtitles == {"Rochester, NY", "Rochester, MN"}

    def test_empty_query(self, client):
        response = client.get("/api/hospitals")
        assert response.status_code == 200
        assert response.json() == []
