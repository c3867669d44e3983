import asyncio
from datetime import datetime, timedelta

import pytest

from country_xchange.api.dependencies import get_repository
from country_xchange.core.reconciler import EnrichedCountry
from country_xchange.repository import CountryRepository

COUNTRIES = [
    {"name": "Arcadia", "region": "Europe", "population": 1000, "currencies": [{"code": "ARC"}]},
    {"name": "Noland", "region": "Oceania", "population": 500, "currencies": []},
    {"name": "Ghostia", "region": "Europe", "population": 10, "currencies": [{"code": "GHO"}]},
    {"name": "Bigland", "region": "Asia", "population": 4000, "currencies": [{"code": "BIG"}]},
]
RATES = {"ARC": 2.5, "BIG": 1.5}


def test_root_ok(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "endpoints" in r.json()


def test_status_before_any_refresh(client):
    r = client.get("/status")
    assert r.status_code == 200
    assert r.json() == {"total_countries": 0, "last_refreshed_at": None}


def test_image_before_any_refresh_is_not_found(client):
    r = client.get("/countries/image")
    assert r.status_code == 404
    assert r.headers.get("content-type", "").startswith("application/json")
    assert r.json() == {"error": "Summary image not found"}


def test_refresh_stores_countries_and_image(client, use_upstream):
    use_upstream(countries=COUNTRIES, rates=RATES)

    r = client.post("/countries/refresh")
    assert r.status_code == 200
    body = r.json()
    assert body["total_countries"] == 4
    assert body["persisted"] == 4
    assert body["failed"] == []

    arcadia = client.get("/countries/Arcadia").json()
    assert arcadia["currency_code"] == "ARC"
    assert arcadia["exchange_rate"] == 2.5
    assert arcadia["estimated_gdp"] == 2500

    noland = client.get("/countries/noland").json()
    assert noland["currency_code"] is None
    assert noland["exchange_rate"] is None
    assert noland["estimated_gdp"] == 0

    ghostia = client.get("/countries/Ghostia").json()
    assert ghostia["currency_code"] == "GHO"
    assert ghostia["exchange_rate"] is None
    assert ghostia["estimated_gdp"] is None

    image = client.get("/countries/image")
    assert image.status_code == 200
    assert image.headers["content-type"] == "image/png"
    assert image.content.startswith(b"\x89PNG")

    status = client.get("/status").json()
    assert status["total_countries"] == 4
    assert status["last_refreshed_at"] is not None


def test_failed_rates_fetch_leaves_status_unchanged(client, use_upstream):
    use_upstream(countries=COUNTRIES, rates=RATES)
    client.post("/countries/refresh")
    before = client.get("/status").json()

    use_upstream(countries=COUNTRIES[:1], rates=RATES, rates_status=500)
    r = client.post("/countries/refresh")

    assert r.status_code == 503
    assert r.json() == {
        "error": "External data source unavailable",
        "details": "Could not fetch data from Exchange Rate API",
    }
    assert client.get("/status").json() == before


def test_failed_countries_fetch_writes_nothing(client, use_upstream, artifacts):
    use_upstream(countries=COUNTRIES, rates=RATES, countries_status=502)

    r = client.post("/countries/refresh")

    assert r.status_code == 503
    assert r.json()["details"] == "Could not fetch data from REST Countries API"
    assert client.get("/status").json()["total_countries"] == 0
    assert not artifacts.exists()


def test_render_failure_is_reported_distinctly(client, use_upstream, artifacts, monkeypatch):
    use_upstream(countries=COUNTRIES, rates=RATES)

    def broken_image(records, refreshed_at, image_path):
        raise OSError("read-only file system")

    monkeypatch.setattr("country_xchange.core.artifact.generate_summary_image", broken_image)

    r = client.post("/countries/refresh")

    assert r.status_code == 500
    assert r.json()["error"] == "Summary image generation failed"
    # Upserts are kept
    assert client.get("/status").json()["total_countries"] == 4


def test_list_filters_and_sorts(client, use_upstream):
    use_upstream(countries=COUNTRIES, rates=RATES)
    client.post("/countries/refresh")

    r = client.get("/countries", params={"region": "EUROPE"})
    assert r.status_code == 200
    assert {c["name"] for c in r.json()} == {"Arcadia", "Ghostia"}

    r = client.get("/countries", params={"currency": "big"})
    assert [c["name"] for c in r.json()] == ["Bigland"]

    r = client.get("/countries", params={"sort": "gdp_desc"})
    assert [c["name"] for c in r.json()] == ["Bigland", "Arcadia", "Noland", "Ghostia"]

    r = client.get("/countries", params={"sort": "gdp_asc"})
    assert [c["name"] for c in r.json()] == ["Noland", "Arcadia", "Bigland", "Ghostia"]


def test_list_rejects_unknown_sort(client):
    r = client.get("/countries", params={"sort": "population_desc"})
    assert r.status_code == 400
    assert r.json()["error"] == "Validation failed"


def test_country_not_found_error_shape(client):
    r = client.get("/countries/does-not-exist")
    assert r.status_code == 404
    assert r.json() == {"error": "Country not found"}


def test_delete_country(client, repository):
    repository.upsert(
        EnrichedCountry(
            name="Arcadia",
            capital=None,
            region="Europe",
            population=1000,
            flag_url=None,
            currency_code="ARC",
            exchange_rate=2.5,
            estimated_gdp=2500.0,
        )
    )

    r = client.delete("/countries/arcadia")
    assert r.status_code == 200
    assert client.get("/countries/Arcadia").status_code == 404

    r = client.delete("/countries/arcadia")
    assert r.status_code == 404
    assert r.json() == {"error": "Country not found"}


def test_refresh_counts_off_the_event_loop(client, use_upstream, app_overrides, session_factory):
    class LoopCheckingRepository(CountryRepository):
        def count(self):
            # Raises when called from the thread running the event loop
            with pytest.raises(RuntimeError):
                asyncio.get_running_loop()
            return super().count()

    app_overrides.dependency_overrides[get_repository] = lambda: LoopCheckingRepository(
        session_factory
    )
    use_upstream(countries=COUNTRIES, rates=RATES)

    r = client.post("/countries/refresh")

    assert r.status_code == 200
    assert r.json()["total_countries"] == 4


def test_timestamps_carry_utc_offset(client, use_upstream):
    use_upstream(countries=COUNTRIES, rates=RATES)
    client.post("/countries/refresh")

    status_ts = client.get("/status").json()["last_refreshed_at"]
    country_ts = client.get("/countries/Arcadia").json()["last_refreshed_at"]

    for value in (status_ts, country_ts):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        assert parsed.utcoffset() == timedelta(0)
