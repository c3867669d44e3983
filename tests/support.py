import httpx

from country_xchange.config import Config

COUNTRIES_URL = "https://countries.test/all"
RATES_URL = "https://rates.test/latest/USD"


class FakeConfig(Config):
    countries_api_url = COUNTRIES_URL
    exchange_rate_api_url = RATES_URL
    fetch_timeout = 5.0


def make_transport(countries=None, rates=None, countries_status=200, rates_status=200):
    """MockTransport answering the two upstream URLs with canned payloads."""

    def handler(request: httpx.Request):
        url = str(request.url)
        if url == COUNTRIES_URL:
            return httpx.Response(countries_status, json=countries or [])
        if url == RATES_URL:
            return httpx.Response(rates_status, json={"result": "success", "rates": rates or {}})
        return httpx.Response(404)

    return httpx.MockTransport(handler)
