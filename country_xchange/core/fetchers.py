import logging
from numbers import Real
from typing import List

import httpx
from pydantic import ValidationError

from country_xchange.core.errors import SourceUnavailable
from country_xchange.core.reconciler import ExchangeRateTable
from country_xchange.schemas import RawCountry

COUNTRIES_SOURCE = "REST Countries API"
RATES_SOURCE = "Exchange Rate API"

logger = logging.getLogger("country_xchange.fetchers")


async def _get_json(client: httpx.AsyncClient, url: str, source: str):
    try:
        response = await client.get(url)
        response.raise_for_status()
        return response.json()
    except httpx.TimeoutException:
        raise SourceUnavailable(source, "Request timeout")
    except httpx.HTTPError as e:
        raise SourceUnavailable(source, str(e)) from e
    except ValueError as e:
        # Body was not valid JSON
        raise SourceUnavailable(source, f"Invalid JSON payload: {e}") from e


async def fetch_countries(client: httpx.AsyncClient, url: str) -> List[RawCountry]:
    """Fetch the countries catalog, skipping entries that fail validation."""
    payload = await _get_json(client, url, COUNTRIES_SOURCE)
    if not isinstance(payload, list):
        raise SourceUnavailable(COUNTRIES_SOURCE, "Expected a list of countries")

    countries = []
    for item in payload:
        try:
            countries.append(RawCountry.model_validate(item))
        except ValidationError as e:
            name = item.get("name") if isinstance(item, dict) else None
            logger.warning(
                "Skipping malformed country entry %r (%d validation errors)",
                name,
                e.error_count(),
            )
    logger.info("Fetched %d countries from %s", len(countries), COUNTRIES_SOURCE)
    return countries


async def fetch_exchange_rates(client: httpx.AsyncClient, url: str) -> ExchangeRateTable:
    """Fetch the rate table from the ``rates`` field of the payload."""
    payload = await _get_json(client, url, RATES_SOURCE)
    rates = payload.get("rates") if isinstance(payload, dict) else None
    if not isinstance(rates, dict):
        raise SourceUnavailable(RATES_SOURCE, "Missing 'rates' object")

    table = {}
    for code, rate in rates.items():
        if isinstance(rate, bool) or not isinstance(rate, Real) or rate <= 0:
            logger.debug("Ignoring unusable rate %r for %s", rate, code)
            continue
        table[code] = float(rate)
    logger.info("Fetched %d exchange rates from %s", len(table), RATES_SOURCE)
    return table
