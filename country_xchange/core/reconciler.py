from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, NamedTuple, Optional

from country_xchange.schemas import RawCountry

ExchangeRateTable = Dict[str, float]


class Reconciliation(NamedTuple):
    currency_code: Optional[str]
    exchange_rate: Optional[float]
    estimated_gdp: Optional[float]


@dataclass(frozen=True)
class EnrichedCountry:
    name: str
    capital: Optional[str]
    region: Optional[str]
    population: int
    flag_url: Optional[str]
    currency_code: Optional[str]
    exchange_rate: Optional[float]
    estimated_gdp: Optional[float]
    last_refreshed_at: Optional[datetime] = None

    def stamped(self, refreshed_at: datetime) -> "EnrichedCountry":
        return replace(self, last_refreshed_at=refreshed_at)


def estimate_gdp(population: int, exchange_rate: float) -> float:
    """Estimated GDP at full float precision; callers guarantee a rate."""
    return population * float(exchange_rate)


def reconcile(country: RawCountry, rates: ExchangeRateTable) -> Reconciliation:
    """Resolve a country's currency against the rate table.

    - no currencies listed: no code, no rate, GDP of exactly 0
    - first listed code found in ``rates``: GDP is population * rate
    - first listed code not found: the code is kept, rate and GDP are None
    """
    if not country.currencies:
        return Reconciliation(None, None, 0.0)

    # First listed currency wins
    currency_code = country.currencies[0].code
    if currency_code and currency_code in rates:
        exchange_rate = rates[currency_code]
        return Reconciliation(
            currency_code, exchange_rate, estimate_gdp(country.population, exchange_rate)
        )

    return Reconciliation(currency_code or None, None, None)


def enrich(country: RawCountry, rates: ExchangeRateTable) -> EnrichedCountry:
    currency_code, exchange_rate, estimated_gdp = reconcile(country, rates)
    return EnrichedCountry(
        name=country.name,
        capital=country.capital,
        region=country.region,
        population=country.population,
        flag_url=country.flag,
        currency_code=currency_code,
        exchange_rate=exchange_rate,
        estimated_gdp=estimated_gdp,
    )
