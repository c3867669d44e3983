from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


# --- Upstream payloads (untrusted) ---
class RawCurrency(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None

    class Config:
        extra = "ignore"


class RawCountry(BaseModel):
    name: str = Field(..., min_length=1)
    capital: Optional[str] = None
    region: Optional[str] = None
    population: int = Field(0, ge=0)
    flag: Optional[str] = None
    currencies: Optional[List[RawCurrency]] = None

    class Config:
        extra = "ignore"

    @field_validator("population", mode="before")
    @classmethod
    def missing_population_is_zero(cls, value):
        return 0 if value is None else value


# --- Read-path query ---
class GdpSortDirection(str, Enum):
    ASC = "gdp_asc"
    DESC = "gdp_desc"


class CountryQuery(BaseModel):
    region: Optional[str] = None
    currency: Optional[str] = None
    sort: Optional[GdpSortDirection] = None


# --- API responses ---
def as_utc(value):
    """Storage without timezone support (SQLite) hands back naive UTC times."""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CountryResponse(BaseModel):
    id: int
    name: str = Field(..., example="Nigeria")
    capital: Optional[str] = Field(None, example="Abuja")
    region: Optional[str] = Field(None, example="Africa")
    population: int = Field(..., example=206139589)
    currency_code: Optional[str] = Field(None, example="NGN")
    exchange_rate: Optional[float] = Field(None, example=1600.23)
    estimated_gdp: Optional[float] = Field(None, example=329843117222.47)
    flag_url: Optional[str] = None
    last_refreshed_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("last_refreshed_at")
    @classmethod
    def refreshed_at_as_utc(cls, value):
        return as_utc(value)


class StatusResponse(BaseModel):
    total_countries: int
    last_refreshed_at: Optional[datetime]

    @field_validator("last_refreshed_at")
    @classmethod
    def refreshed_at_as_utc(cls, value):
        return as_utc(value)


class RefreshResponse(BaseModel):
    message: str
    total_countries: int
    persisted: int
    failed: List[str]
    last_refreshed_at: datetime


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
