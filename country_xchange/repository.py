import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func

from country_xchange.core.errors import RecordPersistError
from country_xchange.core.reconciler import EnrichedCountry
from country_xchange.models import Country
from country_xchange.schemas import CountryQuery, GdpSortDirection

logger = logging.getLogger("country_xchange.repository")

UPSERT_FIELDS = (
    "capital",
    "region",
    "population",
    "flag_url",
    "currency_code",
    "exchange_rate",
    "estimated_gdp",
    "last_refreshed_at",
)


class CountryRepository:
    """Storage for enriched countries, keyed by name."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @contextmanager
    def session(self):
        """Provide a session that commits on success and rolls back on error."""
        db_session = self.session_factory()
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise
        finally:
            db_session.close()

    def upsert(self, record: EnrichedCountry) -> EnrichedCountry:
        """Insert the record or replace every field of the stored one.

        ``last_refreshed_at`` is stamped here, at call time. Returns the
        stamped record.
        """
        stamped = record.stamped(datetime.now(timezone.utc))
        try:
            with self.session() as db_session:
                existing = (
                    db_session.query(Country).filter(Country.name == stamped.name).first()
                )
                if existing is None:
                    existing = Country(name=stamped.name)
                    db_session.add(existing)
                for field in UPSERT_FIELDS:
                    setattr(existing, field, getattr(stamped, field))
        except Exception as e:
            # Driver errors such as OverflowError are not SQLAlchemyError
            raise RecordPersistError(stamped.name, str(e)) from e
        return stamped

    def count(self) -> int:
        with self.session() as db_session:
            return db_session.query(func.count(Country.id)).scalar() or 0

    def find_latest_refresh_timestamp(self) -> Optional[datetime]:
        with self.session() as db_session:
            return db_session.query(func.max(Country.last_refreshed_at)).scalar()

    def find_by_name(self, name: str) -> Optional[Country]:
        with self.session() as db_session:
            country = (
                db_session.query(Country)
                .filter(func.lower(Country.name) == name.lower())
                .first()
            )
            if country is not None:
                db_session.expunge(country)
            return country

    def find_many(self, query: CountryQuery) -> List[Country]:
        with self.session() as db_session:
            rows = db_session.query(Country)

            if query.region:
                rows = rows.filter(func.lower(Country.region) == query.region.lower())
            if query.currency:
                rows = rows.filter(
                    func.lower(Country.currency_code) == query.currency.lower()
                )

            if query.sort is GdpSortDirection.DESC:
                rows = rows.order_by(Country.estimated_gdp.desc().nulls_last(), Country.id)
            elif query.sort is GdpSortDirection.ASC:
                rows = rows.order_by(Country.estimated_gdp.asc().nulls_last(), Country.id)
            else:
                rows = rows.order_by(Country.id)

            countries = rows.all()
            db_session.expunge_all()
            return countries

    def delete_by_name(self, name: str) -> bool:
        with self.session() as db_session:
            country = (
                db_session.query(Country)
                .filter(func.lower(Country.name) == name.lower())
                .first()
            )
            if country is None:
                return False
            db_session.delete(country)
        logger.info("Deleted country '%s'", name)
        return True
