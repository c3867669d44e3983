import asyncio
import logging
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

import httpx

from country_xchange.config import Config
from country_xchange.core.artifact import ArtifactCache
from country_xchange.core.errors import (
    ArtifactRenderError,
    RecordPersistError,
    SourceUnavailable,
)
from country_xchange.core.fetchers import fetch_countries, fetch_exchange_rates
from country_xchange.core.reconciler import EnrichedCountry, enrich


class RefreshState(str, Enum):
    IDLE = "idle"
    FETCHING_COUNTRIES = "fetching_countries"
    FETCHING_RATES = "fetching_rates"
    RECONCILING = "reconciling"
    PERSISTING = "persisting"
    RENDERING_ARTIFACT = "rendering_artifact"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RefreshOutcome:
    refreshed_at: datetime
    fetched: int = 0
    persisted: int = 0
    failed: List[str] = field(default_factory=list)
    artifact_path: Optional[str] = None


class RefreshOrchestrator:
    """Runs one refresh: fetch, reconcile, upsert each record, render summary.

    A fetch failure aborts before anything is written. Upserts are
    best-effort: a record that fails to persist is logged and skipped, the
    remaining records are still written and the summary image is still
    rendered from the full in-memory batch. A render failure does not undo
    the upserts already committed.
    """

    def __init__(self, sink, artifacts, config=Config, logger=None, transport=None):
        self.sink = sink
        self.artifacts = artifacts
        self.config = config
        self.logger = logger or logging.getLogger("country_xchange.refresh")
        self.transport = transport
        self.state = RefreshState.IDLE
        self.failure = None

    def _enter(self, state):
        self.logger.debug("Refresh state %s -> %s", self.state.value, state.value)
        self.state = state

    def _fail(self, error):
        self.failure = error
        self._enter(RefreshState.FAILED)

    async def run(self) -> RefreshOutcome:
        try:
            return await self._run()
        except Exception as e:
            self._fail(e)
            raise

    async def _run(self) -> RefreshOutcome:
        async with httpx.AsyncClient(
            timeout=self.config.fetch_timeout, transport=self.transport
        ) as client:
            self._enter(RefreshState.FETCHING_COUNTRIES)
            countries = await fetch_countries(client, self.config.countries_api_url)

            self._enter(RefreshState.FETCHING_RATES)
            rates = await fetch_exchange_rates(client, self.config.exchange_rate_api_url)

        self._enter(RefreshState.RECONCILING)
        records = [enrich(country, rates) for country in countries]
        outcome = RefreshOutcome(
            refreshed_at=datetime.now(timezone.utc), fetched=len(records)
        )

        self._enter(RefreshState.PERSISTING)
        await self._persist(records, outcome)

        self._enter(RefreshState.RENDERING_ARTIFACT)
        try:
            outcome.artifact_path = await asyncio.to_thread(
                self.artifacts.render_summary, records, outcome.refreshed_at
            )
        except ArtifactRenderError as e:
            e.outcome = outcome
            self.logger.error("Summary image generation failed: %s", e.details)
            raise

        self._enter(RefreshState.DONE)
        self.logger.info(
            "Refresh complete: %d fetched, %d persisted, %d failed",
            outcome.fetched,
            outcome.persisted,
            len(outcome.failed),
        )
        return outcome

    async def _persist(self, records: List[EnrichedCountry], outcome: RefreshOutcome):
        for record in records:
            try:
                await asyncio.to_thread(self.sink.upsert, record)
            except RecordPersistError as e:
                self.logger.warning("Skipping country '%s': %s", e.name, e.details)
                outcome.failed.append(e.name)
            else:
                outcome.persisted += 1


def refresh_main(config=Config, transport=None):
    """Run a single refresh from the command line. Returns the exit code."""
    from country_xchange.database import SessionLocal, init_db
    from country_xchange.logging_config import init_logging
    from country_xchange.repository import CountryRepository

    init_logging()
    logger = logging.getLogger("country_xchange.refresh")
    start_time = time.time()

    init_db()
    orchestrator = RefreshOrchestrator(
        CountryRepository(SessionLocal),
        ArtifactCache(config.cache_dir, config.summary_image_name),
        config=config,
        logger=logger,
        transport=transport,
    )

    try:
        outcome = asyncio.run(orchestrator.run())
    except SourceUnavailable as e:
        logger.error("Aborting refresh, upstream unavailable: %s", e)
        return 1
    except ArtifactRenderError as e:
        logger.error("Countries refreshed but the summary image failed: %s", e.details)
        return 2

    logger.info("-> Countries persisted: %d", outcome.persisted)
    if outcome.failed:
        logger.warning("-> Countries failed: %s", ", ".join(outcome.failed))
    logger.info("-> Last refresh time: %s", outcome.refreshed_at.isoformat())
    logger.info("Total time taken: %.2f seconds.", time.time() - start_time)
    return 0


if __name__ == "__main__":
    sys.exit(refresh_main())
