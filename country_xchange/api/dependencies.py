import logging

from fastapi import Depends

from country_xchange.config import Config
from country_xchange.core.artifact import ArtifactCache
from country_xchange.core.refresh import RefreshOrchestrator
from country_xchange.database import SessionLocal
from country_xchange.repository import CountryRepository


def get_session_factory():
    return SessionLocal


def get_repository(session_factory=Depends(get_session_factory)) -> CountryRepository:
    return CountryRepository(session_factory)


def get_artifact_cache() -> ArtifactCache:
    return ArtifactCache(Config.cache_dir, Config.summary_image_name)


def get_http_transport():
    """Transport for upstream calls; ``None`` means httpx's default network transport."""
    return None


def get_orchestrator(
    repository: CountryRepository = Depends(get_repository),
    artifacts: ArtifactCache = Depends(get_artifact_cache),
    transport=Depends(get_http_transport),
) -> RefreshOrchestrator:
    return RefreshOrchestrator(
        repository,
        artifacts,
        config=Config,
        logger=logging.getLogger("country_xchange.refresh"),
        transport=transport,
    )
