import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from country_xchange.api.dependencies import (
    get_artifact_cache,
    get_http_transport,
    get_session_factory,
)
from country_xchange.core.artifact import ArtifactCache
from country_xchange.database import init_db
from country_xchange.repository import CountryRepository
from support import FakeConfig, make_transport


@pytest.fixture()
def session_factory():
    # Use StaticPool to keep a single in-memory DB across threads/requests
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


@pytest.fixture()
def repository(session_factory):
    return CountryRepository(session_factory)


@pytest.fixture()
def artifacts(tmp_path):
    return ArtifactCache(str(tmp_path / "cache"))


@pytest.fixture()
def app_overrides(session_factory, artifacts, monkeypatch):
    from main import app

    monkeypatch.setattr("country_xchange.api.dependencies.Config", FakeConfig)
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_artifact_cache] = lambda: artifacts
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def client(app_overrides):
    return TestClient(app_overrides)


@pytest.fixture()
def use_upstream(app_overrides):
    """Point refreshes at canned upstream responses."""

    def _use(**kwargs):
        transport = make_transport(**kwargs)
        app_overrides.dependency_overrides[get_http_transport] = lambda: transport
        return transport

    return _use
