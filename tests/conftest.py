import pytest
from fastapi.testclient import TestClient

from pasteboard.api.auth import AuthService
from pasteboard.api.config import Settings
from pasteboard.api.database import create_db_engine, create_session_factory, init_schema
from pasteboard.api.main import create_app
from pasteboard.api.notes import NotesService


@pytest.fixture
def make_settings(tmp_path):
    """Factory for settings pointing at a throwaway SQLite file."""

    def _make(**overrides) -> Settings:
        values = {
            "database_url": f"sqlite:///{tmp_path / 'pasteboard-test.db'}",
            "session_secret": "test-secret",
            "secret_from_env": True,
            "bcrypt_rounds": 4,
            "log_level": "WARNING",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def session_factory(settings):
    engine = create_db_engine(settings.database_url)
    init_schema(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def auth_service(session_factory, settings):
    return AuthService(session_factory, settings)


@pytest.fixture
def notes_service(session_factory):
    return NotesService(session_factory)


@pytest.fixture
def make_client(make_settings):
    """Factory for a TestClient whose lifespan has already run."""
    clients = []

    def _make(**overrides) -> TestClient:
        client = TestClient(create_app(make_settings(**overrides)))
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()
