import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from bank_service.config import Settings
from bank_service.credentials import CredentialStore
from bank_service.db import init_db, make_engine
from bank_service.main import create_app
from bank_service.models import Role


@pytest.fixture
def settings():
    """In-memory database, quiet logs, no .env leakage"""
    return Settings(database_url="sqlite://", log_level="WARNING", _env_file=None)


@pytest.fixture
def client(settings):
    """Test client over a fresh app; the context manager runs startup/shutdown"""
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def engine(settings):
    engine = make_engine(settings)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def credentials():
    return CredentialStore(rounds=8)


@pytest.fixture
def alice(session, credentials):
    """A registered customer"""
    credentials.register(session, "alice", "pw1", Role.customer)
    return credentials.verify(session, "alice", "pw1")
