import pytest
from fastapi.testclient import TestClient

from chs.db import ServiceStore
from chs.handlers import HandlerWriter
from chs.server import create_app
from chs.settings import ServerSettings

HANDSHAKE_KEY = "test-key-123"


@pytest.fixture
def settings(tmp_path):
    return ServerSettings(
        handshake_key=HANDSHAKE_KEY,
        db_path=str(tmp_path / "private" / "db.sqlite3"),
        handlers_dir=str(tmp_path / "handlers"),
    )


@pytest.fixture
def store(settings):
    s = ServiceStore(settings.db_path)
    s.init_db()
    return s


@pytest.fixture
def writer(settings, store):
    return HandlerWriter(settings.handlers_dir, store)


@pytest.fixture
def client(settings, store, writer):
    with TestClient(create_app(settings, store=store, writer=writer)) as c:
        yield c


@pytest.fixture
def auth():
    return {"X-Handshake-Key": HANDSHAKE_KEY}
