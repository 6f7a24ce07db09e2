import json
import os
import tempfile

# Point the app at a throwaway database before anything imports app.database
_tmpdir = tempfile.mkdtemp(prefix="floodmap-test-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ["CLEANUP_ENABLED"] = "false"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["API_KEY_ADMIN"] = "test-admin-key"

import pytest
from fastapi.testclient import TestClient

from app.database import SessionLocal, engine
from app.models import Base
from app.main import create_app

class FakeSocket:
    """Stands in for a WebSocket; records every text frame sent to it"""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_text(self, text: str):
        if self.fail:
            raise RuntimeError("socket is closed")
        self.sent.append(text)

    def messages(self):
        return [json.loads(t) for t in self.sent]

@pytest.fixture(autouse=True)
def _tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture
def make_socket():
    return FakeSocket

@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": "test-admin-key"}

@pytest.fixture
def api():
    return create_app()

@pytest.fixture
def client(api):
    # context manager keeps HTTP calls and websocket sessions on one event loop
    with TestClient(api) as c:
        yield c
