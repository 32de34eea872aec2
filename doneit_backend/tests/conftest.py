import os
import tempfile

import pytest
from fastapi.testclient import TestClient

# Keep tests on the embedded backend and away from the working directory
os.environ.pop("DATABASE_URL", None)
os.environ.setdefault("SQLITE_DB_PATH", os.path.join(tempfile.mkdtemp(prefix="doneit-"), "doneit.db"))

from src.api.db import SQLiteRepository  # noqa: E402
from src.api.main import app  # noqa: E402
from src.api.repositories import get_repository  # noqa: E402

STRONG_PASSWORD = "Str0ngPass!"


@pytest.fixture
def repo(tmp_path):
    repository = SQLiteRepository(str(tmp_path / "doneit.db"))
    repository.ensure_initialized()
    return repository


@pytest.fixture
def make_client(repo):
    app.dependency_overrides[get_repository] = lambda: repo
    clients = []

    def _make() -> TestClient:
        # Each client keeps its own cookie jar, i.e. its own session
        c = TestClient(app)
        clients.append(c)
        return c

    yield _make
    for c in clients:
        c.close()
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()


def register(client: TestClient, username: str = "alice", password: str = STRONG_PASSWORD) -> dict:
    res = client.post("/api/v1/auth/register", json={"username": username, "password": password})
    assert res.status_code == 201, res.text
    return res.json()["user"]


@pytest.fixture
def alice(client):
    """A client logged in as alice."""
    register(client, "alice")
    return client
