# tests/conftest.py
import os
import tempfile

import pytest

# Backend modules read env vars at import time; set them before anything imports backend.*
_TMP = tempfile.mkdtemp(prefix="brd-studio-tests-")
os.environ["MOCK_LLM"] = "true"
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP, "import.db")
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["LOG_AS_JSON"] = "false"

from fastapi.testclient import TestClient  # noqa: E402

from backend import db as dbmod  # noqa: E402
from backend import storage  # noqa: E402
from backend.app import app  # noqa: E402
from frontend.api_client import BRDApiClient  # noqa: E402


@pytest.fixture
def fresh_db(tmp_path, monkeypatch):
    """A throwaway SQLite file and upload dir per test."""
    dbmod.reconfigure("sqlite:///" + str(tmp_path / "brds.db"))
    dbmod.init_db()
    monkeypatch.setattr(storage, "UPLOAD_DIR", str(tmp_path / "uploads"))
    yield tmp_path
    dbmod.engine.dispose()


@pytest.fixture
def client(fresh_db):
    return TestClient(app)


@pytest.fixture
def api(client):
    """The frontend's API client talking to the app in-process."""
    return BRDApiClient("http://testserver", http=client, timeout=None)
