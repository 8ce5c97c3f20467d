import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# engine is built at import time, so point it at a scratch database first
_DB_DIR = tempfile.mkdtemp(prefix="task-api-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_DB_DIR) / 'tasks.db'}"

from fastapi.testclient import TestClient  # noqa: E402

from task_api.main import app  # noqa: E402
from task_api.models import metadata  # noqa: E402
from task_api.repository import SessionLocal, engine  # noqa: E402


@pytest.fixture(autouse=True)
def clean_db():
    metadata.drop_all(bind=engine)
    metadata.create_all(bind=engine)
    yield


@pytest.fixture
def session():
    with SessionLocal() as s:
        yield s


@pytest.fixture
def client():
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def future():
    """Returns a timestamp the given number of days from now, ISO formatted."""
    def _future(days: int = 1) -> str:
        return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()
    return _future


@pytest.fixture
def make_task(client, future):
    def _make(title: str = "Buy milk", days: int = 1, **fields) -> dict:
        payload = {
            "title": title,
            "description": fields.pop("description", f"{title} description"),
            "dueDate": future(days),
            **fields,
        }
        response = client.post("/tasks", json=payload)
        assert response.status_code == 201, response.text
        return response.json()
    return _make
