from __future__ import annotations

"""Functional test bootstrap for the exam authoring API.

Points the service at a file-backed SQLite database shared across the
process and applies the SQL migrations once at session start, before any
test builds the FastAPI app via TestClient. Each test creates its own Test
rows, so tests stay independent without truncating tables.
"""

import os
import pathlib
import uuid

import pytest

_ROOT = pathlib.Path(__file__).resolve().parents[2]
_DB_FILE = _ROOT / "tmp" / "functional_tests.db"
_DB_FILE.parent.mkdir(parents=True, exist_ok=True)
if _DB_FILE.exists():
    _DB_FILE.unlink()

# Must be set before exam_authoring reads its configuration
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
# Disable app startup auto-migrations; we apply them explicitly below
os.environ["AUTO_APPLY_MIGRATIONS"] = "0"


def _apply_sqlite_migrations() -> None:
    from exam_authoring.db.base import get_engine
    from exam_authoring.db.migrations_runner import apply_migrations

    engine = get_engine(os.environ["TEST_DATABASE_URL"])
    apply_migrations(engine, migrations_dir=str(_ROOT / "migrations"))


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap():
    """Session-level bootstrap: apply migrations once for the shared DB."""
    _apply_sqlite_migrations()
    yield


@pytest.fixture()
def client():
    from fastapi.testclient import TestClient

    from exam_authoring.main import create_app

    with TestClient(create_app(), raise_server_exceptions=False) as c:
        yield c


@pytest.fixture()
def owner_headers() -> dict[str, str]:
    return {"X-User-Id": f"user-{uuid.uuid4()}"}


@pytest.fixture()
def new_test(client, owner_headers):
    """Create a draft test for the current owner and return its id."""

    def _create(title: str = "Physics mock") -> str:
        resp = client.post("/api/v1/tests", json={"title": title, "totalDuration": 90}, headers=owner_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["test"]["id"]

    return _create
