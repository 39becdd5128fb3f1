# test/conftest.py
import os
import sys
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Make the root-level modules (app, config, ...) importable
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _prepare_test_env() -> None:
    tmp = (ROOT / ".pytest_tmp").absolute()
    tmp.mkdir(exist_ok=True)

    # Throwaway SQLite database, recreated for every test session
    db_path = tmp / "board_exams.sqlite3"
    if db_path.exists():
        db_path.unlink()
    os.environ["DATABASE_URL"] = f"sqlite:///{db_path.as_posix()}"

    # Settings read at import time; must be set before app/config are imported
    os.environ["SECRET_KEY"] = "test-signing-secret"
    os.environ["SESSION_SECRET"] = "test-session-secret"
    os.environ["ENVIRONMENT"] = "test"
    os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
    os.environ["RATE_LIMIT_PER_HOUR"] = "100000"
    os.environ["LOG_FILE"] = (tmp / "app.log").as_posix()


_prepare_test_env()


@pytest.fixture(scope="session")
def client():
    """
    Test client against a fresh SQLite database in .pytest_tmp/.
    Entering the context runs the lifespan, which bootstraps tables and views.
    """
    from app import app
    with TestClient(app) as c:
        yield c


def unique(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def register_and_login(client, role: str, **extra) -> dict:
    """Register a user with the given role and return bearer auth headers."""
    username = unique(role)
    payload = {
        "username": username,
        "email": f"{username}@example.com",
        "password": "secret123",
        "role": role,
    }
    payload.update(extra)
    r = client.post("/api/auth/register", json=payload)
    assert r.status_code == 201, r.text

    r = client.post("/api/auth/login", json={"username": username, "password": "secret123"})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture(scope="session")
def admin_headers(client):
    return register_and_login(client, "admin")


@pytest.fixture(scope="session")
def coordinator_headers(client):
    return register_and_login(client, "coordinator")


@pytest.fixture
def reference_data(client, coordinator_headers):
    """A school, a subject and an examiner teaching it there."""
    r = client.post(
        "/api/schools",
        json={"school_name": unique("School"), "location": "Delhi"},
        headers=coordinator_headers,
    )
    assert r.status_code == 201, r.text
    school_id = r.json()["school_id"]

    r = client.post(
        "/api/subjects",
        json={"subject_name": unique("Science"), "subject_code": unique("SCI")[:20]},
        headers=coordinator_headers,
    )
    assert r.status_code == 201, r.text
    subject_id = r.json()["subject_id"]

    r = client.post(
        "/api/examiners",
        json={
            "examiner_name": unique("Examiner"),
            "school_id": school_id,
            "subject_id": subject_id,
            "qualification": "M.Sc",
            "experience_years": 5,
        },
        headers=coordinator_headers,
    )
    assert r.status_code == 201, r.text
    examiner_id = r.json()["examiner_id"]

    return {"school_id": school_id, "subject_id": subject_id, "examiner_id": examiner_id}
