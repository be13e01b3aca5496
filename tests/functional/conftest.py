from __future__ import annotations

"""Functional test bootstrap.

Each test gets its own file-backed SQLite database under pytest's tmp_path
with all migrations applied, so tests never share rows. The `client`
fixture builds the FastAPI app against that database; `auth` mints bearer
headers signed with the test secret.
"""

import itertools
from typing import Any, Callable, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from formbuilder.config import AuthConfig
from formbuilder.db.base import get_engine, reset_engine
from formbuilder.db.migrations_runner import apply_migrations
from formbuilder.http.identity import issue_token
from formbuilder.logic.events import get_buffered_events

TEST_SECRET = "functional-test-signing-key-0123456789"


@pytest.fixture(autouse=True)
def fresh_database(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'formbuilder.db'}"
    monkeypatch.setenv("TEST_DATABASE_URL", url)
    monkeypatch.setenv("FORMBUILDER_JWT_SECRET", TEST_SECRET)
    monkeypatch.delenv("FORMBUILDER_JWT_AUDIENCE", raising=False)
    monkeypatch.delenv("FORMBUILDER_JWT_ALGORITHM", raising=False)
    reset_engine()
    engine = get_engine(url)
    apply_migrations(engine)
    get_buffered_events(clear=True)
    yield engine
    reset_engine()


@pytest.fixture
def client(fresh_database) -> TestClient:
    from formbuilder.main import create_app

    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def auth() -> Callable[[str], Dict[str, str]]:
    config = AuthConfig(jwt_secret=TEST_SECRET)

    def _headers(user_id: str, **claims: Any) -> Dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(user_id, config, **claims)}"}

    return _headers


@pytest.fixture
def tick(monkeypatch) -> Callable[[], None]:
    """Give write flows strictly increasing timestamps so ordering is deterministic."""
    counter = itertools.count(1)

    def fake_now() -> str:
        return f"2026-01-01T00:00:{next(counter):02d}.000Z"

    import formbuilder.logic.forms_write as forms_write
    import formbuilder.logic.response_submission as response_submission

    monkeypatch.setattr(forms_write, "utc_now", fake_now)
    monkeypatch.setattr(response_submission, "utc_now", fake_now)
    return fake_now


def question(label: str, type_: str = "TEXT", required: bool = False, **extra: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"label": label, "type": type_, "required": required}
    payload.update(extra)
    return payload


def options(*values: str) -> List[Dict[str, str]]:
    return [{"label": v.title(), "value": v} for v in values]


@pytest.fixture
def make_form(client, auth) -> Callable[..., Dict[str, Any]]:
    """Create (and optionally publish) a form over HTTP; returns the created body."""

    def _make(
        owner: str = "owner-1",
        questions: Optional[List[Dict[str, Any]]] = None,
        *,
        title: str = "Survey",
        publish: bool = True,
    ) -> Dict[str, Any]:
        body = {"title": title, "questions": questions or [question("Name", required=True)]}
        created = client.post("/api/v1/forms", json=body, headers=auth(owner))
        assert created.status_code == 201, created.text
        form = created.json()
        if publish:
            toggled = client.post(f"/api/v1/forms/{form['id']}/publish", headers=auth(owner))
            assert toggled.status_code == 200, toggled.text
            form = toggled.json()
        return form

    return _make


@pytest.fixture
def q():
    return question


@pytest.fixture
def opts():
    return options
