"""Pytest configuration for linear-cmd tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`).
"""

from __future__ import annotations

import json
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

_TEST_START_TIMES: dict[str, float] = {}
_TEST_DURATIONS: list[tuple[str, float]] = []
_SCRUBBED_ENV = (
    "LINEARCMD_API_URL",
    "LINEARCMD_HTTP_TIMEOUT",
    "LINEARCMD_LOG_LEVEL",
    "LINEARCMD_LOG_JSON",
    "LINEARCMD_QUIET",
    "LINEARCMD_RETRY_ATTEMPTS",
    "LINEARCMD_RETRY_MAX_SLEEP",
    "NO_COLOR",
)

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from linearcmd import logging as lc_logging  # noqa: E402
from linearcmd.identifiers import EntityKind  # noqa: E402
from linearcmd.linear_api import LinearAuthError, LinearNotFoundError  # noqa: E402
from linearcmd.models import ViewerData  # noqa: E402


@dataclass
class DummyResponse:
    status_code: int
    payload: Any
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    @property
    def text(self) -> str:
        if isinstance(self.payload, (dict, list)):
            return json.dumps(self.payload)
        return str(self.payload)


class DummySession:
    def __init__(self, responses: list[DummyResponse | Exception]):
        self._responses = responses
        self.request_log: list[tuple[str, str, dict[str, Any]]] = []

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        json: Any | None = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> DummyResponse:
        self.request_log.append((method, url, {"headers": headers, "json": json, "timeout": timeout}))
        if not self._responses:
            raise AssertionError("No response queued for request")
        nxt = self._responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


class FakeFetcher:
    """Stands in for LinearClient: serves entities visible to one API key."""

    def __init__(self, api_key: str, visible: dict[str, Any], calls: list[tuple[str, str]]):
        self.api_key = api_key
        self._visible = visible
        self._calls = calls
        self.comments: list[tuple[str, str]] = []
        self.deleted: list[str] = []
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.queries: list[tuple[str, Any, int]] = []

    def fetch(self, kind: EntityKind, entity_id: str) -> Any:
        self._calls.append((self.api_key, entity_id))
        if self.api_key.startswith("revoked"):
            raise LinearAuthError("Linear rejected the API key: Authentication required")
        if entity_id not in self._visible:
            raise LinearNotFoundError(f"{kind.value} not found: {entity_id}")
        return self._visible[entity_id]

    def viewer(self) -> ViewerData:
        if self.api_key.startswith("revoked"):
            raise LinearAuthError("Linear rejected the API key: Authentication required")
        return ViewerData(id="u-" + self.api_key, name="Sam", email="sam@example.com", organization="acme")

    def create_comment(self, issue_id: str, body: str) -> Any:
        self.comments.append((issue_id, body))
        return None

    def project_issues(self, project_id: str, limit: int = 50) -> list[Any]:
        return list(self._visible.get(f"issues:{project_id}", []))[:limit]

    def delete_document(self, document_id: str) -> bool:
        self.deleted.append(document_id)
        return True

    def delete_project(self, project_id: str) -> bool:
        self.deleted.append(project_id)
        return True

    def issues(self, filters: dict[str, Any] | None = None, limit: int = 25) -> list[Any]:
        self.queries.append(("issues", filters, limit))
        return list(self._visible.get("issues", []))[:limit]

    def projects(self, team_key: str | None = None, limit: int = 50) -> list[Any]:
        self.queries.append(("projects", team_key, limit))
        return list(self._visible.get("projects", []))[:limit]

    def workflow_state_id(self, team_id: str, name: str) -> str:
        states = self._visible.get(f"states:{team_id}", {})
        if name.lower() not in states:
            raise LinearNotFoundError(f"State '{name}' not found")
        return states[name.lower()]

    def user_id(self, email: str) -> str:
        return "user-" + email.split("@", 1)[0]

    def update_issue(self, issue_id: str, changes: dict[str, Any]) -> bool:
        self.updates.append((issue_id, changes))
        return True


class FakeWorld:
    """Per-key entity visibility plus a log of every probe made."""

    def __init__(self, visibility: dict[str, dict[str, Any]] | None = None):
        self.visibility = visibility or {}
        self.calls: list[tuple[str, str]] = []
        self.fetchers: dict[str, FakeFetcher] = {}

    def factory(self, api_key: str) -> FakeFetcher:
        fetcher = FakeFetcher(api_key, self.visibility.get(api_key, {}), self.calls)
        self.fetchers[api_key] = fetcher
        return fetcher


@pytest.fixture
def fake_world() -> FakeWorld:
    return FakeWorld()


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("LINEARCMD_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("LINEARCMD_RETRY_BASE", "0")
    for var in _SCRUBBED_ENV:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    lc_logging._GLOBAL = None


# --- Timing utilities to help identify slow/stalling tests ---


def pytest_runtest_setup(item):  # type: ignore
    _TEST_START_TIMES[item.nodeid] = time.perf_counter()


def pytest_runtest_teardown(item):  # type: ignore
    start = _TEST_START_TIMES.pop(item.nodeid, None)
    if start is not None:
        _TEST_DURATIONS.append((item.nodeid, time.perf_counter() - start))


def pytest_sessionfinish(session, exitstatus):  # type: ignore
    if not _TEST_DURATIONS:
        return
    slow = sorted(_TEST_DURATIONS, key=lambda x: x[1], reverse=True)[:10]
    print("\n=== Slowest Tests (top 10) ===")
    for nodeid, secs in slow:
        print(f"{secs:0.3f}s  {nodeid}")
