"""API endpoint tests for ``GET /latest``.

This module validates the HTTP contract of the live position endpoint:
    - 200 with all seven PositionRecord fields when a valid record exists,
    - 404 with ``{"message": "No data found"}`` for empty tables, tables of
      only malformed rows, and unreachable storage.

The repository is injected through ``create_app`` or FastAPI dependency
overrides, so no database is required.

See Also:
    - backend/position_server/api/positions.py for API implementation.
"""

from __future__ import annotations

import pytest
from fastapi import testclient

from position_server import main
from position_server.api import positions as api_positions
from position_server.core import config
from position_server.db import database
from position_server.db import models as db_models

POSITION_FIELDS = {"latitude", "longitude", "altitude", "x", "y", "z", "timestamp"}


def _raw(timestamp: str, latitude: str = "10.98") -> db_models.RawRecord:
    return {
        "payload": {
            "M": {
                "timestamp": {"S": timestamp},
                "latitude": {"S": latitude},
                "longitude": {"S": "-74.78"},
                "altitude": {"S": "25.1"},
            }
        }
    }


def _client(repo: database.PositionRepositoryProtocol) -> testclient.TestClient:
    settings = config.Settings(startup_check=False)
    return testclient.TestClient(main.create_app(settings, repository=repo))


def test_latest_returns_record() -> None:
    """Test that the freshest record is returned with all fields."""
    repo = database.InMemoryPositionRepository(
        [_raw("10"), _raw("30", latitude="11.0"), _raw("20")]
    )
    response = _client(repo).get("/latest")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    body = response.json()
    assert set(body) == POSITION_FIELDS
    assert body["timestamp"] == 30.0
    assert body["latitude"] == 11.0
    assert body["z"] == pytest.approx(25.1 - config.DEFAULT_ORIGIN_OFFSET[2])


def test_latest_empty_table() -> None:
    """Test that an empty table yields 404."""
    response = _client(database.InMemoryPositionRepository()).get("/latest")
    assert response.status_code == 404
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"message": "No data found"}


def test_latest_all_invalid() -> None:
    """Test that a table of malformed rows yields 404."""
    repo = database.InMemoryPositionRepository([{"payload": {}}, _raw("never")])
    response = _client(repo).get("/latest")
    assert response.status_code == 404
    assert response.json() == {"message": "No data found"}


def test_latest_storage_unavailable() -> None:
    """Test that a storage failure is reported as no data, not an error."""

    class DownRepository(database.InMemoryPositionRepository):
        def scan(self) -> list[db_models.RawRecord]:
            raise database.StorageUnavailableError("connection refused")

    response = _client(DownRepository()).get("/latest")
    assert response.status_code == 404
    assert response.json() == {"message": "No data found"}


def test_latest_dependency_override() -> None:
    """Test the repository dependency can be overridden per test."""
    app = main.create_app(
        config.Settings(startup_check=False),
        repository=database.InMemoryPositionRepository(),
    )
    repo = database.InMemoryPositionRepository([_raw("7")])
    app.dependency_overrides[api_positions._get_repo] = lambda: repo
    client = testclient.TestClient(app)
    try:
        response = client.get("/latest")
        assert response.status_code == 200
        assert response.json()["timestamp"] == 7.0
    finally:
        app.dependency_overrides.clear()


def test_latest_rejects_other_methods() -> None:
    """Test that only GET is routed."""
    response = _client(database.InMemoryPositionRepository()).post("/latest")
    assert response.status_code == 405
