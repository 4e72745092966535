"""Tests for the FastAPI main application factory and health checks.

This module validates that:
    - The FastAPI app is correctly instantiated via main.create_app,
    - OpenAPI metadata (title, version) matches the project contract,
    - Health, position and static routes are registered,
    - The root document and static assets are served from static_dir,
    - The startup self-check runs once through the lifespan hook.

See Also:
    - backend/position_server/main.py for the application factory.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from fastapi import testclient

from position_server import main
from position_server.core import config
from position_server.db import database

if TYPE_CHECKING:
    import pathlib

    import pytest


def _settings(**overrides: object) -> config.Settings:
    return config.Settings(startup_check=False, **overrides)  # type: ignore[arg-type]


def test_create_app() -> None:
    """Test that create_app returns a configured FastAPI instance."""
    app = main.create_app(_settings(), database.InMemoryPositionRepository())
    assert app is not None
    assert app.title == "Live Position Server"
    assert app.version == "0.1.0"


def test_create_app_defaults_to_postgres_repository() -> None:
    """Test that without an explicit repository Postgres is used."""
    app = main.create_app(_settings())
    assert isinstance(
        app.state.position_repository, database.PostgresPositionRepository
    )


def test_health_endpoint() -> None:
    """Test the health check endpoint returns ok status."""
    app = main.create_app(_settings(), database.InMemoryPositionRepository())
    client = testclient.TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_app_includes_routers() -> None:
    """Test that the health and position routes are included."""
    app = main.create_app(_settings(), database.InMemoryPositionRepository())
    routes: list[str] = [
        cast(str, getattr(route, "path", ""))
        for route in app.routes  # type: ignore[attr-defined]
        if hasattr(route, "path")
    ]
    assert "/health" in routes
    assert "/latest" in routes
    assert "/" in routes


def test_static_assets_served(tmp_path: pathlib.Path) -> None:
    """Test the root document and assets come from static_dir."""
    (tmp_path / "Malecon1.html").write_text("<html>viewer</html>")
    (tmp_path / "libs").mkdir()
    (tmp_path / "libs" / "potree.js").write_text("// potree")
    settings = _settings(static_dir=tmp_path, index_document="Malecon1.html")
    app = main.create_app(settings, database.InMemoryPositionRepository())
    client = testclient.TestClient(app)
    root = client.get("/")
    assert root.status_code == 200
    assert root.text == "<html>viewer</html>"

    asset = client.get("/libs/potree.js")
    assert asset.status_code == 200
    assert asset.text == "// potree"

    assert client.get("/missing.js").status_code == 404
    assert client.get("/latest").json() == {"message": "No data found"}


def test_missing_index_document(tmp_path: pathlib.Path) -> None:
    """Test a missing root document yields a JSON 404."""
    settings = _settings(static_dir=tmp_path / "absent")
    app = main.create_app(settings, database.InMemoryPositionRepository())
    client = testclient.TestClient(app)
    response = client.get("/")
    assert response.status_code == 404
    assert response.json() == {"message": "Not found"}


def test_startup_check_runs_once(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test the lifespan hook probes the repository at startup."""
    calls: list[database.PositionRepositoryProtocol] = []

    def check(repo: database.PositionRepositoryProtocol) -> bool:
        calls.append(repo)
        return True

    monkeypatch.setattr(database, "check_connection", check)
    repo = database.InMemoryPositionRepository()
    app = main.create_app(config.Settings(startup_check=True), repo)
    with testclient.TestClient(app) as client:
        client.get("/health")
        client.get("/health")
    assert calls == [repo]


def test_startup_check_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test the self-check can be switched off."""
    calls: list[object] = []
    monkeypatch.setattr(database, "check_connection", calls.append)
    app = main.create_app(_settings(), database.InMemoryPositionRepository())
    with testclient.TestClient(app):
        pass
    assert calls == []


def test_run_starts_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test run() hands the app to uvicorn on the configured address."""
    captured: dict[str, object] = {}

    def fake_run(app: object, host: str, port: int) -> None:
        captured.update(app=app, host=host, port=port)

    settings = _settings(host="127.0.0.1", port=8123)
    monkeypatch.setattr(main.config, "get_settings", lambda: settings)
    monkeypatch.setattr(main.uvicorn, "run", fake_run)
    main.run()
    assert captured["host"] == "127.0.0.1"
    assert captured["port"] == 8123
