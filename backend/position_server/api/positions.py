"""Live position API endpoint.

This module exposes the most recent valid device position, already
projected into the point-cloud viewer's local frame. The viewer polls
``GET /latest`` and moves its marker to ``(x, y, z)``.

Example:
    Fetch the latest position:
        >>> response = client.get("/latest")
        >>> response.json()
        >>> # Returns: {"latitude": 10.98, "longitude": -74.78,
        >>> #           "altitude": 25.1, "x": -1203.4, "y": -1.6,
        >>> #           "z": 1.28, "timestamp": 1718000000.0}

    When nothing usable is stored:
        >>> response = client.get("/latest")
        >>> response.status_code, response.json()
        >>> # Returns: (404, {"message": "No data found"})
"""

from typing import Any

import fastapi
from fastapi import responses

from position_server.core import config
from position_server.db import database
from position_server.services import positions, transform

router = fastapi.APIRouter(tags=["positions"])

NO_DATA_MESSAGE = "No data found"


def _get_repo(request: fastapi.Request) -> database.PositionRepositoryProtocol:
    """Resolve the repository created once by the application factory.

    Args:
        request: Incoming request, used to reach ``app.state``.

    Returns:
        PositionRepositoryProtocol implementation
            (PostgresPositionRepository in production).
    """
    return request.app.state.position_repository


def _get_transformer(request: fastapi.Request) -> transform.CoordinateTransformer:
    """Resolve the process-wide coordinate transformer."""
    return request.app.state.coordinate_transformer


def _get_settings(request: fastapi.Request) -> config.Settings:
    return request.app.state.settings


@router.get(
    "/latest",
    responses={404: {"description": "No valid position stored"}},
)
async def latest_position(
    repo: database.PositionRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
    transformer: transform.CoordinateTransformer = fastapi.Depends(  # noqa: B008
        _get_transformer
    ),
    settings: config.Settings = fastapi.Depends(_get_settings),  # noqa: B008
) -> Any:
    """Return the most recent valid position.

    Storage failures and malformed rows never surface here; they are logged
    by the selector and reported as "no data".

    Args:
        repo: Position repository (injected via FastAPI Depends).
        transformer: Coordinate transformer (injected via FastAPI Depends).
        settings: Application settings (injected via FastAPI Depends).

    Returns:
        The position as a JSON object with latitude, longitude, altitude,
        x, y, z and timestamp, or a 404 JSON response with
        ``{"message": "No data found"}``.
    """
    latest = await positions.get_latest_position(
        repo,
        transformer,
        timeout=settings.scan_timeout_seconds,
    )
    if latest is None:
        return responses.JSONResponse(
            status_code=404,
            content={"message": NO_DATA_MESSAGE},
        )

    return latest.to_dict()
