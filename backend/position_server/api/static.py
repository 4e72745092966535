"""Viewer asset serving.

The Potree viewer page, its libraries and the point clouds are plain files
under ``settings.static_dir``. ``GET /`` returns the configured root
document and every other path falls through to a StaticFiles mount that is
registered after the API routes, so ``/latest`` and ``/health`` win.
"""

import fastapi
from fastapi import responses, staticfiles

from position_server.core import config

router = fastapi.APIRouter(tags=["static"])


def _get_settings(request: fastapi.Request) -> config.Settings:
    return request.app.state.settings


@router.get("/", include_in_schema=False)
async def index(
    settings: config.Settings = fastapi.Depends(_get_settings),  # noqa: B008
) -> responses.Response:
    """Serve the root viewer document.

    Returns:
        The document as a FileResponse, or a 404 JSON response with
        ``{"message": "Not found"}`` if it does not exist.
    """
    if not settings.index_path.is_file():
        return responses.JSONResponse(
            status_code=404,
            content={"message": "Not found"},
        )

    return responses.FileResponse(settings.index_path)


def mount_static(app: fastapi.FastAPI, settings: config.Settings) -> bool:
    """Mount the static directory at "/" if it exists.

    Must run after all routers are included, since a mount at "/" matches
    every path.

    Returns:
        True if the directory was mounted.
    """
    if not settings.static_dir.is_dir():
        return False

    app.mount(
        "/",
        staticfiles.StaticFiles(directory=settings.static_dir),
        name="static",
    )
    return True
