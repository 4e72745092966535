"""API router subpackage for the live position server.

Submodules:
    - positions: ``GET /latest`` returning the freshest valid position in
      the viewer's local frame.
    - static: root document and viewer asset serving.

Each module exposes its own APIRouter (or mount helper) for composition in
the application's main FastAPI instance.
"""
