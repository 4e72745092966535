"""Live position server for a Potree point-cloud viewer.

This package polls a PostgreSQL positions table for the most recent device
position, reprojects its WGS84 coordinates into the viewer's local frame
(UTM zone 18N shifted by the point cloud's world origin) and serves it as
JSON next to the viewer's static assets.

- Full-table scan per request, no caching or persistence of results
- Malformed rows are logged and skipped, never failing the request
- Coordinates reprojected with pyproj and offset to the viewer origin
- Designed for FastAPI dependency injection so tests can swap the backend

See module sub-docstrings for details on architecture and usage.
"""
