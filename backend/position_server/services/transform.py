"""Geodetic to local viewer frame coordinate transformation.

Positions arrive as WGS84 longitude/latitude/altitude. The point-cloud viewer
works in a local Cartesian frame: projected metres (UTM zone 18N by default)
shifted so that the cloud's world origin sits at (0, 0, 0). This module owns
that mapping so every consumer sees coordinates in the same frame.

Example:
    Build a transformer from settings and project a point:
        >>> from position_server.core import config
        >>> from position_server.services import transform
        >>> transformer = transform.CoordinateTransformer.from_settings(
        ...     config.get_settings()
        ... )
        >>> x, y, z = transformer.transform(-74.78, 10.98, 25.1)
"""

from __future__ import annotations

import functools
import math
from typing import TYPE_CHECKING

import pyproj
from pyproj import exceptions as pyproj_exceptions

from position_server.core import config

if TYPE_CHECKING:
    from collections.abc import Sequence

LocalPoint = tuple[float, float, float]


class ReprojectionError(ValueError):
    """Raised when a coordinate cannot be reprojected into the local frame."""


class CoordinateTransformer:
    """Project geodetic coordinates and subtract a fixed origin offset.

    The projection pair and offset are fixed at construction. Instances hold
    no mutable state, so one transformer is shared by every request.

    Attributes:
        source_crs: CRS of the incoming longitude/latitude.
        target_crs: Projected CRS of the viewer.
        origin_offset: (easting, northing, altitude) of the viewer origin.
    """

    def __init__(
        self,
        source_crs: str,
        target_crs: str,
        origin_offset: Sequence[float],
    ) -> None:
        if len(origin_offset) != 3:
            raise ValueError("origin_offset must have exactly 3 components")

        self.source_crs = source_crs
        self.target_crs = target_crs
        self.origin_offset: LocalPoint = (
            float(origin_offset[0]),
            float(origin_offset[1]),
            float(origin_offset[2]),
        )
        # always_xy keeps (lon, lat) order regardless of the CRS axis order.
        self._proj = pyproj.Transformer.from_crs(
            source_crs,
            target_crs,
            always_xy=True,
        )

    @classmethod
    def from_settings(cls, settings: config.Settings) -> CoordinateTransformer:
        """Create a transformer from the projection pair and offset in settings."""
        return cls(
            settings.source_crs,
            settings.target_crs,
            settings.origin_offset,
        )

    def transform(
        self,
        longitude: float,
        latitude: float,
        altitude: float,
    ) -> LocalPoint:
        """Map a geodetic position to local viewer coordinates.

        Args:
            longitude: Longitude in degrees.
            latitude: Latitude in degrees.
            altitude: Altitude in metres.

        Returns:
            (x, y, z) in metres relative to the viewer origin.

        Raises:
            ReprojectionError: If PROJ rejects the input or produces a
                non-finite easting or northing.
        """
        try:
            easting, northing = self._proj.transform(
                longitude,
                latitude,
                errcheck=True,
            )
        except pyproj_exceptions.ProjError as exc:
            raise ReprojectionError(
                f"Cannot reproject ({longitude}, {latitude}) "
                f"from {self.source_crs} to {self.target_crs}: {exc}"
            ) from exc

        if not (math.isfinite(easting) and math.isfinite(northing)):
            raise ReprojectionError(
                f"Reprojection of ({longitude}, {latitude}) "
                f"to {self.target_crs} is not finite"
            )

        origin_e, origin_n, origin_z = self.origin_offset
        return (easting - origin_e, northing - origin_n, altitude - origin_z)


@functools.lru_cache
def get_coordinate_transformer() -> CoordinateTransformer:
    """Return the process-wide transformer built from cached settings."""
    return CoordinateTransformer.from_settings(config.get_settings())


def transform(longitude: float, latitude: float, altitude: float) -> LocalPoint:
    """Transform with the process-wide transformer.

    See CoordinateTransformer.transform for details. Errors propagate to the
    caller as ReprojectionError.
    """
    return get_coordinate_transformer().transform(longitude, latitude, altitude)
