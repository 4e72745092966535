"""Data models for position records.

This module defines the structures exchanged between the storage layer, the
selector and the HTTP layer. RawRecord is whatever the storage backend hands
back for one row; PositionRecord is the validated, immutable result of
parsing one RawRecord and projecting it into the viewer's local frame.

Example:
    A raw record as stored in the positions table:
        >>> raw = {
        ...     "id": "device-1#1718000000",
        ...     "payload": {
        ...         "M": {
        ...             "timestamp": {"S": "1718000000"},
        ...             "latitude": {"S": "10.98"},
        ...             "longitude": {"S": "-74.78"},
        ...             "altitude": {"S": "25.1"},
        ...         }
        ...     },
        ... }

    The PositionRecord derived from it carries both frames:
        >>> record = PositionRecord(
        ...     latitude=10.98,
        ...     longitude=-74.78,
        ...     altitude=25.1,
        ...     x=-1203.4,
        ...     y=-1.6,
        ...     z=1.28,
        ...     timestamp=1718000000.0,
        ... )
"""

from __future__ import annotations

import dataclasses
from typing import Any

RawRecord = dict[str, Any]


@dataclasses.dataclass(frozen=True)
class PositionRecord:
    """A validated position in geographic and local viewer coordinates.

    Attributes:
        latitude: Geodetic latitude in degrees.
        longitude: Geodetic longitude in degrees.
        altitude: Altitude in metres.
        x: Easting relative to the viewer origin, in metres.
        y: Northing relative to the viewer origin, in metres.
        z: Altitude relative to the viewer origin, in metres.
        timestamp: Finite sample time as reported by the device.
    """

    latitude: float
    longitude: float
    altitude: float
    x: float
    y: float
    z: float
    timestamp: float

    def to_dict(self) -> dict[str, float]:
        """Return the JSON body served by ``GET /latest``."""
        return dataclasses.asdict(self)
