"""Latest position selection from a noisy positions table.

The positions table is written by field devices and is expected to contain
the occasional malformed row. This module scans the whole table once per
call, parses every row independently, drops the rows that fail validation
and returns the one with the greatest timestamp.

Each stored row keeps its measurements under ``payload``. Both plain values
and typed-attribute wrappers are accepted::

    {"payload": {"timestamp": "1718000000", "latitude": "10.98", ...}}
    {"payload": {"M": {"timestamp": {"S": "1718000000"}, ...}}}

Example:
    Resolve the latest position inside an async handler:
        >>> record = await get_latest_position(repo, transformer, timeout=5)
        >>> if record is None:
        ...     ...  # storage down, table empty, or no valid rows
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import TYPE_CHECKING, Any

from position_server.db import database
from position_server.db import models as db_models
from position_server.services import transform

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

logger = logging.getLogger(__name__)

PAYLOAD_FIELD = "payload"
# Typed-attribute wrappers: map, string, number.
_MAP_TAG = "M"
_SCALAR_TAGS = ("S", "N")


class RecordParseError(ValueError):
    """Raised when a single raw record cannot be turned into a position."""


def _unwrap_scalar(value: Any) -> Any:
    if isinstance(value, dict):
        for tag in _SCALAR_TAGS:
            if tag in value:
                return value[tag]
    return value


def _payload_fields(raw: db_models.RawRecord) -> Mapping[str, Any]:
    try:
        payload = raw[PAYLOAD_FIELD]
    except (KeyError, TypeError) as exc:
        raise RecordParseError("Record has no payload") from exc

    if isinstance(payload, dict) and _MAP_TAG in payload:
        payload = payload[_MAP_TAG]
    if not isinstance(payload, dict):
        raise RecordParseError(
            f"Payload must be a mapping, got {type(payload).__name__}"
        )
    return payload


def extract_number(fields: Mapping[str, Any], name: str) -> float:
    """Read one numeric field from a payload.

    Args:
        fields: Payload mapping, possibly with typed-attribute values.
        name: Field to read.

    Returns:
        The field value as a float. NaN and infinity are returned as-is;
        finiteness is the caller's concern.

    Raises:
        RecordParseError: If the field is missing or is not a number or a
            numeric string.
    """
    if name not in fields:
        raise RecordParseError(f"Missing field {name!r}")

    value = _unwrap_scalar(fields[name])
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise RecordParseError(
            f"Field {name!r} has unsupported type {type(value).__name__}"
        )

    try:
        return float(value)
    except ValueError as exc:
        raise RecordParseError(f"Field {name!r} is not numeric: {value!r}") from exc


def parse_record(
    raw: db_models.RawRecord,
    transformer: transform.CoordinateTransformer,
) -> db_models.PositionRecord:
    """Validate one raw record and project it into the viewer frame.

    Args:
        raw: Row as returned by the repository.
        transformer: Transformer producing the local coordinates.

    Returns:
        PositionRecord with geographic and local coordinates.

    Raises:
        RecordParseError: If a field is missing or malformed, the timestamp
            is not finite, or the coordinates cannot be reprojected.
    """
    fields = _payload_fields(raw)
    timestamp = extract_number(fields, "timestamp")
    latitude = extract_number(fields, "latitude")
    longitude = extract_number(fields, "longitude")
    altitude = extract_number(fields, "altitude")

    if not math.isfinite(timestamp):
        raise RecordParseError(f"Timestamp is not finite: {timestamp!r}")

    try:
        x, y, z = transformer.transform(longitude, latitude, altitude)
    except transform.ReprojectionError as exc:
        raise RecordParseError(str(exc)) from exc

    return db_models.PositionRecord(
        latitude=latitude,
        longitude=longitude,
        altitude=altitude,
        x=x,
        y=y,
        z=z,
        timestamp=timestamp,
    )


def iter_valid_positions(
    raws: Iterable[db_models.RawRecord],
    transformer: transform.CoordinateTransformer,
) -> Iterator[db_models.PositionRecord]:
    """Lazily parse raw records, skipping the ones that fail validation.

    A bad record is logged and discarded; it never stops the iteration.
    """
    for raw in raws:
        try:
            yield parse_record(raw, transformer)
        except RecordParseError as exc:
            logger.info("Skipping malformed position record: %s", exc)


def select_latest(
    records: Iterable[db_models.PositionRecord],
) -> db_models.PositionRecord | None:
    """Return the record with the greatest timestamp, or None if empty.

    When several records share the greatest timestamp, which one is returned
    is unspecified.
    """
    return max(records, key=lambda record: record.timestamp, default=None)


async def fetch_records(
    repository: database.PositionRepositoryProtocol,
    timeout: float | None = None,
) -> list[db_models.RawRecord]:
    """Scan the repository once without blocking the event loop.

    Args:
        repository: Backend to scan.
        timeout: Seconds to wait for the scan, None to wait indefinitely.

    Returns:
        All raw records from the table.

    Raises:
        StorageUnavailableError: If the scan fails or times out.
    """
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(repository.scan),
            timeout=timeout,
        )
    except database.StorageUnavailableError:
        raise
    except TimeoutError as exc:
        raise database.StorageUnavailableError(
            f"Positions scan timed out after {timeout}s"
        ) from exc
    except Exception as exc:
        raise database.StorageUnavailableError(
            f"Positions scan failed: {exc}"
        ) from exc


async def get_latest_position(
    repository: database.PositionRepositoryProtocol,
    transformer: transform.CoordinateTransformer,
    timeout: float | None = None,
) -> db_models.PositionRecord | None:
    """Fetch, validate and select the most recent position.

    Performs exactly one read against the repository and keeps nothing
    between calls. Storage failures are logged and reported as "no data";
    they never reach the caller.

    Args:
        repository: Backend holding the raw records.
        transformer: Transformer producing local coordinates.
        timeout: Seconds allowed for the fetch, None to wait indefinitely.

    Returns:
        The freshest valid PositionRecord, or None if the backend is
        unavailable, the table is empty, or no record is valid.
    """
    try:
        raws = await fetch_records(repository, timeout=timeout)
    except database.StorageUnavailableError:
        logger.exception("Error fetching latest position")
        return None

    if not raws:
        logger.info("No records found in positions table")
        return None

    latest = select_latest(iter_valid_positions(raws, transformer))
    if latest is None:
        logger.warning("No valid records after parsing %d rows", len(raws))
        return None

    logger.info("Latest record: %s", latest)
    return latest
