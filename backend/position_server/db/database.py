"""Database helpers and repositories for position records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import psycopg2
import psycopg2.extensions
import psycopg2.extras
from psycopg2 import sql

if TYPE_CHECKING:
    from collections.abc import Iterable

    from position_server.core import config
    from position_server.db import models as db_models

logger = logging.getLogger(__name__)


class StorageUnavailableError(RuntimeError):
    """Raised when the storage backend cannot be read.

    Wraps driver errors and fetch timeouts so callers only have to handle a
    single failure type for the whole backend.
    """


class PositionRepositoryProtocol(Protocol):
    """Protocol interface for reading raw position records.

    Implementations expose a full-table scan and a cheap probe used by the
    startup self-check. Neither operation writes.
    """

    def scan(self) -> list[db_models.RawRecord]: ...

    def ping(self) -> None: ...


class InMemoryPositionRepository(PositionRepositoryProtocol):
    """Simple in-memory store for tests and local development.

    Data is lost when the process exits.
    """

    def __init__(self, records: Iterable[db_models.RawRecord] = ()) -> None:
        """Initialize the repository, optionally seeded with records.

        Args:
            records: Raw records returned by subsequent scans.
        """
        self._records: list[db_models.RawRecord] = list(records)

    def add(self, record: db_models.RawRecord) -> db_models.RawRecord:
        """Append a raw record.

        Args:
            record: Raw record to store.

        Returns:
            The stored record.
        """
        self._records.append(record)
        return record

    def scan(self) -> list[db_models.RawRecord]:
        """Return every stored record, in insertion order."""
        return list(self._records)

    def ping(self) -> None:
        return None


class PostgresPositionRepository(PositionRepositoryProtocol):
    """PostgreSQL-backed reader for the positions table.

    Each call opens its own connection, so the repository itself holds no
    connection state and is safe to share across requests. Rows come back
    as dictionaries keyed by column name; the JSONB ``payload`` column is
    decoded by psycopg2 into nested dicts.
    """

    def __init__(self, settings: config.Settings) -> None:
        """Initialize repository with database settings.

        Args:
            settings: Application settings containing the connection URL,
                the positions table name and the connect timeout.
        """
        self.settings = settings

    def _connection(self) -> psycopg2.extensions.connection:
        """Create a new database connection.

        Returns:
            psycopg2 connection object.
        """
        return psycopg2.connect(
            self.settings.database_url,
            connect_timeout=self.settings.db_connect_timeout,
        )

    def _table(self) -> sql.Identifier:
        return sql.Identifier(self.settings.positions_table)

    def _fetch(self, query: sql.Composable) -> list[db_models.RawRecord]:
        try:
            with self._connection() as conn, conn.cursor(
                cursor_factory=psycopg2.extras.RealDictCursor,
            ) as cur:
                cur.execute(query)
                return [dict(row) for row in cur.fetchall()]
        except psycopg2.Error as exc:
            raise StorageUnavailableError(
                f"Failed to read {self.settings.positions_table!r}: {exc}"
            ) from exc

    def scan(self) -> list[db_models.RawRecord]:
        """Read every row of the positions table.

        No filtering or pagination is applied; the whole table is returned
        by a single query.

        Returns:
            List of raw rows as dictionaries.

        Raises:
            StorageUnavailableError: If connecting or querying fails.
        """
        return self._fetch(sql.SQL("SELECT * FROM {}").format(self._table()))

    def ping(self) -> None:
        """Read at most one row to prove the table is reachable.

        Raises:
            StorageUnavailableError: If connecting or querying fails.
        """
        self._fetch(sql.SQL("SELECT * FROM {} LIMIT 1").format(self._table()))


def get_position_repository(
    settings: config.Settings,
) -> PositionRepositoryProtocol:
    """Factory function to create a position repository.

    Args:
        settings: Application settings for database connection.

    Returns:
        PostgresPositionRepository instance for production use.
    """
    return PostgresPositionRepository(settings)


def check_connection(repository: PositionRepositoryProtocol) -> bool:
    """Probe the backend once and log the outcome.

    Intended to be called a single time by the process entry point. Failures
    are logged, not raised, so the server still starts and ``/latest`` keeps
    answering 404 until the database becomes reachable.

    Args:
        repository: Repository to probe.

    Returns:
        True if the probe succeeded, False otherwise.
    """
    try:
        repository.ping()
    except StorageUnavailableError:
        logger.exception("Database connection check failed")
        return False

    logger.info("Database connection successful")
    return True
