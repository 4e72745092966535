"""Database interface and repository abstractions.

This package holds the position record models and the repositories that read
raw records from storage. Production code reads from PostgreSQL through
PostgresPositionRepository; tests and local development substitute
InMemoryPositionRepository.

Example:
    Use in a service or FastAPI dependency:
        >>> from position_server.db import database
        >>> repo = database.get_position_repository(settings)
        >>> rows = repo.scan()
"""
