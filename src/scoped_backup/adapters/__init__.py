"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and the async PostgreSQL
adapter the backup engine runs on.

Usage:
    from scoped_backup.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from scoped_backup.adapters.base import DatabaseClient
from scoped_backup.adapters.postgres import AsyncPostgresAdapter, quote_identifier

__all__ = [
    "DatabaseClient",
    "AsyncPostgresAdapter",
    "quote_identifier",
]
