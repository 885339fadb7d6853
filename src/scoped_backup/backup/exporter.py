"""Scope export: read every table of one scope into a checksummed archive.

Usage:
    from scoped_backup.backup.exporter import create_backup_archive

    built = await create_backup_archive(adapter, "CONTENT")
    Path(built.file_name).write_text(built.content, encoding="utf-8")
"""

import logging
from datetime import datetime

from scoped_backup.adapters.base import DatabaseClient
from scoped_backup.backup.archive import build_archive
from scoped_backup.backup.catalog import get_backup_scopes, get_scope_handler, resolve_scope
from scoped_backup.backup.models import BackupScope, BuiltArchive

logger = logging.getLogger(__name__)


async def create_backup_archive(
    adapter: DatabaseClient,
    scope: BackupScope | str,
    exported_at: datetime | None = None,
) -> BuiltArchive:
    """Export ``scope`` from the database and build its archive.

    Args:
        adapter: Source database client (read-only use).
        scope: Scope to export.
        exported_at: Export timestamp (default: now, UTC).

    Raises:
        UnknownScopeError: If ``scope`` is not defined.
    """
    resolved = resolve_scope(scope)
    data = await get_scope_handler(resolved).export(adapter)
    built = build_archive(resolved, data, exported_at=exported_at)

    logger.info(
        "Exported scope %s: %d row(s), %d bytes, checksum %s",
        resolved.value,
        sum(len(rows) for rows in data.values()),
        built.size_bytes,
        built.checksum[:12],
    )
    return built


__all__ = ["create_backup_archive", "get_backup_scopes"]
