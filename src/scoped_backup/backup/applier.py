"""Full-replace import.

Preconditions are checked before any write, in this order:

1. the confirmation phrase matches ``IMPORT_CONFIRM_TEXT`` exactly
2. the archive loads and passes every integrity check
3. the operator-confirmed checksum matches the freshly recomputed one
4. re-run validation reports no ``error`` issue

The replace itself runs inside one transaction: advisory lock, delete
(children first), batched insert (parents first), relink, resequence.
Any failure rolls the whole transaction back.

Usage:
    from scoped_backup.backup.applier import import_backup

    result = await import_backup(
        adapter,
        DirectSource(content=text),
        expected_checksum=dry_run.checksum,
        confirm_text="CONFIRM RESTORE",
    )
"""

import logging
from datetime import datetime, timezone
from typing import Any

from scoped_backup.adapters.base import DatabaseClient
from scoped_backup.backup.catalog import get_scope_handler
from scoped_backup.backup.constants import DEFAULT_BATCH_SIZE, IMPORT_CONFIRM_TEXT
from scoped_backup.backup.errors import (
    ConfirmationError,
    ImportBlockedError,
    StaleChecksumError,
)
from scoped_backup.backup.models import (
    BackupScope,
    DirectSource,
    ImportResult,
    ImportSummary,
    OssUrlSource,
)
from scoped_backup.backup.normalize import format_timestamp
from scoped_backup.backup.validator import collect_issues, load_verified_archive

logger = logging.getLogger(__name__)


def advisory_lock_key(scope: BackupScope) -> str:
    """Lock name serializing concurrent imports of one scope."""
    return f"scoped-backup:import:{scope.value}"


async def import_backup(
    adapter: DatabaseClient,
    source: DirectSource | OssUrlSource,
    expected_checksum: str,
    confirm_text: str,
    scope: BackupScope | str | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    lock: bool = True,
    **fetch_options: Any,
) -> ImportResult:
    """Replace every table of the archive's scope with the archive rows.

    Args:
        adapter: Target database client.
        source: Archive source; loaded again, never trusted from a dry run.
        expected_checksum: Checksum the operator saw in the dry run.
        confirm_text: Must equal ``IMPORT_CONFIRM_TEXT``.
        scope: Expected scope, if any.
        batch_size: Rows per ``INSERT`` statement.
        lock: Take a per-scope advisory lock inside the transaction.
        **fetch_options: Forwarded to ``load_backup_source``.

    Returns:
        ``ImportResult`` with per-table stats.

    Raises:
        ConfirmationError: Before anything is loaded or written.
        StaleChecksumError: If the source changed since the dry run.
        ImportBlockedError: If validation reports an ``error`` issue.
        BackupError: Any load or integrity failure.
    """
    if confirm_text.strip() != IMPORT_CONFIRM_TEXT:
        raise ConfirmationError("Confirmation text does not match; restore cancelled")
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    verified = await load_verified_archive(source, scope, **fetch_options)
    if verified.checksum != expected_checksum.strip().lower():
        raise StaleChecksumError(
            "Checksum does not match the confirmed dry run; run the dry run again"
        )

    archive_scope = verified.archive.meta.scope
    data = verified.archive.data

    issues = await collect_issues(adapter, archive_scope, data)
    errors = [issue for issue in issues if issue.level == "error"]
    if errors:
        raise ImportBlockedError(errors)

    handler = get_scope_handler(archive_scope)
    logger.info("Replacing scope %s (checksum %s)", archive_scope.value, verified.checksum[:12])

    async with adapter.transaction() as tx:
        if lock:
            await tx.advisory_lock(advisory_lock_key(archive_scope))
        stats = await handler.replace(tx, data, batch_size)

    summary = ImportSummary(
        deleted_rows=sum(s.to_delete for s in stats),
        inserted_rows=sum(s.to_insert for s in stats),
    )
    logger.info(
        "Imported scope %s: %d deleted, %d inserted",
        archive_scope.value,
        summary.deleted_rows,
        summary.inserted_rows,
    )

    return ImportResult(
        scope=archive_scope,
        checksum=verified.checksum,
        imported_at=format_timestamp(datetime.now(timezone.utc)),
        table_stats=stats,
        summary=summary,
    )
