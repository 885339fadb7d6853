"""Archive validation and the read-only dry-run planner.

A dry run walks the same checks the import path repeats before it
writes anything:

1. load the source (``loader``)
2. parse JSON and validate the ``{meta, data}`` structure
3. recompute and compare the checksum
4. compare the expected scope, when given
5. compare the upload-time checksum of an ``OSS_URL`` source, when given
6. report every missing data key
7. report referential errors and risk warnings against the target
8. build a table plan per physical table

Steps 1-5 raise; steps 6-7 collect ``Issue`` objects.  Nothing is written.

Usage:
    from scoped_backup.backup.validator import dry_run_backup_import

    result = await dry_run_backup_import(adapter, DirectSource(content=text))
    if result.ready:
        print("confirm with:", result.confirm_text, result.checksum)
"""

import logging
from typing import Any, NamedTuple

from scoped_backup.adapters.base import DatabaseClient
from scoped_backup.backup.archive import parse_archive, verify_archive
from scoped_backup.backup.catalog import get_scope_handler, resolve_scope
from scoped_backup.backup.constants import IMPORT_CONFIRM_TEXT
from scoped_backup.backup.errors import ExpectedChecksumError, ScopeMismatchError
from scoped_backup.backup.loader import load_backup_source
from scoped_backup.backup.models import (
    BackupArchive,
    BackupScope,
    DirectSource,
    DryRunResult,
    DryRunSummary,
    Issue,
    OssUrlSource,
    TablePlan,
)

logger = logging.getLogger(__name__)


class VerifiedArchive(NamedTuple):
    archive: BackupArchive
    checksum: str
    size_bytes: int


async def load_verified_archive(
    source: DirectSource | OssUrlSource,
    scope: BackupScope | str | None = None,
    **fetch_options: Any,
) -> VerifiedArchive:
    """Load, parse and integrity-check an archive.

    Args:
        source: Where the archive bytes come from.
        scope: Scope the caller expects, if any.
        **fetch_options: Forwarded to ``load_backup_source``.

    Raises:
        ArchiveFormatError, ArchiveStructureError, ChecksumMismatchError,
        ScopeMismatchError, ExpectedChecksumError: On the matching failure,
            plus any loader error.
    """
    loaded = await load_backup_source(source, **fetch_options)
    archive = parse_archive(loaded.content)
    checksum = verify_archive(archive)

    if scope is not None:
        expected = resolve_scope(scope)
        if archive.meta.scope != expected:
            raise ScopeMismatchError(expected.value, archive.meta.scope.value)

    if (
        isinstance(source, OssUrlSource)
        and source.expected_checksum
        and source.expected_checksum.lower() != checksum
    ):
        raise ExpectedChecksumError(
            "Remote backup checksum does not match the checksum recorded at upload"
        )

    return VerifiedArchive(archive=archive, checksum=checksum, size_bytes=loaded.size_bytes)


def require_data_keys(scope: BackupScope, data: dict[str, Any]) -> list[Issue]:
    """One ``MISSING_DATA_KEY`` error per declared key without a row list."""
    issues: list[Issue] = []
    for key in get_scope_handler(scope).data_keys:
        if not isinstance(data.get(key), list):
            issues.append(
                Issue(
                    level="error",
                    code="MISSING_DATA_KEY",
                    message=f"Backup data is missing required key: {key}",
                )
            )
    return issues


async def collect_issues(
    adapter: DatabaseClient, scope: BackupScope, data: dict[str, Any]
) -> list[Issue]:
    """Missing-key issues followed by dependency issues, all in one pass."""
    issues = require_data_keys(scope, data)
    issues.extend(await get_scope_handler(scope).check_dependencies(adapter, data))
    return issues


def _sum(plans: list[TablePlan], field: str) -> int:
    return sum(getattr(plan, field) for plan in plans)


async def dry_run_backup_import(
    adapter: DatabaseClient,
    source: DirectSource | OssUrlSource,
    scope: BackupScope | str | None = None,
    **fetch_options: Any,
) -> DryRunResult:
    """Validate an archive against the target database without writing.

    Args:
        adapter: Target database client (read-only use).
        source: Archive source.
        scope: Expected scope; the archive's own scope is used when omitted.
        **fetch_options: Forwarded to ``load_backup_source``.

    Returns:
        ``DryRunResult`` with issues, table plans and totals.  ``ready`` is
        ``True`` when no issue has level ``error``.
    """
    verified = await load_verified_archive(source, scope, **fetch_options)
    archive_scope = verified.archive.meta.scope
    data = verified.archive.data

    issues = await collect_issues(adapter, archive_scope, data)
    plans = await get_scope_handler(archive_scope).plan(adapter, data)
    ready = not any(issue.level == "error" for issue in issues)

    logger.info(
        "Dry run %s: %s, %d issue(s), %d incoming row(s)",
        archive_scope.value,
        "ready" if ready else "blocked",
        len(issues),
        _sum(plans, "incoming"),
    )

    return DryRunResult(
        scope=archive_scope,
        checksum=verified.checksum,
        size_bytes=verified.size_bytes,
        ready=ready,
        confirm_text=IMPORT_CONFIRM_TEXT,
        issues=issues,
        table_plans=plans,
        summary=DryRunSummary(
            current_rows=_sum(plans, "current"),
            incoming_rows=_sum(plans, "incoming"),
            to_delete=_sum(plans, "to_delete"),
            to_insert=_sum(plans, "to_insert"),
        ),
    )
