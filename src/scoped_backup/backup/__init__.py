"""Scoped backup engine: archives, scope catalog, dry run and import.

Export delivery and upload-init live in ``scoped_backup.backup.delivery``
(they depend on ``scoped_backup.storage``).

Usage:
    from scoped_backup.backup import BackupScope, DirectSource
    from scoped_backup.backup import dry_run_backup_import, import_backup
"""

from scoped_backup.backup.applier import advisory_lock_key, import_backup
from scoped_backup.backup.archive import build_archive, parse_archive, verify_archive
from scoped_backup.backup.catalog import (
    get_backup_scopes,
    get_scope_definition,
    get_scope_handler,
    get_scope_table_names,
    resolve_scope,
)
from scoped_backup.backup.constants import (
    DIRECT_LIMIT_BYTES,
    IMPORT_CONFIRM_TEXT,
    OSS_IMPORT_LIMIT_BYTES,
    SCHEMA_VERSION,
)
from scoped_backup.backup.errors import (
    ArchiveFormatError,
    ArchiveStructureError,
    BackupError,
    ChecksumMismatchError,
    ConfirmationError,
    ExpectedChecksumError,
    ImportBlockedError,
    ScopeMismatchError,
    SizeLimitExceededError,
    SourceFetchError,
    StaleChecksumError,
    StorageProviderError,
    UnknownScopeError,
    UnsafeSourceUrlError,
)
from scoped_backup.backup.models import (
    BackupArchive,
    BackupScope,
    DirectSource,
    DryRunResult,
    ExportMode,
    ImportResult,
    Issue,
    OssUrlSource,
    TablePlan,
)
from scoped_backup.backup.normalize import compute_checksum
from scoped_backup.backup.validator import dry_run_backup_import

__all__ = [
    # Models
    "BackupArchive",
    "BackupScope",
    "DirectSource",
    "DryRunResult",
    "ExportMode",
    "ImportResult",
    "Issue",
    "OssUrlSource",
    "TablePlan",
    # Constants
    "DIRECT_LIMIT_BYTES",
    "IMPORT_CONFIRM_TEXT",
    "OSS_IMPORT_LIMIT_BYTES",
    "SCHEMA_VERSION",
    # Catalog
    "get_backup_scopes",
    "get_scope_definition",
    "get_scope_handler",
    "get_scope_table_names",
    "resolve_scope",
    # Archive
    "build_archive",
    "compute_checksum",
    "parse_archive",
    "verify_archive",
    # Dry run and import
    "dry_run_backup_import",
    "import_backup",
    "advisory_lock_key",
    # Errors
    "ArchiveFormatError",
    "ArchiveStructureError",
    "BackupError",
    "ChecksumMismatchError",
    "ConfirmationError",
    "ExpectedChecksumError",
    "ImportBlockedError",
    "ScopeMismatchError",
    "SizeLimitExceededError",
    "SourceFetchError",
    "StaleChecksumError",
    "StorageProviderError",
    "UnknownScopeError",
    "UnsafeSourceUrlError",
]
