"""scoped-backup: scope-partitioned backup and full-replace restore.

Exports one logical scope of a PostgreSQL content database to a
checksummed JSON archive, delivers it inline or through object storage,
and restores it with a dry-run plan, a typed confirmation and a single
transaction.

Usage:
    from scoped_backup import get_adapter, create_backup_export, ExportMode
    from scoped_backup import DirectSource, dry_run_backup_import, import_backup
"""

__version__ = "0.1.0"

# Adapters
from scoped_backup.adapters.base import DatabaseClient
from scoped_backup.adapters.postgres import AsyncPostgresAdapter

# Config
from scoped_backup.config.loader import load_db_config
from scoped_backup.config.models import BackupSettings, DatabaseConfig, DatabaseProfile

# Factory
from scoped_backup.factory import ProfileNotFoundError, get_adapter, resolve_url

# Backup engine
from scoped_backup.backup import (
    BackupError,
    BackupScope,
    DirectSource,
    ExportMode,
    OssUrlSource,
    dry_run_backup_import,
    get_backup_scopes,
    get_scope_table_names,
    import_backup,
)
from scoped_backup.backup.delivery import create_backup_export, init_backup_import_upload
from scoped_backup.backup.exporter import create_backup_archive

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncPostgresAdapter",
    # Config
    "load_db_config",
    "BackupSettings",
    "DatabaseProfile",
    "DatabaseConfig",
    # Factory
    "get_adapter",
    "ProfileNotFoundError",
    "resolve_url",
    # Backup
    "BackupError",
    "BackupScope",
    "DirectSource",
    "ExportMode",
    "OssUrlSource",
    "create_backup_archive",
    "create_backup_export",
    "init_backup_import_upload",
    "dry_run_backup_import",
    "import_backup",
    "get_backup_scopes",
    "get_scope_table_names",
]
