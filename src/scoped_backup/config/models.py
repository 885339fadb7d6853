"""Pydantic models for backup configuration."""

from pydantic import BaseModel, Field

from scoped_backup.backup.constants import DEFAULT_BATCH_SIZE


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from backup.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"  # Defaults to postgres


class BackupSettings(BaseModel):
    """Tunable knobs from the ``[backup]`` table of backup.toml."""

    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1, le=5000)
    fetch_timeout_seconds: float = Field(default=30.0, gt=0)
    max_redirects: int = Field(default=5, ge=0)
    lock_imports: bool = True
    export_dir: str = "backups"


class DatabaseConfig(BaseModel):
    """Complete configuration from backup.toml."""

    profiles: dict[str, DatabaseProfile]
    backup: BackupSettings = Field(default_factory=BackupSettings)
