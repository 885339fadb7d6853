"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from scoped_backup.config import load_db_config, DatabaseProfile, DatabaseConfig
"""

from scoped_backup.config.loader import load_db_config
from scoped_backup.config.models import BackupSettings, DatabaseConfig, DatabaseProfile

__all__ = ["load_db_config", "BackupSettings", "DatabaseConfig", "DatabaseProfile"]
