"""Database client factory.

Resolves which database profile to use and builds an async adapter for it.

Profile resolution order:
1. Explicit ``profile_name`` argument
2. ``{env_prefix}DB_PROFILE`` environment variable
3. ``.db-profile`` lock file in the current working directory

A ``database_url`` argument bypasses profiles entirely.

Usage:
    from scoped_backup.factory import get_adapter

    adapter = await get_adapter()                      # active profile
    adapter = await get_adapter("staging")             # named profile
    adapter = await get_adapter(database_url="postgresql://...")
"""

import logging
import os
from pathlib import Path
from urllib.parse import quote

from scoped_backup.adapters.postgres import AsyncPostgresAdapter
from scoped_backup.config.loader import load_db_config
from scoped_backup.config.models import DatabaseProfile

logger = logging.getLogger(__name__)

PROFILE_LOCK_FILE_NAME = ".db-profile"


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured or the name is unknown."""

    pass


# ============================================================================
# Profile Lock File Operations
# ============================================================================


def _lock_file_path() -> Path:
    return Path.cwd() / PROFILE_LOCK_FILE_NAME


def read_profile_lock() -> str | None:
    """Read profile name from the lock file in the working directory.

    Returns:
        Profile name if lock file exists and is non-empty, None otherwise.
    """
    path = _lock_file_path()
    if path.exists():
        return path.read_text().strip() or None
    return None


def write_profile_lock(profile_name: str) -> None:
    """Write profile name to the lock file."""
    _lock_file_path().write_text(profile_name)


def clear_profile_lock() -> None:
    """Remove profile lock file."""
    path = _lock_file_path()
    if path.exists():
        path.unlink()


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from env var or lock file.

    Args:
        env_prefix: Prefix for the environment variable, e.g. ``"APP_"``
            reads ``APP_DB_PROFILE``.

    Returns:
        Profile name.

    Raises:
        ProfileNotFoundError: If no profile is configured.
    """
    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    lock_profile = read_profile_lock()
    if lock_profile:
        return lock_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_var}=<name> or run: scoped-backup use <name>"
    )


# ============================================================================
# Adapter Construction
# ============================================================================


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config.

    Returns:
        Connection URL with ``[YOUR-PASSWORD]`` replaced by the URL-quoted
        ``db_password``.
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


async def get_adapter(
    profile_name: str | None = None,
    env_prefix: str = "",
    database_url: str | None = None,
) -> AsyncPostgresAdapter:
    """Create a new async adapter for a profile or an explicit URL.

    No caching: each call returns a fresh adapter that the caller must
    ``close()``.

    Args:
        profile_name: Profile from backup.toml.  Resolved from the
            environment or lock file when ``None``.
        env_prefix: Prefix for the ``DB_PROFILE`` environment variable.
        database_url: Direct connection URL; skips profile lookup.

    Returns:
        ``AsyncPostgresAdapter`` ready for use.

    Raises:
        ProfileNotFoundError: If no profile is configured or it is unknown.
        FileNotFoundError: If backup.toml is missing.
    """
    if database_url:
        return AsyncPostgresAdapter(database_url)

    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix)

    config = load_db_config()
    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found. Available: {available}"
        )

    logger.debug("Creating adapter for profile %s", profile_name)
    return AsyncPostgresAdapter(resolve_url(config.profiles[profile_name]))
