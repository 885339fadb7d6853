"""Object key construction for storage providers.

Keys are POSIX paths relative to the provider root: never absolute,
never escaping upward.

Usage:
    from scoped_backup.storage.keys import build_object_key, join_storage_prefix

    key = build_object_key(
        "export.json",
        path_template="temp/backups/content/{year}/{month}/{filename}",
        ensure_unique_name=True,
    )
    key = join_storage_prefix("site-a", key)
"""

import posixpath
import re
import secrets
import time
from datetime import datetime, timezone

DEFAULT_PATH_TEMPLATE = "/{year}/{month}/{filename}"

_UNSAFE_SEGMENT = re.compile(r"[^\w.-]+", re.ASCII)
_LEADING_PARENT = re.compile(r"^(\.\.(/|\\|$))+")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def normalize_posix_path(value: str) -> str:
    """Collapse a path, drop leading ``../`` segments and leading slashes."""
    normalized = posixpath.normpath(value.strip() or "/{filename}")
    without_parents = _LEADING_PARENT.sub("", normalized)
    result = without_parents.lstrip("/")
    return "" if result == "." else result


def join_storage_prefix(prefix: str | None, key: str) -> str:
    """Prepend a provider base path once; keys already under it are kept."""
    normalized_key = normalize_posix_path(key)
    if not prefix:
        return normalized_key

    normalized_prefix = normalize_posix_path(prefix)
    if not normalized_prefix:
        return normalized_key
    if normalized_key == normalized_prefix or normalized_key.startswith(
        f"{normalized_prefix}/"
    ):
        return normalized_key

    return normalize_posix_path(posixpath.join(normalized_prefix, normalized_key))


def to_public_url(base_url: str, key: str) -> str:
    """Join a provider base URL and a key with exactly one slash."""
    return f"{base_url.rstrip('/')}/{key.lstrip('/')}"


def _sanitize_segment(value: str) -> str:
    replaced = _UNSAFE_SEGMENT.sub("_", value)
    if re.fullmatch(r"\.+", replaced):
        return "file"
    return replaced or "file"


def _base36(number: int) -> str:
    digits = ""
    while number:
        number, remainder = divmod(number, 36)
        digits = _BASE36[remainder] + digits
    return digits or "0"


def _unique_suffix() -> str:
    random_part = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"-{_base36(int(time.time() * 1000))}{random_part}"


def build_object_key(
    filename: str,
    path_template: str = DEFAULT_PATH_TEMPLATE,
    ensure_unique_name: bool = False,
    moment: datetime | None = None,
) -> str:
    """Render a storage key from a path template.

    Placeholders: ``{year}``, ``{month}``, ``{day}``, ``{filename}``,
    ``{basename}`` and ``{ext}`` (extension without the dot).  Only the
    last path segment of ``filename`` is used.

    Args:
        filename: Original file name.
        path_template: Template for the key.
        ensure_unique_name: Append a time-plus-random suffix to the base name.
        moment: Date used for the date placeholders (default: now, UTC).
    """
    moment = moment or datetime.now(timezone.utc)
    only_name = posixpath.basename(filename.replace("\\", "/"))
    base, ext = posixpath.splitext(only_name)
    base = base or "file"

    suffix = _unique_suffix() if ensure_unique_name else ""
    final_base = _sanitize_segment(f"{base}{suffix}")
    final_filename = f"{final_base}{ext}"

    rendered = (
        (path_template or DEFAULT_PATH_TEMPLATE)
        .replace("{year}", f"{moment.year}")
        .replace("{month}", f"{moment.month:02d}")
        .replace("{day}", f"{moment.day:02d}")
        .replace("{filename}", final_filename)
        .replace("{basename}", final_base)
        .replace("{ext}", ext[1:] if ext else "")
    )
    return normalize_posix_path(rendered)
