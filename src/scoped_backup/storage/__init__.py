"""Object storage for backup archives.

Backups are written to the site's writable storage provider (a row of the
``StorageProvider`` table).  ``AWS_S3``, ``VERCEL_BLOB`` and ``LOCAL`` are
writable; ``GITHUB_PAGES`` and ``EXTERNAL_URL`` are not.

Usage:
    from scoped_backup.storage import resolve_writable_provider, upload_object

    provider = await resolve_writable_provider(adapter)
    key, url = await upload_object(provider, "backup.json", body, "application/json")
"""

from typing import Any

import httpx

from scoped_backup.backup.errors import StorageProviderError
from scoped_backup.storage.blob import BlobStorage, generate_client_token
from scoped_backup.storage.keys import (
    build_object_key,
    join_storage_prefix,
    normalize_posix_path,
    to_public_url,
)
from scoped_backup.storage.local import LocalStorage
from scoped_backup.storage.providers import StorageProvider, resolve_writable_provider
from scoped_backup.storage.s3 import S3Storage


def get_storage(
    provider: StorageProvider,
    s3_client: Any = None,
    http_client: httpx.AsyncClient | None = None,
) -> S3Storage | BlobStorage | LocalStorage:
    """Storage backend for ``provider``.

    Raises:
        StorageProviderError: If the provider type cannot store objects.
    """
    if provider.type == "AWS_S3":
        return S3Storage(provider, client=s3_client)
    if provider.type == "VERCEL_BLOB":
        return BlobStorage(provider, client=http_client)
    if provider.type == "LOCAL":
        return LocalStorage(provider)
    raise StorageProviderError(
        f"Storage provider type {provider.type} does not support writing backup files"
    )


async def upload_object(
    provider: StorageProvider,
    filename: str,
    content: bytes,
    content_type: str,
    path_template: str | None = None,
    ensure_unique_name: bool = False,
    s3_client: Any = None,
    http_client: httpx.AsyncClient | None = None,
) -> tuple[str, str]:
    """Store ``content`` and return ``(key, public_url)``.

    The key is rendered from ``path_template`` (falling back to the
    provider's own template) and then prefixed by the provider's base path.
    """
    relative_key = build_object_key(
        filename,
        path_template=path_template or provider.path_template or "",
        ensure_unique_name=ensure_unique_name,
    )
    storage = get_storage(provider, s3_client=s3_client, http_client=http_client)
    return await storage.upload(relative_key, content, content_type)


__all__ = [
    "StorageProvider",
    "resolve_writable_provider",
    "get_storage",
    "upload_object",
    "S3Storage",
    "BlobStorage",
    "LocalStorage",
    "generate_client_token",
    "build_object_key",
    "join_storage_prefix",
    "normalize_posix_path",
    "to_public_url",
]
