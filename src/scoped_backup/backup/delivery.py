"""Export delivery and client-side upload initialization.

Export delivery policy:

- ``DIRECT``: inline when ``size_bytes <= DIRECT_LIMIT_BYTES``, otherwise a
  soft ``OSS_REQUIRED`` result so the caller can retry with ``OSS``
- ``OSS``: always upload to the writable storage provider
- ``AUTO``: ``DIRECT`` when it fits, otherwise ``OSS``

Upload-init hands the browser (or any client) a way to put a large
restore file straight into object storage: a presigned S3 ``PUT`` URL or
a Vercel Blob client token.  The returned ``sourceUrl`` is then used as
an ``OSS_URL`` backup source.

Usage:
    from scoped_backup.backup.delivery import create_backup_export

    result = await create_backup_export(adapter, "CONTENT", ExportMode.AUTO)
    if result.mode == "OSS":
        print(result.url)
"""

import logging
from typing import Any

import httpx

from scoped_backup.adapters.base import DatabaseClient
from scoped_backup.backup.constants import (
    ARCHIVE_CONTENT_TYPE,
    DEFAULT_CONTENT_TYPE,
    DIRECT_LIMIT_BYTES,
    DIRECT_UPLOAD_EXPIRES_SECONDS,
    EXPORT_PATH_TEMPLATE,
    IMPORT_UPLOAD_PATH_TEMPLATE,
    OSS_IMPORT_LIMIT_BYTES,
)
from scoped_backup.backup.errors import SizeLimitExceededError
from scoped_backup.backup.exporter import create_backup_archive
from scoped_backup.backup.models import (
    BackupScope,
    BuiltArchive,
    ClientBlobUploadInit,
    ClientS3UploadInit,
    DirectExportResult,
    ExportMode,
    OssExportResult,
    OssRequiredResult,
    UnsupportedUploadInit,
)
from scoped_backup.storage import (
    BlobStorage,
    S3Storage,
    StorageProvider,
    build_object_key,
    resolve_writable_provider,
    to_public_url,
    upload_object,
)

logger = logging.getLogger(__name__)

OSS_REQUIRED_MESSAGE = "Backup file exceeds the direct download limit; export with OSS mode"
UNSUPPORTED_UPLOAD_MESSAGE = (
    "Default storage does not support client-side direct upload of backup files; "
    "switch to AWS_S3 or VERCEL_BLOB and retry"
)


# ============================================================================
# Export
# ============================================================================


async def upload_archive(
    adapter: DatabaseClient,
    built: BuiltArchive,
    s3_client: Any = None,
    http_client: httpx.AsyncClient | None = None,
) -> OssExportResult:
    """Upload a built archive to the writable storage provider.

    Raises:
        StorageProviderError: If no writable provider is usable.
    """
    scope = built.archive.meta.scope
    provider = await resolve_writable_provider(adapter)
    key, url = await upload_object(
        provider,
        built.file_name,
        built.content.encode("utf-8"),
        ARCHIVE_CONTENT_TYPE,
        path_template=EXPORT_PATH_TEMPLATE.format(scope=scope.value.lower()),
        ensure_unique_name=True,
        s3_client=s3_client,
        http_client=http_client,
    )
    logger.info("Uploaded %s backup to %s (%s)", scope.value, provider.name, key)

    return OssExportResult(
        scope=scope,
        file_name=built.file_name,
        size_bytes=built.size_bytes,
        checksum=built.checksum,
        url=url,
        key=key,
        provider_id=provider.id,
        provider_name=provider.name,
    )


async def deliver_archive(
    adapter: DatabaseClient,
    built: BuiltArchive,
    mode: ExportMode | str = ExportMode.DIRECT,
    s3_client: Any = None,
    http_client: httpx.AsyncClient | None = None,
) -> DirectExportResult | OssExportResult | OssRequiredResult:
    """Apply the delivery policy to an already built archive."""
    mode = ExportMode(mode)
    scope = built.archive.meta.scope
    fits_inline = built.size_bytes <= DIRECT_LIMIT_BYTES

    if mode == ExportMode.OSS or (mode == ExportMode.AUTO and not fits_inline):
        return await upload_archive(
            adapter, built, s3_client=s3_client, http_client=http_client
        )

    if not fits_inline:
        logger.info(
            "%s backup is %d bytes, over the direct limit", scope.value, built.size_bytes
        )
        return OssRequiredResult(
            scope=scope,
            file_name=built.file_name,
            size_bytes=built.size_bytes,
            limit_bytes=DIRECT_LIMIT_BYTES,
            message=OSS_REQUIRED_MESSAGE,
        )

    return DirectExportResult(
        scope=scope,
        file_name=built.file_name,
        size_bytes=built.size_bytes,
        checksum=built.checksum,
        content=built.content,
    )


async def create_backup_export(
    adapter: DatabaseClient,
    scope: BackupScope | str,
    mode: ExportMode | str = ExportMode.DIRECT,
    s3_client: Any = None,
    http_client: httpx.AsyncClient | None = None,
) -> DirectExportResult | OssExportResult | OssRequiredResult:
    """Export ``scope`` and deliver it according to ``mode``.

    Args:
        adapter: Source database client.
        scope: Scope to export.
        mode: ``DIRECT``, ``OSS`` or ``AUTO``.
        s3_client: Optional boto3 S3 client for ``AWS_S3`` providers.
        http_client: Optional ``httpx.AsyncClient`` for ``VERCEL_BLOB``.

    Returns:
        ``DirectExportResult``, ``OssExportResult`` or ``OssRequiredResult``.
    """
    built = await create_backup_archive(adapter, scope)
    return await deliver_archive(
        adapter, built, mode, s3_client=s3_client, http_client=http_client
    )


# ============================================================================
# Upload-Init
# ============================================================================


def normalize_content_type(content_type: str | None) -> str:
    """Lower-case media type without parameters."""
    media_type = (content_type or "").strip().lower().split(";", 1)[0].strip()
    return media_type or DEFAULT_CONTENT_TYPE


def _allowed_upload_bytes(provider: StorageProvider) -> int:
    return min(max(provider.max_file_size, 1), OSS_IMPORT_LIMIT_BYTES)


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


async def init_backup_import_upload(
    adapter: DatabaseClient,
    file_name: str,
    file_size: int,
    content_type: str | None = None,
    s3_client: Any = None,
) -> ClientS3UploadInit | ClientBlobUploadInit | UnsupportedUploadInit:
    """Prepare a client-side direct upload of a restore file.

    Args:
        adapter: Database client used to find the writable provider.
        file_name: Name of the file the client will upload.
        file_size: Its size in bytes.
        content_type: Its content type (parameters are dropped).
        s3_client: Optional boto3 S3 client for ``AWS_S3`` providers.

    Returns:
        ``CLIENT_S3`` with a presigned ``PUT`` URL, ``CLIENT_BLOB`` with a
        scoped client token, or ``UNSUPPORTED`` for other provider types.

    Raises:
        ValueError: If ``file_name`` is blank or ``file_size`` is not positive.
        SizeLimitExceededError: If ``file_size`` exceeds the provider cap
            (itself capped at ``OSS_IMPORT_LIMIT_BYTES``).
        StorageProviderError: If no writable provider is usable.
    """
    if not file_name.strip():
        raise ValueError("file_name must not be empty")
    if file_size <= 0:
        raise ValueError("file_size must be positive")

    provider = await resolve_writable_provider(adapter)
    max_allowed = _allowed_upload_bytes(provider)
    if file_size > max_allowed:
        raise SizeLimitExceededError(
            max_allowed,
            f"File exceeds the upload limit (max {max_allowed / 1024 / 1024:.2f} MB)",
        )

    media_type = normalize_content_type(content_type)
    temp_key = build_object_key(
        file_name, path_template=IMPORT_UPLOAD_PATH_TEMPLATE, ensure_unique_name=True
    )

    if provider.type == "AWS_S3":
        storage = S3Storage(provider, client=s3_client)
        key = storage.object_key(temp_key)
        upload_url = await storage.presign_put(
            key, media_type, DIRECT_UPLOAD_EXPIRES_SECONDS
        )
        logger.info("Presigned S3 upload for %s (%d bytes)", key, file_size)
        return ClientS3UploadInit(
            provider_type=provider.type,
            provider_name=provider.name,
            storage_provider_id=provider.id,
            key=key,
            source_url=to_public_url(provider.base_url, key),
            upload_url=upload_url,
            upload_headers={"Content-Type": media_type},
        )

    if provider.type == "VERCEL_BLOB":
        storage = BlobStorage(provider)
        key = storage.object_key(temp_key)
        token = storage.client_token(
            key,
            maximum_size_in_bytes=max_allowed,
            allowed_content_types=_dedupe(
                ["application/json", "text/plain", DEFAULT_CONTENT_TYPE, media_type]
            ),
            expires_in_seconds=DIRECT_UPLOAD_EXPIRES_SECONDS,
        )
        logger.info("Issued blob client token for %s (%d bytes)", key, file_size)
        return ClientBlobUploadInit(
            provider_type=provider.type,
            provider_name=provider.name,
            storage_provider_id=provider.id,
            key=key,
            source_url=to_public_url(provider.base_url, key),
            blob_pathname=key,
            blob_client_token=token,
        )

    logger.info("Provider %s (%s) has no client upload path", provider.name, provider.type)
    return UnsupportedUploadInit(
        provider_type=provider.type,
        provider_name=provider.name,
        message=UNSUPPORTED_UPLOAD_MESSAGE,
    )
