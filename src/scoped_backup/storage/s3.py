"""AWS S3 and S3-compatible object storage via boto3.

boto3 is synchronous; calls run in a worker thread so the event loop
stays free.
"""

import asyncio
import logging
from typing import Any

import boto3
from botocore.config import Config

from scoped_backup.backup.errors import StorageProviderError
from scoped_backup.storage.keys import join_storage_prefix, to_public_url
from scoped_backup.storage.providers import StorageProvider

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("accessKeyId", "secretAccessKey", "region", "bucket")


def _is_truthy(value: Any) -> bool:
    return value is True or value == "true"


class S3Storage:
    """Upload and presign against one ``AWS_S3`` provider.

    Args:
        provider: Provider whose ``config`` holds ``accessKeyId``,
            ``secretAccessKey``, ``region`` and ``bucket`` (``endpoint``,
            ``basePath``, ``forcePathStyle`` and ``acl`` optional).
        client: Optional pre-built boto3 S3 client.

    Raises:
        StorageProviderError: If a required config field is missing.
    """

    def __init__(self, provider: StorageProvider, client: Any = None) -> None:
        config = provider.config
        missing = [name for name in _REQUIRED_FIELDS if not config.get(name)]
        if missing:
            raise StorageProviderError(
                "AWS_S3 configuration is incomplete; check "
                "accessKeyId/secretAccessKey/region/bucket"
            )

        self.provider = provider
        self.bucket: str = config["bucket"]
        self.base_path: str | None = config.get("basePath")
        self.acl: str | None = config.get("acl")
        self._client = client or boto3.client(
            "s3",
            region_name=config["region"],
            endpoint_url=config.get("endpoint") or None,
            aws_access_key_id=config["accessKeyId"],
            aws_secret_access_key=config["secretAccessKey"],
            config=Config(
                signature_version="s3v4",
                s3={
                    "addressing_style": (
                        "path" if _is_truthy(config.get("forcePathStyle")) else "auto"
                    )
                },
            ),
        )

    def object_key(self, key: str) -> str:
        """Key with the provider ``basePath`` applied."""
        return join_storage_prefix(self.base_path, key)

    async def upload(self, key: str, body: bytes, content_type: str) -> tuple[str, str]:
        """Put an object and return ``(object_key, public_url)``."""
        object_key = self.object_key(key)
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": object_key,
            "Body": body,
            "ContentType": content_type,
        }
        if self.acl:
            params["ACL"] = self.acl

        await asyncio.to_thread(self._client.put_object, **params)
        logger.info("Uploaded %d bytes to s3://%s/%s", len(body), self.bucket, object_key)
        return object_key, to_public_url(self.provider.base_url, object_key)

    async def presign_put(self, object_key: str, content_type: str, expires_in: int) -> str:
        """Presigned ``PUT`` URL for a client-side upload of ``object_key``."""
        return await asyncio.to_thread(
            self._client.generate_presigned_url,
            "put_object",
            Params={
                "Bucket": self.bucket,
                "Key": object_key,
                "ContentType": content_type,
            },
            ExpiresIn=expires_in,
            HttpMethod="PUT",
        )
