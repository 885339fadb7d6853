"""Vercel Blob storage over its HTTP API.

Server-side uploads use the read-write token directly.  Client-side
uploads get a scoped client token: an HMAC-SHA256 signature of a base64
JSON payload, keyed by the read-write token, which the Blob API verifies.
"""

import base64
import hashlib
import hmac
import json
import logging
import time
from urllib.parse import quote

import httpx

from scoped_backup.backup.errors import StorageProviderError
from scoped_backup.storage.keys import join_storage_prefix, to_public_url
from scoped_backup.storage.providers import StorageProvider

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://blob.vercel-storage.com"
API_VERSION = "7"


def generate_client_token(
    read_write_token: str,
    pathname: str,
    maximum_size_in_bytes: int,
    allowed_content_types: list[str],
    valid_until_ms: int,
    add_random_suffix: bool = False,
    allow_overwrite: bool = False,
) -> str:
    """Mint a client upload token restricted to one pathname.

    The store id is the fourth ``_``-separated part of the read-write
    token (``vercel_blob_rw_<storeId>_<secret>``).
    """
    parts = read_write_token.split("_")
    store_id = parts[3] if len(parts) > 3 else ""

    payload_json = json.dumps(
        {
            "pathname": pathname,
            "maximumSizeInBytes": maximum_size_in_bytes,
            "allowedContentTypes": allowed_content_types,
            "validUntil": valid_until_ms,
            "addRandomSuffix": add_random_suffix,
            "allowOverwrite": allow_overwrite,
        },
        separators=(",", ":"),
    )
    payload = base64.b64encode(payload_json.encode("utf-8")).decode("ascii")
    signature = hmac.new(
        read_write_token.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256
    ).hexdigest()
    secured = base64.b64encode(f"{signature}.{payload}".encode("utf-8")).decode("ascii")
    return f"vercel_blob_client_{store_id}_{secured}"


class BlobStorage:
    """Upload against one ``VERCEL_BLOB`` provider.

    Args:
        provider: Provider whose ``config`` holds ``token`` (``basePath``,
            ``cacheControl`` and ``apiUrl`` optional).
        client: Optional ``httpx.AsyncClient``.
        timeout: Request timeout in seconds.

    Raises:
        StorageProviderError: If the token is missing.
    """

    def __init__(
        self,
        provider: StorageProvider,
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ) -> None:
        token = provider.config.get("token")
        if not token:
            raise StorageProviderError("VERCEL_BLOB configuration is missing token")

        self.provider = provider
        self.token: str = token
        self.base_path: str | None = provider.config.get("basePath")
        self.cache_control: str | None = provider.config.get("cacheControl")
        self.api_url: str = provider.config.get("apiUrl") or DEFAULT_API_URL
        self._client = client
        self._timeout = timeout

    def object_key(self, key: str) -> str:
        """Key with the provider ``basePath`` applied."""
        return join_storage_prefix(self.base_path, key)

    async def upload(self, key: str, body: bytes, content_type: str) -> tuple[str, str]:
        """PUT a blob and return ``(object_key, public_url)``.

        Raises:
            StorageProviderError: If the Blob API rejects the upload.
        """
        object_key = self.object_key(key)
        headers = {
            "authorization": f"Bearer {self.token}",
            "x-api-version": API_VERSION,
            "x-content-type": content_type,
            "x-add-random-suffix": "0",
        }
        if self.cache_control:
            headers["x-cache-control-max-age"] = self.cache_control

        url = f"{self.api_url.rstrip('/')}/{quote(object_key)}"
        owns_client = self._client is None
        client = self._client or httpx.AsyncClient(timeout=self._timeout)
        try:
            response = await client.put(url, content=body, headers=headers)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise StorageProviderError(f"Vercel Blob upload failed: {e}") from e
        except ValueError as e:
            raise StorageProviderError("Vercel Blob upload failed: response is not JSON") from e
        finally:
            if owns_client:
                await client.aclose()

        returned_url = payload.get("url") if isinstance(payload, dict) else None
        logger.info("Uploaded %d bytes to blob %s", len(body), object_key)
        return object_key, returned_url or to_public_url(self.provider.base_url, object_key)

    def client_token(
        self,
        object_key: str,
        maximum_size_in_bytes: int,
        allowed_content_types: list[str],
        expires_in_seconds: int,
    ) -> str:
        """Client upload token for ``object_key``, valid for ``expires_in_seconds``."""
        return generate_client_token(
            self.token,
            pathname=object_key,
            maximum_size_in_bytes=maximum_size_in_bytes,
            allowed_content_types=allowed_content_types,
            valid_until_ms=int(time.time() * 1000) + expires_in_seconds * 1000,
        )
