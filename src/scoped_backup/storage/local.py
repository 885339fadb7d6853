"""Local filesystem storage rooted at ``config.rootDir``."""

import asyncio
import logging
import os
from pathlib import Path

from scoped_backup.backup.errors import StorageProviderError
from scoped_backup.storage.keys import normalize_posix_path, to_public_url
from scoped_backup.storage.providers import StorageProvider

logger = logging.getLogger(__name__)


class LocalStorage:
    """Write objects below a root directory.

    ``config`` keys: ``rootDir`` (required), ``createDirIfNotExists``
    (default true), ``fileMode`` and ``dirMode`` (octal strings).
    """

    def __init__(self, provider: StorageProvider) -> None:
        root_dir = provider.config.get("rootDir")
        if not root_dir:
            raise StorageProviderError("LOCAL configuration requires rootDir")

        self.provider = provider
        self.root = Path(root_dir).resolve()
        self.create_dirs: bool = provider.config.get("createDirIfNotExists", True) is not False
        self.file_mode = _parse_mode(provider.config.get("fileMode"))
        self.dir_mode = _parse_mode(provider.config.get("dirMode"))

    def object_key(self, key: str) -> str:
        return normalize_posix_path(key)

    def _disk_path(self, object_key: str) -> Path:
        path = (self.root / object_key).resolve()
        if path != self.root and self.root not in path.parents:
            raise StorageProviderError(f"Invalid file path: {object_key}")
        return path

    def _write(self, path: Path, body: bytes) -> None:
        if self.create_dirs:
            if self.dir_mode is not None:
                path.parent.mkdir(parents=True, exist_ok=True, mode=self.dir_mode)
            else:
                path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(body)
        if self.file_mode is not None:
            os.chmod(path, self.file_mode)

    async def upload(self, key: str, body: bytes, content_type: str) -> tuple[str, str]:
        """Write a file and return ``(object_key, public_url)``."""
        object_key = self.object_key(key)
        path = self._disk_path(object_key)
        await asyncio.to_thread(self._write, path, body)
        logger.info("Wrote %d bytes to %s", len(body), path)
        return object_key, to_public_url(self.provider.base_url, object_key)


def _parse_mode(value: str | int | None) -> int | None:
    if value is None or value == "":
        return None
    return int(str(value), 8)
