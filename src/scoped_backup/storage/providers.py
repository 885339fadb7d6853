"""Storage provider records and writable-provider resolution.

Provider rows live in the ``StorageProvider`` table of the target
database (the same rows the assets scope backs up).
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from scoped_backup.adapters.base import DatabaseClient
from scoped_backup.backup.errors import StorageProviderError

logger = logging.getLogger(__name__)

PROVIDER_TABLE = "StorageProvider"


class StorageProvider(BaseModel):
    """One configured storage backend."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str
    name: str
    type: str  # LOCAL, AWS_S3, VERCEL_BLOB, GITHUB_PAGES, EXTERNAL_URL
    base_url: str = ""
    is_default: bool = False
    is_active: bool = True
    max_file_size: int = 0
    path_template: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_string(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("config", mode="before")
    @classmethod
    def _parse_config(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            return json.loads(value) if value.strip() else {}
        return value


async def resolve_writable_provider(adapter: DatabaseClient) -> StorageProvider:
    """Pick the provider backups are written to.

    The active default provider wins; otherwise the oldest active one.

    Raises:
        StorageProviderError: If no provider is active, or the chosen one
            is ``EXTERNAL_URL`` (read-only).
    """
    rows = await adapter.select(
        PROVIDER_TABLE,
        filters={"isDefault": True, "isActive": True},
        order_by="createdAt",
    )
    if not rows:
        rows = await adapter.select(
            PROVIDER_TABLE, filters={"isActive": True}, order_by="createdAt"
        )
    if not rows:
        raise StorageProviderError("No active storage provider is configured")

    provider = StorageProvider.model_validate(rows[0])
    if provider.type == "EXTERNAL_URL":
        raise StorageProviderError(
            "The default storage provider is EXTERNAL_URL, which cannot store backup files"
        )

    logger.debug("Using storage provider %s (%s)", provider.name, provider.type)
    return provider
