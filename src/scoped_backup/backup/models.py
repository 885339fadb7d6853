"""Pydantic models for archives, plans, sources and results.

Field names are snake_case in Python and camelCase on the wire
(``model_dump(by_alias=True)``), matching the archive JSON layout::

    {
      "meta": {"schemaVersion": 1, "scope": "CONTENT", "exportedAt": "...",
               "fileName": "...", "checksum": "<sha256 hex>"},
      "data": {"tags": [...], "posts": [...], ...}
    }

Usage:
    from scoped_backup.backup.models import BackupScope, DirectSource

    source = DirectSource(content=path.read_text())
    result = await dry_run_backup_import(adapter, source, scope=BackupScope.CONTENT)
    print(result.model_dump_json(by_alias=True, indent=2))
"""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Enums
# ============================================================================


class BackupScope(str, Enum):
    """Independently exportable partitions of the dataset."""

    CORE_BASE = "CORE_BASE"
    CONTENT = "CONTENT"
    ASSETS = "ASSETS"
    ANALYTICS = "ANALYTICS"
    OPS_LOGS = "OPS_LOGS"


class ExportMode(str, Enum):
    """Requested delivery of an export."""

    DIRECT = "DIRECT"
    OSS = "OSS"
    AUTO = "AUTO"  # DIRECT when small enough, otherwise OSS


IssueLevel = Literal["error", "warning"]


# ============================================================================
# Catalog, Issues and Plans
# ============================================================================


class ScopeDefinition(CamelModel):
    """Static description of one scope."""

    scope: BackupScope
    label: str
    description: str
    depends_on: list[BackupScope] = Field(default_factory=list)
    data_keys: list[str] = Field(default_factory=list)


class Issue(CamelModel):
    """A problem found while validating an archive."""

    level: IssueLevel
    code: str
    message: str


class TablePlan(CamelModel):
    """Row-count projection for one physical table."""

    table: str
    current: int
    incoming: int
    to_delete: int
    to_insert: int


# ============================================================================
# Archive
# ============================================================================


class ArchiveMeta(CamelModel):
    """Self-describing header of an archive."""

    schema_version: Literal[1]
    scope: BackupScope
    exported_at: str
    file_name: str
    checksum: str = Field(pattern=r"^[a-fA-F0-9]{64}$")


class BackupArchive(CamelModel):
    """``{meta, data}`` unit produced by export and consumed by import."""

    meta: ArchiveMeta
    data: dict[str, list[dict[str, Any]]]


class BuiltArchive(CamelModel):
    """Archive plus its serialized form."""

    archive: BackupArchive
    content: str
    file_name: str
    size_bytes: int
    checksum: str


# ============================================================================
# Sources
# ============================================================================


class DirectSource(CamelModel):
    """Archive bytes already in hand."""

    type: Literal["DIRECT"] = "DIRECT"
    content: str | bytes


class OssUrlSource(CamelModel):
    """Archive that must be fetched from a public URL."""

    type: Literal["OSS_URL"] = "OSS_URL"
    url: str
    expected_checksum: str | None = None


BackupSource = Annotated[DirectSource | OssUrlSource, Field(discriminator="type")]


class LoadedSource(CamelModel):
    """Bytes produced by the loader."""

    content: bytes
    size_bytes: int
    source_type: Literal["DIRECT", "OSS_URL"]


# ============================================================================
# Dry Run and Import Results
# ============================================================================


class DryRunSummary(CamelModel):
    current_rows: int
    incoming_rows: int
    to_delete: int
    to_insert: int


class DryRunResult(CamelModel):
    """Outcome of a read-only validation pass."""

    scope: BackupScope
    mode: Literal["REPLACE"] = "REPLACE"
    checksum: str
    size_bytes: int
    ready: bool
    confirm_text: str
    issues: list[Issue]
    table_plans: list[TablePlan]
    summary: DryRunSummary


class ImportSummary(CamelModel):
    deleted_rows: int
    inserted_rows: int


class ImportResult(CamelModel):
    """Outcome of an applied full-replace import."""

    scope: BackupScope
    mode: Literal["REPLACE"] = "REPLACE"
    checksum: str
    imported_at: str
    table_stats: list[TablePlan]
    summary: ImportSummary


# ============================================================================
# Export Results
# ============================================================================


class DirectExportResult(CamelModel):
    mode: Literal["DIRECT"] = "DIRECT"
    scope: BackupScope
    file_name: str
    size_bytes: int
    checksum: str
    content: str


class OssExportResult(CamelModel):
    mode: Literal["OSS"] = "OSS"
    scope: BackupScope
    file_name: str
    size_bytes: int
    checksum: str
    url: str
    key: str
    provider_id: str
    provider_name: str


class OssRequiredResult(CamelModel):
    """Soft rejection: the archive is too large to return inline."""

    mode: Literal["OSS_REQUIRED"] = "OSS_REQUIRED"
    scope: BackupScope
    file_name: str
    size_bytes: int
    limit_bytes: int
    message: str


ExportResult = Annotated[
    DirectExportResult | OssExportResult | OssRequiredResult,
    Field(discriminator="mode"),
]


# ============================================================================
# Upload-Init Results
# ============================================================================


class ClientS3UploadInit(CamelModel):
    strategy: Literal["CLIENT_S3"] = "CLIENT_S3"
    provider_type: str = "AWS_S3"
    provider_name: str
    storage_provider_id: str
    key: str
    source_url: str
    upload_method: Literal["PUT"] = "PUT"
    upload_url: str
    upload_headers: dict[str, str]


class ClientBlobUploadInit(CamelModel):
    strategy: Literal["CLIENT_BLOB"] = "CLIENT_BLOB"
    provider_type: str = "VERCEL_BLOB"
    provider_name: str
    storage_provider_id: str
    key: str
    source_url: str
    blob_pathname: str
    blob_client_token: str


class UnsupportedUploadInit(CamelModel):
    strategy: Literal["UNSUPPORTED"] = "UNSUPPORTED"
    provider_type: str
    provider_name: str
    message: str


UploadInitResult = Annotated[
    ClientS3UploadInit | ClientBlobUploadInit | UnsupportedUploadInit,
    Field(discriminator="strategy"),
]
