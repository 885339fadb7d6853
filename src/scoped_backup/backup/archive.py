"""Archive building, serialization, parsing and verification.

Pure functions, no I/O.

Usage:
    from scoped_backup.backup.archive import build_archive, parse_archive, verify_archive

    built = build_archive(BackupScope.CONTENT, data)
    Path(built.file_name).write_text(built.content)

    archive = parse_archive(content)
    checksum = verify_archive(archive)
"""

import json
import logging
import math
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from scoped_backup.backup.constants import FILE_NAME_PREFIX, SCHEMA_VERSION
from scoped_backup.backup.errors import (
    ArchiveFormatError,
    ArchiveStructureError,
    ChecksumMismatchError,
)
from scoped_backup.backup.models import ArchiveMeta, BackupArchive, BackupScope, BuiltArchive
from scoped_backup.backup.normalize import compute_checksum, format_timestamp, normalize_value

logger = logging.getLogger(__name__)


def _reject_constant(token: str) -> Any:
    raise ArchiveFormatError(f"Backup file contains non-standard JSON value {token}")


def _parse_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ArchiveFormatError(f"Backup file contains out-of-range number {text}")
    return value


def create_file_name(scope: BackupScope, moment: datetime) -> str:
    """``{prefix}-{scope}-backup-{yyyymmdd-hhmmss}.json`` for ``moment``."""
    return (
        f"{FILE_NAME_PREFIX}-{scope.value.lower()}-backup-"
        f"{moment.strftime('%Y%m%d-%H%M%S')}.json"
    )


def serialize_archive(archive: BackupArchive) -> str:
    """Render an archive as indented JSON text."""
    return json.dumps(
        archive.model_dump(by_alias=True, mode="json"),
        ensure_ascii=False,
        indent=2,
    )


def build_archive(
    scope: BackupScope,
    data: dict[str, list[dict[str, Any]]],
    exported_at: datetime | None = None,
) -> BuiltArchive:
    """Wrap exported rows with metadata and serialize them.

    Rows are normalized before hashing and serialization so the file
    content and its checksum describe the same values.

    Args:
        scope: Scope the data belongs to.
        data: Mapping of data key to row list.
        exported_at: Export timestamp (default: now, UTC).

    Returns:
        ``BuiltArchive`` with the archive, its JSON text, file name,
        UTF-8 byte size and checksum.
    """
    moment = exported_at or datetime.now(timezone.utc)
    normalized = normalize_value(data)
    checksum = compute_checksum(scope, normalized)
    file_name = create_file_name(scope, moment)

    archive = BackupArchive(
        meta=ArchiveMeta(
            schema_version=SCHEMA_VERSION,
            scope=scope,
            exported_at=format_timestamp(moment),
            file_name=file_name,
            checksum=checksum,
        ),
        data=normalized,
    )
    content = serialize_archive(archive)

    return BuiltArchive(
        archive=archive,
        content=content,
        file_name=file_name,
        size_bytes=len(content.encode("utf-8")),
        checksum=checksum,
    )


def parse_archive(content: str | bytes) -> BackupArchive:
    """Parse archive text and validate its structure.

    Raises:
        ArchiveFormatError: If ``content`` is not valid JSON, or uses the
            non-standard ``NaN``/``Infinity`` tokens.
        ArchiveStructureError: If the JSON is not a valid ``{meta, data}``.
    """
    try:
        parsed = json.loads(
            content, parse_constant=_reject_constant, parse_float=_parse_float
        )
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ArchiveFormatError("Backup file is not valid JSON") from e

    try:
        return BackupArchive.model_validate(parsed)
    except ValidationError as e:
        logger.debug("Archive structure errors: %s", e.errors())
        raise ArchiveStructureError("Backup file structure is invalid") from e


def verify_archive(archive: BackupArchive) -> str:
    """Recompute the archive checksum and compare it to ``meta.checksum``.

    Returns:
        The recomputed checksum (lowercase hex).

    Raises:
        ChecksumMismatchError: If the checksums differ.
    """
    checksum = compute_checksum(archive.meta.scope, archive.data)
    if checksum != archive.meta.checksum.lower():
        raise ChecksumMismatchError(
            "Checksum mismatch: the backup file is corrupted or has been modified"
        )
    return checksum
