"""Exceptions raised by the backup engine.

Every failure the engine surfaces to an operator derives from
``BackupError`` and carries a message fit to show verbatim.  Referential
and completeness problems are not exceptions during a dry run; they are
collected as ``Issue`` objects and only turn into ``ImportBlockedError``
on the apply path.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scoped_backup.backup.models import Issue


class BackupError(Exception):
    """Base class for backup engine failures."""

    pass


# ----------------------------------------------------------------------------
# Format
# ----------------------------------------------------------------------------


class ArchiveFormatError(BackupError):
    """Archive bytes are not valid JSON."""

    pass


class ArchiveStructureError(BackupError):
    """Archive JSON does not match the ``{meta, data}`` layout."""

    pass


# ----------------------------------------------------------------------------
# Integrity
# ----------------------------------------------------------------------------


class ChecksumMismatchError(BackupError):
    """Recomputed checksum differs from ``meta.checksum``."""

    pass


class ScopeMismatchError(BackupError):
    """Archive scope differs from the scope the caller expected."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Archive scope mismatch: expected {expected}, archive contains {actual}"
        )


class ExpectedChecksumError(BackupError):
    """Remote source checksum differs from the one recorded at upload time."""

    pass


class StaleChecksumError(BackupError):
    """Checksum confirmed by the operator no longer matches the source."""

    pass


# ----------------------------------------------------------------------------
# Gate and blocking issues
# ----------------------------------------------------------------------------


class ConfirmationError(BackupError):
    """Confirmation phrase does not match the required text."""

    pass


class ImportBlockedError(BackupError):
    """Archive has blocking issues and cannot be applied."""

    def __init__(self, issues: list["Issue"]) -> None:
        self.issues = issues
        first = issues[0].message if issues else "unknown issue"
        super().__init__(f"Import blocked: {first}")


# ----------------------------------------------------------------------------
# Capacity, environment and provider
# ----------------------------------------------------------------------------


class SizeLimitExceededError(BackupError):
    """Payload exceeds an allowed size ceiling."""

    def __init__(self, limit_bytes: int, message: str | None = None) -> None:
        self.limit_bytes = limit_bytes
        super().__init__(
            message
            or f"Payload exceeds the size limit of {limit_bytes / 1024 / 1024:.2f} MB"
        )


class UnsafeSourceUrlError(BackupError):
    """Source URL is not a public HTTP(S) resource."""

    pass


class SourceFetchError(BackupError):
    """Remote archive could not be downloaded."""

    pass


class StorageProviderError(BackupError):
    """No usable storage provider, or its configuration is incomplete."""

    pass


class UnknownScopeError(BackupError, KeyError):
    """Requested scope name is not defined."""

    def __init__(self, scope: object) -> None:
        self.scope = scope
        super().__init__(f"Unknown backup scope: {scope!r}")

    def __str__(self) -> str:
        return str(self.args[0])
