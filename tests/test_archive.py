"""Tests for archive building, parsing and verification."""

import json
from datetime import datetime, timezone

import pytest

from scoped_backup.backup.archive import (
    build_archive,
    create_file_name,
    parse_archive,
    verify_archive,
)
from scoped_backup.backup.errors import (
    ArchiveFormatError,
    ArchiveStructureError,
    ChecksumMismatchError,
)
from scoped_backup.backup.models import BackupScope
from scoped_backup.backup.normalize import compute_checksum

EXPORTED_AT = datetime(2026, 1, 15, 9, 5, 7, tzinfo=timezone.utc)


def _sample_data() -> dict:
    return {
        "auditLogs": [{"id": 1, "action": "LOGIN", "createdAt": EXPORTED_AT}],
        "healthChecks": [],
        "cronHistories": [],
        "cloudTriggerHistories": [],
    }


class TestBuildArchive:
    """build_archive wraps, normalizes and serializes export data."""

    def test_meta_fields(self) -> None:
        built = build_archive(BackupScope.OPS_LOGS, _sample_data(), exported_at=EXPORTED_AT)
        meta = built.archive.meta
        assert meta.schema_version == 1
        assert meta.scope == BackupScope.OPS_LOGS
        assert meta.exported_at == "2026-01-15T09:05:07.000Z"
        assert meta.file_name == "scoped-ops_logs-backup-20260115-090507.json"
        assert meta.checksum == built.checksum

    def test_content_is_indented_camel_case_json(self) -> None:
        built = build_archive(BackupScope.OPS_LOGS, _sample_data(), exported_at=EXPORTED_AT)
        parsed = json.loads(built.content)
        assert set(parsed) == {"meta", "data"}
        assert parsed["meta"]["schemaVersion"] == 1
        assert parsed["meta"]["fileName"] == built.file_name
        assert parsed["data"]["auditLogs"][0]["createdAt"] == "2026-01-15T09:05:07.000Z"
        assert built.content.startswith("{\n  ")

    def test_size_is_utf8_byte_length(self) -> None:
        data = _sample_data()
        data["auditLogs"][0]["action"] = "登录"
        built = build_archive(BackupScope.OPS_LOGS, data, exported_at=EXPORTED_AT)
        assert built.size_bytes == len(built.content.encode("utf-8"))
        assert built.size_bytes > len(built.content)

    def test_checksum_matches_serialized_data(self) -> None:
        """The stored checksum is reproducible from the file content alone."""
        built = build_archive(BackupScope.OPS_LOGS, _sample_data(), exported_at=EXPORTED_AT)
        parsed = json.loads(built.content)
        assert compute_checksum(parsed["meta"]["scope"], parsed["data"]) == built.checksum

    def test_file_name_helper(self) -> None:
        assert create_file_name(BackupScope.CORE_BASE, EXPORTED_AT) == (
            "scoped-core_base-backup-20260115-090507.json"
        )


class TestParseArchive:
    """parse_archive separates format errors from structure errors."""

    def test_round_trip(self) -> None:
        built = build_archive(BackupScope.OPS_LOGS, _sample_data(), exported_at=EXPORTED_AT)
        archive = parse_archive(built.content.encode("utf-8"))
        assert archive.meta.checksum == built.checksum
        assert archive.data["auditLogs"][0]["action"] == "LOGIN"

    def test_invalid_json(self) -> None:
        with pytest.raises(ArchiveFormatError):
            parse_archive("{not json")

    def test_invalid_utf8(self) -> None:
        with pytest.raises(ArchiveFormatError):
            parse_archive(b"\x80abc")

    @pytest.mark.parametrize("token", ["NaN", "Infinity", "-Infinity", "1e999"])
    def test_non_finite_numbers_are_fatal(self, token: str) -> None:
        """A null swapped for NaN must not slip past the checksum."""
        data = _sample_data()
        data["auditLogs"][0]["note"] = None
        built = build_archive(BackupScope.OPS_LOGS, data, exported_at=EXPORTED_AT)
        tampered = built.content.replace('"note": null', f'"note": {token}')
        assert tampered != built.content

        with pytest.raises(ArchiveFormatError):
            parse_archive(tampered)

    @pytest.mark.parametrize(
        "payload",
        [
            {"data": {}},
            {"meta": {"schemaVersion": 2, "scope": "CONTENT", "exportedAt": "x",
                      "fileName": "f", "checksum": "a" * 64}, "data": {}},
            {"meta": {"schemaVersion": 1, "scope": "NOPE", "exportedAt": "x",
                      "fileName": "f", "checksum": "a" * 64}, "data": {}},
            {"meta": {"schemaVersion": 1, "scope": "CONTENT", "exportedAt": "x",
                      "fileName": "f", "checksum": "short"}, "data": {}},
            {"meta": {"schemaVersion": 1, "scope": "CONTENT", "exportedAt": "x",
                      "fileName": "f", "checksum": "a" * 64}, "data": {"tags": {}}},
        ],
    )
    def test_structure_errors(self, payload: dict) -> None:
        """Wrong version, unknown scope, bad checksum or non-list data are rejected."""
        with pytest.raises(ArchiveStructureError):
            parse_archive(json.dumps(payload))


class TestVerifyArchive:
    """verify_archive recomputes and compares the checksum."""

    def test_valid_archive(self) -> None:
        built = build_archive(BackupScope.OPS_LOGS, _sample_data(), exported_at=EXPORTED_AT)
        assert verify_archive(parse_archive(built.content)) == built.checksum

    def test_tampered_data_detected(self) -> None:
        built = build_archive(BackupScope.OPS_LOGS, _sample_data(), exported_at=EXPORTED_AT)
        tampered = built.content.replace('"LOGIN"', '"LOGIM"')
        with pytest.raises(ChecksumMismatchError):
            verify_archive(parse_archive(tampered))

    def test_uppercase_meta_checksum_accepted(self) -> None:
        built = build_archive(BackupScope.OPS_LOGS, _sample_data(), exported_at=EXPORTED_AT)
        upper = built.content.replace(built.checksum, built.checksum.upper())
        assert verify_archive(parse_archive(upper)) == built.checksum
