"""Tests for the scoped-backup CLI."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from scoped_backup.backup.constants import IMPORT_CONFIRM_TEXT
from scoped_backup.cli import build_parser, main

from conftest import CORE_SERIALS, FakeDatabaseClient, core_tables


@pytest.fixture
def workdir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Empty working directory without backup.toml or a profile lock."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DB_PROFILE", raising=False)
    return tmp_path


def _patch_adapter(db):
    return patch("scoped_backup.cli.get_adapter", AsyncMock(return_value=db))


def _export_to(path: Path, db: FakeDatabaseClient) -> dict:
    with _patch_adapter(db):
        assert main(["export", "core_base", "--output", str(path)]) == 0
    return json.loads(path.read_text(encoding="utf-8"))


# ============================================================================
# Test: Parser
# ============================================================================


class TestParser:
    """Argument parsing."""

    def test_global_options(self) -> None:
        args = build_parser().parse_args(
            ["--env-prefix", "APP_", "--database-url", "postgresql://h/db", "scopes"]
        )
        assert args.env_prefix == "APP_"
        assert args.database_url == "postgresql://h/db"

    def test_restore_requires_checksum(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["restore", "backup.json"])

    def test_export_mode_choices(self) -> None:
        args = build_parser().parse_args(["export", "CONTENT", "-m", "auto"])
        assert args.mode == "auto"
        with pytest.raises(SystemExit):
            build_parser().parse_args(["export", "CONTENT", "-m", "email"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


# ============================================================================
# Test: Local Commands
# ============================================================================


class TestLocalCommands:
    """Commands that never touch the database."""

    def test_scopes(self, capsys: pytest.CaptureFixture) -> None:
        assert main(["scopes"]) == 0
        out = capsys.readouterr().out
        assert "CORE_BASE" in out and "OPS_LOGS" in out

    def test_status_without_profile(self, workdir: Path, capsys: pytest.CaptureFixture) -> None:
        assert main(["status"]) == 0
        assert "No current profile" in capsys.readouterr().out

    def test_status_with_profile(self, workdir: Path, capsys: pytest.CaptureFixture) -> None:
        (workdir / ".db-profile").write_text("local")
        (workdir / "backup.toml").write_text('[profiles.local]\nurl = "postgresql://h/db"\n')
        assert main(["status"]) == 0
        assert "local" in capsys.readouterr().out

    def test_profiles_without_config(self, workdir: Path) -> None:
        assert main(["profiles"]) == 1

    def test_profiles(self, workdir: Path, capsys: pytest.CaptureFixture) -> None:
        (workdir / "backup.toml").write_text(
            '[profiles.local]\nurl = "postgresql://h/db"\ndescription = "dev box"\n'
        )
        assert main(["profiles"]) == 0
        assert "dev box" in capsys.readouterr().out


# ============================================================================
# Test: Database Commands
# ============================================================================


class TestUse:
    def test_writes_lock_after_connecting(self, workdir: Path) -> None:
        adapter = MagicMock()
        adapter.test_connection = AsyncMock(return_value=True)
        adapter.close = AsyncMock()

        with _patch_adapter(adapter):
            assert main(["use", "staging"]) == 0

        assert (workdir / ".db-profile").read_text() == "staging"
        adapter.close.assert_awaited_once()

    def test_failed_connection_keeps_lock(self, workdir: Path) -> None:
        (workdir / ".db-profile").write_text("local")
        adapter = MagicMock()
        adapter.test_connection = AsyncMock(side_effect=OSError("refused"))
        adapter.close = AsyncMock()

        with _patch_adapter(adapter):
            assert main(["use", "staging"]) == 1

        assert (workdir / ".db-profile").read_text() == "local"


class TestExport:
    def test_direct_writes_to_export_dir(self, workdir: Path) -> None:
        db = FakeDatabaseClient(core_tables())
        with _patch_adapter(db):
            assert main(["export", "CORE_BASE"]) == 0

        files = list((workdir / "backups").glob("scoped-core_base-backup-*.json"))
        assert len(files) == 1
        assert json.loads(files[0].read_text(encoding="utf-8"))["meta"]["scope"] == "CORE_BASE"
        assert db.closed

    def test_unknown_scope(self, workdir: Path) -> None:
        with _patch_adapter(FakeDatabaseClient()):
            assert main(["export", "MEDIA"]) == 1

    def test_missing_profile(self, workdir: Path) -> None:
        """Without a profile or URL the command fails cleanly."""
        assert main(["export", "CONTENT"]) == 1


class TestDryRunAndRestore:
    def test_dry_run_ready(self, workdir: Path, capsys: pytest.CaptureFixture) -> None:
        db = FakeDatabaseClient(core_tables(), serial_columns=CORE_SERIALS)
        archive = _export_to(workdir / "core.json", db)

        with _patch_adapter(db):
            assert main(["dry-run", str(workdir / "core.json")]) == 0

        assert archive["meta"]["checksum"] in capsys.readouterr().out.replace("\n", "")

    def test_dry_run_blocked(self, workdir: Path) -> None:
        db = FakeDatabaseClient(core_tables())
        archive = _export_to(workdir / "core.json", db)
        (workdir / "core.json").write_text(json.dumps(archive).replace("admin", "root", 1))

        with _patch_adapter(db):
            assert main(["dry-run", str(workdir / "core.json")]) == 1

    def test_restore(self, workdir: Path) -> None:
        db = FakeDatabaseClient(core_tables(), serial_columns=CORE_SERIALS)
        archive = _export_to(workdir / "core.json", db)

        with _patch_adapter(db):
            code = main(
                [
                    "restore",
                    str(workdir / "core.json"),
                    "--checksum",
                    archive["meta"]["checksum"],
                    "--confirm",
                    IMPORT_CONFIRM_TEXT,
                    "--batch-size",
                    "1",
                ]
            )

        assert code == 0
        assert db.transactions == 1
        assert len(db.rows("User")) == 2

    def test_restore_wrong_confirmation(self, workdir: Path) -> None:
        db = FakeDatabaseClient(core_tables(), serial_columns=CORE_SERIALS)
        archive = _export_to(workdir / "core.json", db)

        with _patch_adapter(db):
            code = main(
                [
                    "restore",
                    str(workdir / "core.json"),
                    "--checksum",
                    archive["meta"]["checksum"],
                    "--confirm",
                    "yes",
                ]
            )

        assert code == 1
        assert db.writes == 0

    def test_restore_prompts_for_confirmation(self, workdir: Path) -> None:
        db = FakeDatabaseClient(core_tables(), serial_columns=CORE_SERIALS)
        archive = _export_to(workdir / "core.json", db)

        with _patch_adapter(db), patch(
            "scoped_backup.cli.console.input", return_value=IMPORT_CONFIRM_TEXT
        ):
            code = main(
                ["restore", str(workdir / "core.json"), "--checksum", archive["meta"]["checksum"]]
            )

        assert code == 0

    def test_missing_file(self, workdir: Path) -> None:
        with _patch_adapter(FakeDatabaseClient()):
            assert main(["dry-run", str(workdir / "nope.json")]) == 1
