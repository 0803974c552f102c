"""Tests for the project-backup CLI."""

import inspect
import os
import uuid
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from project_backup.archive.framing import build_archive
from project_backup.backup.models import BackupPayload, MemberBackup, ProjectBackup
from project_backup.backup.service import BackupService
from project_backup.cli import (
    _async_backup,
    _async_inspect,
    _async_restore,
    cmd_backup,
    cmd_profiles,
    main,
)

from conftest import (
    FAST_ARGON2,
    PASSWORD,
    MemoryPermissionGate,
    MemoryStore,
    memory_repositories,
    seed_sample_graph,
)

CONFIG = """
[crypto]
pepper = "cli-pepper"
argon2_memory = 8
argon2_iterations = 1
argon2_parallelism = 1

[profiles.local]
url = "postgresql://user:pw@localhost/app"
description = "Local dev"

[profiles.staging]
url = "postgresql://user:pw@staging/app"
"""


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "backup.toml"
    path.write_text(CONFIG)
    return path


@pytest.fixture
def password_env():
    with patch.dict(os.environ, {"PROJECT_BACKUP_PASSWORD": PASSWORD}):
        yield


def _archive(tmp_path: Path, codec, pepper: bytes = b"cli-pepper") -> Path:
    payload = BackupPayload(
        created_at="2026-01-01T00:00:00Z",
        project=ProjectBackup(id="p0", name="Demo"),
        member=MemberBackup(),
    )
    path = tmp_path / "Demo_20260101_000000.infbk"
    path.write_bytes(build_archive(
        payload, PASSWORD, codec=codec, pepper=pepper,
        params=FAST_ARGON2,
    ))
    return path


# ------------------------------------------------------------------
# Command structure
# ------------------------------------------------------------------


class TestCommandStructure:
    """Async implementations wrapped by sync cmd_* functions."""

    def test_async_implementations(self):
        for fn in (_async_backup, _async_restore, _async_inspect):
            assert inspect.iscoroutinefunction(fn)

    def test_cmd_backup_calls_asyncio_run(self):
        assert "asyncio.run" in inspect.getsource(cmd_backup)

    def test_cmd_profiles_is_sync(self):
        assert "asyncio.run" not in inspect.getsource(cmd_profiles)

    def test_backup_requires_project_id(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["backup", "--user-id", str(uuid.uuid4())])
        assert exc_info.value.code == 2

    def test_global_options_parsed(self):
        with patch("project_backup.cli.cmd_profiles", return_value=0) as mock_profiles:
            assert main(["--env-prefix", "APP_", "--profile", "local", "profiles"]) == 0
        args = mock_profiles.call_args[0][0]
        assert args.env_prefix == "APP_"
        assert args.profile == "local"


# ------------------------------------------------------------------
# profiles
# ------------------------------------------------------------------


class TestProfiles:
    def test_lists_profiles(self, config_path, capsys):
        assert main(["--config", str(config_path), "--profile", "local", "profiles"]) == 0
        out = capsys.readouterr().out
        assert "local" in out
        assert "staging" in out
        assert "active profile" in out

    def test_missing_config(self, tmp_path):
        assert main(["--config", str(tmp_path / "none.toml"), "profiles"]) == 1


# ------------------------------------------------------------------
# inspect
# ------------------------------------------------------------------


class TestInspect:
    def test_inspect_valid_archive(self, config_path, tmp_path, codec, password_env, capsys):
        path = _archive(tmp_path, codec)
        assert main(["--config", str(config_path), "inspect", str(path)]) == 0
        out = capsys.readouterr().out
        assert "Demo" in out
        assert "Backup payload valid" in out

    def test_inspect_wrong_pepper(self, config_path, tmp_path, codec, password_env, capsys):
        path = _archive(tmp_path, codec, pepper=b"other")
        assert main(["--config", str(config_path), "inspect", str(path)]) == 1
        assert "Wrong password or corrupted file" in capsys.readouterr().out

    def test_inspect_bad_magic_rejected_before_decrypt(self, config_path, tmp_path, password_env, capsys):
        path = tmp_path / "bad.infbk"
        path.write_bytes(b"NOTBK" + bytes(100))
        with patch("project_backup.cli.load_archive") as mock_load:
            assert main(["--config", str(config_path), "inspect", str(path)]) == 1
        mock_load.assert_not_called()
        assert "FormatInvalidError" in capsys.readouterr().out

    def test_inspect_uses_configured_codec(self, config_path, tmp_path, codec, password_env):
        path = _archive(tmp_path, codec)
        with patch("project_backup.cli.build_codec", return_value=codec) as mock_build:
            assert main(["--config", str(config_path), "inspect", str(path)]) == 0
        mock_build.assert_called_once()

    def test_inspect_missing_file(self, config_path, tmp_path):
        assert main(["--config", str(config_path), "inspect", str(tmp_path / "x.infbk")]) == 1

    def test_short_password_rejected(self, config_path, tmp_path, codec, capsys):
        path = _archive(tmp_path, codec)
        with patch.dict(os.environ, {"PROJECT_BACKUP_PASSWORD": "short"}):
            assert main(["--config", str(config_path), "inspect", str(path)]) == 1
        assert "at least 8" in capsys.readouterr().out


# ------------------------------------------------------------------
# backup / restore
# ------------------------------------------------------------------


class TestBackupRestore:
    """Database-backed commands with the adapter replaced by memory storage."""

    @pytest.fixture
    def adapter(self):
        return AsyncMock()

    def test_backup_then_restore(self, config_path, tmp_path, service, store, adapter, password_env):
        graph = seed_sample_graph(store)
        out_dir = tmp_path / "out"

        with patch("project_backup.cli.get_adapter", return_value=adapter), \
             patch("project_backup.cli.build_backup_service", return_value=service):
            code = main([
                "--config", str(config_path), "--profile", "local", "backup",
                "--project-id", str(graph.project_id),
                "--user-id", str(graph.owner_id),
                "-o", str(out_dir),
            ])
            assert code == 0
            (written,) = out_dir.glob("My_Project_1_*.infbk")

            code = main([
                "--config", str(config_path), "--profile", "local", "restore",
                str(written), "--user-id", str(uuid.uuid4()),
            ])

        assert code == 0
        assert len(store.projects) == 2
        assert adapter.close.await_count == 2

    def test_backup_permission_denied(self, config_path, service, store, adapter, password_env, capsys):
        graph = seed_sample_graph(store)

        with patch("project_backup.cli.get_adapter", return_value=adapter), \
             patch("project_backup.cli.build_backup_service", return_value=service):
            code = main([
                "--config", str(config_path), "--profile", "local", "backup",
                "--project-id", str(graph.project_id),
                "--user-id", str(graph.viewer_id),
            ])

        assert code == 1
        assert "PermissionDeniedError" in capsys.readouterr().out
        adapter.close.assert_awaited_once()

    def test_restore_unknown_profile(self, config_path, tmp_path, codec, password_env, capsys):
        path = _archive(tmp_path, codec)
        code = main([
            "--config", str(config_path), "--profile", "prod", "restore",
            str(path), "--user-id", str(uuid.uuid4()),
        ])
        assert code == 1
        assert "not found" in capsys.readouterr().out

    def test_restore_wrong_pepper_writes_nothing(self, config_path, tmp_path, codec, adapter, password_env):
        target = MemoryStore()
        path = _archive(tmp_path, codec, pepper=b"other")

        service = BackupService(
            memory_repositories(target), MemoryPermissionGate(target), codec,
            pepper=b"cli-pepper", argon2_params=FAST_ARGON2,
        )
        with patch("project_backup.cli.get_adapter", return_value=adapter), \
             patch("project_backup.cli.build_backup_service", return_value=service):
            code = main([
                "--config", str(config_path), "--profile", "local", "restore",
                str(path), "--user-id", str(uuid.uuid4()),
            ])

        assert code == 1
        assert target.projects == []
