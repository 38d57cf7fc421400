"""
Tests for repository provisioning — re-clone keeps an existing .env.
"""

import shutil
import stat
from dataclasses import dataclass
from pathlib import Path

import pytest

from stackdeploy.adapters.mock import MockRunner
from stackdeploy.core.errors import CommandError
from stackdeploy.core.services.paths import derive_target
from stackdeploy.core.services.repo import PreservedFile, clone_repository


@dataclass
class FilesystemRunner(MockRunner):
    """MockRunner that really removes and creates the clone directory."""

    def run(self, cmd, **kwargs):
        result = super().run(cmd, **kwargs)
        if result.ok and cmd[:2] == ["rm", "-rf"]:
            shutil.rmtree(cmd[2])
        elif result.ok and cmd[:2] == ["git", "clone"]:
            Path(cmd[3]).mkdir(parents=True)
            (Path(cmd[3]) / "docker-compose.yml").write_text("services: {}\n")
        elif result.ok and cmd[:2] == ["mkdir", "-p"]:
            Path(cmd[2]).mkdir(parents=True, exist_ok=True)
        return result


@pytest.fixture
def target(tmp_path):
    return derive_target("https://github.com/org/kit.git", install_root=str(tmp_path / "opt"))


class TestCloneRepository:
    def test_fresh_clone(self, target):
        runner = FilesystemRunner()
        assert clone_repository(runner, target, "deploy") is False
        assert runner.lines == [
            f"git clone https://github.com/org/kit.git {target.directory_path}",
            f"chown -R deploy:deploy {target.directory_path}",
        ]
        assert all(c.sudo for c in runner.log)

    def test_existing_directory_removed(self, target):
        Path(target.directory_path).mkdir(parents=True)
        (Path(target.directory_path) / "stale.txt").write_text("old")
        runner = FilesystemRunner()

        clone_repository(runner, target, "deploy")

        assert runner.lines[0] == f"rm -rf {target.directory_path}"
        assert not (Path(target.directory_path) / "stale.txt").exists()

    def test_env_preserved_across_reclone(self, target):
        directory = Path(target.directory_path)
        directory.mkdir(parents=True)
        env = directory / ".env"
        env.write_bytes(b"POSTGRES_PASSWORD=keep-me\r\nCUSTOM=1\n")
        env.chmod(0o640)

        assert clone_repository(FilesystemRunner(), target, "deploy") is True

        assert env.read_bytes() == b"POSTGRES_PASSWORD=keep-me\r\nCUSTOM=1\n"
        assert stat.S_IMODE(env.stat().st_mode) == 0o640
        assert (directory / "docker-compose.yml").exists()

    def test_clone_failure(self, target):
        runner = FilesystemRunner()
        runner.set_failure("git clone", stderr="fatal: repository not found")
        with pytest.raises(CommandError, match="Failed to clone"):
            clone_repository(runner, target, "deploy")
        assert not runner.ran("chown")

    def test_clone_failure_keeps_existing_env(self, target):
        directory = Path(target.directory_path)
        directory.mkdir(parents=True)
        env = directory / ".env"
        env.write_bytes(b"N8N_ENCRYPTION_KEY=secret\n")
        env.chmod(0o640)
        runner = FilesystemRunner()
        runner.set_failure("git clone", stderr="fatal: repository not found")

        with pytest.raises(CommandError, match="Failed to clone"):
            clone_repository(runner, target, "deploy")

        assert env.read_bytes() == b"N8N_ENCRYPTION_KEY=secret\n"
        assert stat.S_IMODE(env.stat().st_mode) == 0o640
        assert runner.ran(f"mkdir -p {directory}")
        assert runner.ran(f"chown deploy:deploy {directory}")

    def test_chown_failure_keeps_existing_env(self, target):
        directory = Path(target.directory_path)
        directory.mkdir(parents=True)
        env = directory / ".env"
        env.write_bytes(b"POSTGRES_PASSWORD=keep-me\n")
        env.chmod(0o600)
        runner = FilesystemRunner()
        runner.set_failure("chown -R", stderr="chown: invalid user")

        with pytest.raises(CommandError, match="Failed to change ownership"):
            clone_repository(runner, target, "deploy")

        assert env.read_bytes() == b"POSTGRES_PASSWORD=keep-me\n"
        assert stat.S_IMODE(env.stat().st_mode) == 0o600
        assert (directory / "docker-compose.yml").exists()


class TestPreservedFile:
    def test_capture_missing(self, tmp_path):
        assert PreservedFile.capture(tmp_path / ".env") is None

    def test_restore_creates_file(self, tmp_path):
        preserved = PreservedFile(content=b"A=1\n", mode=0o600)
        path = tmp_path / ".env"
        preserved.restore(path)
        assert path.read_bytes() == b"A=1\n"
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
