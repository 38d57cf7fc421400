"""
Repository provisioning — clone the stack into its deployment directory.

An existing directory is removed and re-cloned. A ``.env`` already
sitting in it is held in memory across the re-clone and written back
byte-for-byte with its original mode, so operator secrets survive.
"""

from __future__ import annotations

import logging
import stat
from dataclasses import dataclass
from pathlib import Path

from stackdeploy.adapters.shell.command import CommandRunner
from stackdeploy.core.errors import CommandError, ReconcileError
from stackdeploy.core.models.deployment import DeploymentTarget
from stackdeploy.core.services.env_reconcile import ENV_FILE, ENV_MODE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreservedFile:
    """A file captured before its directory is wiped."""

    content: bytes
    mode: int

    @classmethod
    def capture(cls, path: Path) -> PreservedFile | None:
        if not path.is_file():
            return None
        try:
            return cls(content=path.read_bytes(), mode=stat.S_IMODE(path.stat().st_mode))
        except OSError as e:
            raise ReconcileError(f"Cannot read existing {path}: {e}") from e

    def restore(self, path: Path) -> None:
        try:
            path.write_bytes(self.content)
            path.chmod(self.mode or ENV_MODE)
        except OSError as e:
            raise ReconcileError(f"Failed to restore {path}: {e}") from e


def _put_back(
    runner: CommandRunner,
    preserved: PreservedFile,
    directory: Path,
    user: str,
) -> None:
    runner.run(["mkdir", "-p", str(directory)], sudo=True).check(
        f"Failed to recreate {directory}"
    )
    runner.run(["chown", f"{user}:{user}", str(directory)], sudo=True).check(
        f"Failed to change ownership of {directory}"
    )
    preserved.restore(directory / ENV_FILE)


def clone_repository(
    runner: CommandRunner,
    target: DeploymentTarget,
    user: str,
) -> bool:
    """Clone ``target.repository_url`` into ``target.directory_path``.

    A captured .env is written back even when the clone or chown fails.

    Returns:
        True if a pre-existing .env was carried over.

    Raises:
        CommandError: If removal, clone or chown fails.
        ReconcileError: If a pre-existing .env cannot be read or restored.
    """
    directory = Path(target.directory_path)
    env_path = directory / ENV_FILE
    preserved = PreservedFile.capture(env_path)

    if directory.exists():
        logger.warning("Directory %s already exists. Removing...", directory)
        runner.run(["rm", "-rf", str(directory)], sudo=True).check(
            f"Failed to remove {directory}"
        )

    logger.info("Cloning %s into %s", target.repository_url, directory)
    try:
        runner.run(
            ["git", "clone", target.repository_url, str(directory)], sudo=True, capture=False,
        ).check(f"Failed to clone {target.repository_url}")
        runner.run(["chown", "-R", f"{user}:{user}", str(directory)], sudo=True).check(
            f"Failed to change ownership of {directory}"
        )
    except CommandError:
        if preserved is not None:
            logger.warning("Clone of %s failed, putting back %s", directory, env_path)
            _put_back(runner, preserved, directory, user)
        raise

    if preserved is None:
        return False
    logger.info("Restoring existing .env at %s", env_path)
    preserved.restore(env_path)
    return True
