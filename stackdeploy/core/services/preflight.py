"""
Preflight checks — run before any prompt or package work.

The installer runs as a regular user and escalates with sudo per
command; running it as root is refused unless the settings allow it.
"""

from __future__ import annotations

import logging

from stackdeploy.adapters.shell.command import CommandRunner
from stackdeploy.core.errors import PreflightError
from stackdeploy.core.models.deployment import DistroProfile
from stackdeploy.core.models.settings import InstallerSettings

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("git", "curl")


def check_not_root(runner: CommandRunner, settings: InstallerSettings) -> None:
    if runner.is_root and not settings.allow_root:
        raise PreflightError(
            "This installer should not be run as root. "
            "Please run as a regular user with sudo privileges."
        )


def check_sudo(runner: CommandRunner) -> None:
    """Validate sudo rights, prompting for the password once if needed."""
    if runner.is_root:
        return
    result = runner.run(["sudo", "-v"], capture=False)
    if not result.ok:
        raise PreflightError("User does not have sudo privileges")


def check_connectivity(runner: CommandRunner, host: str) -> None:
    result = runner.run(["ping", "-c", "1", host], timeout=15)
    if not result.ok:
        raise PreflightError(f"No internet connectivity detected (cannot reach {host})")


def ensure_tools(runner: CommandRunner, distro: DistroProfile) -> list[str]:
    """Install any of git / curl that are missing. Returns what was installed."""
    installed: list[str] = []
    for tool in REQUIRED_TOOLS:
        if runner.which(tool):
            continue
        logger.warning("%s not found. Installing...", tool)
        runner.run(distro.install(tool), sudo=True, capture=False).check(
            f"Failed to install {tool}"
        )
        installed.append(tool)
    return installed


def run_preflight(
    runner: CommandRunner,
    distro: DistroProfile,
    settings: InstallerSettings,
) -> list[str]:
    """Sudo, connectivity and tool checks. Returns tools installed on the way."""
    logger.info("Checking prerequisites...")
    check_sudo(runner)
    check_connectivity(runner, settings.connectivity_host)
    installed = ensure_tools(runner, distro)
    logger.info("Prerequisites check passed")
    return installed
