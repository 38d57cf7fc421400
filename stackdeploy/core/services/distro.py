"""
Distribution detection — map the running OS to a package-manager profile.

Reads ``/etc/os-release`` when present and falls back to the legacy
``/etc/redhat-release`` and ``/etc/debian_version`` marker files. The
identifier is looked up in a fixed table; anything else is fatal, so
no package work is ever attempted on an unsupported system.
"""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path
from typing import Callable

from stackdeploy.core.data.distros import (
    DISTRO_ALIASES,
    DISTRO_COMMANDS,
    DNF_PREFERRED,
    SUPPORTED_NAMES,
)
from stackdeploy.core.errors import UnsupportedDistroError
from stackdeploy.core.models.deployment import DistroProfile

logger = logging.getLogger(__name__)


def parse_os_release(content: str) -> dict[str, str]:
    """Parse os-release ``KEY=value`` lines, unquoting values."""
    values: dict[str, str] = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]
        values[key.strip()] = value
    return values


def read_release_info(root: Path = Path("/")) -> tuple[str, str]:
    """Return the lowercase OS id and version from the release files.

    Legacy markers map to fixed ids (``redhat-release`` is always
    ``rhel``) so they hit the table in ``DISTRO_COMMANDS``. The ``distro``
    package would report the derivative's own id (``centos``) instead.

    Raises:
        UnsupportedDistroError: If no release descriptor exists.
    """
    os_release = root / "etc" / "os-release"
    redhat_release = root / "etc" / "redhat-release"
    debian_version = root / "etc" / "debian_version"

    if os_release.is_file():
        info = parse_os_release(os_release.read_text(encoding="utf-8"))
        return info.get("ID", "").lower(), info.get("VERSION_ID", "")

    if redhat_release.is_file():
        match = re.search(r"[0-9]+\.[0-9]+", redhat_release.read_text(encoding="utf-8"))
        return "rhel", match.group(0) if match else ""

    if debian_version.is_file():
        return "debian", debian_version.read_text(encoding="utf-8").strip()

    raise UnsupportedDistroError("Cannot detect Linux distribution")


def resolve_profile(
    os_id: str,
    version: str = "",
    *,
    which: Callable[[str], object] = shutil.which,
) -> DistroProfile:
    """Look up the package-manager profile for an os-release ID.

    Args:
        os_id: Identifier from the release file (case-insensitive).
        version: Version string, carried through for display.
        which: Executable lookup, used to prefer dnf over yum.

    Raises:
        UnsupportedDistroError: If ``os_id`` is not in the table.
    """
    os_id = os_id.lower()
    distro = DISTRO_ALIASES.get(os_id)
    if distro is None:
        raise UnsupportedDistroError(
            f"Unsupported distribution: {os_id or 'unknown'}. "
            f"Supported distributions: {SUPPORTED_NAMES}"
        )

    commands = dict(DISTRO_COMMANDS[distro])
    if distro in DNF_PREFERRED and which("dnf"):
        commands.update(
            package_manager="dnf",
            install_command=("dnf", "install", "-y"),
            update_command=("dnf", "update", "-y"),
        )

    return DistroProfile(distro=distro, os_id=os_id, version=version, **commands)


def detect_distro(
    root: Path = Path("/"),
    *,
    which: Callable[[str], object] = shutil.which,
) -> DistroProfile:
    """Detect the running distribution and resolve its profile."""
    logger.info("Detecting Linux distribution...")
    os_id, version = read_release_info(root)
    profile = resolve_profile(os_id, version, which=which)
    logger.info(
        "Detected: %s %s (package manager: %s)",
        profile.distro, profile.version, profile.package_manager,
    )
    return profile
