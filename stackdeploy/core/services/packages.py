"""
Package provisioning — system update, Docker, nginx and certbot.

Each function dispatches on the distro family from the detected
profile. A failing install is fatal; removal of legacy packages and
other best-effort commands are allowed to fail.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path

from stackdeploy.adapters.shell.command import CommandRunner
from stackdeploy.core.models.deployment import DistroProfile
from stackdeploy.core.models.settings import InstallerSettings

logger = logging.getLogger(__name__)

DOCKER_PACKAGES = (
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
)

_LEGACY_DOCKER_APT = ("docker", "docker-engine", "docker.io", "containerd", "runc")
_LEGACY_DOCKER_RHEL = (
    "docker", "docker-client", "docker-client-latest", "docker-common",
    "docker-latest", "docker-latest-logrotate", "docker-logrotate", "docker-engine",
)

_DOCKER_REPOS = {
    "fedora": "https://download.docker.com/linux/fedora/docker-ce.repo",
    "rhel": "https://download.docker.com/linux/centos/docker-ce.repo",
    "suse": "https://download.docker.com/linux/sles/docker-ce.repo",
}

COMPOSE_RELEASE_URL = (
    "https://github.com/docker/compose/releases/latest/download/docker-compose-{system}-{machine}"
)

APT_KEYRING_DIR = "/etc/apt/keyrings"
APT_DOCKER_LIST = "/etc/apt/sources.list.d/docker.list"


# ── System update ───────────────────────────────────────────────


def update_system(runner: CommandRunner, distro: DistroProfile) -> None:
    logger.info("Updating system packages (%s)", distro.package_manager)
    if distro.family == "apt":
        runner.run(["apt-get", "update"], sudo=True, capture=False).check(
            "Failed to update system packages"
        )
        runner.run(["apt-get", "upgrade", "-y"], sudo=True, capture=False).check(
            "Failed to update system packages"
        )
        return
    runner.run(list(distro.update_command), sudo=True, capture=False).check(
        "Failed to update system packages"
    )


# ── Docker ──────────────────────────────────────────────────────


def _enable_now(runner: CommandRunner, unit: str) -> None:
    runner.run(["systemctl", "start", unit], sudo=True).check(f"Failed to start {unit}")
    runner.run(["systemctl", "enable", unit], sudo=True).check(f"Failed to enable {unit}")


def _install_docker_apt(runner: CommandRunner, distro: DistroProfile) -> None:
    runner.run(["apt-get", "remove", "-y", *_LEGACY_DOCKER_APT], sudo=True)

    runner.run(
        distro.install("ca-certificates", "curl", "gnupg", "lsb-release"),
        sudo=True, capture=False,
    ).check("Failed to install Docker dependencies")

    keyring = f"{APT_KEYRING_DIR}/docker.gpg"
    runner.run(["mkdir", "-p", APT_KEYRING_DIR], sudo=True).check(
        f"Failed to create {APT_KEYRING_DIR}"
    )
    key = runner.run(
        ["curl", "-fsSL", f"https://download.docker.com/linux/{distro.distro}/gpg"]
    ).check("Failed to download the Docker GPG key")
    runner.run(
        ["gpg", "--dearmor", "--yes", "-o", keyring], sudo=True, input=key.stdout + "\n",
    ).check("Failed to import the Docker GPG key")

    arch = runner.run(["dpkg", "--print-architecture"]).check(
        "Cannot determine package architecture"
    ).stdout
    codename = runner.run(["lsb_release", "-cs"]).check(
        "Cannot determine distribution codename"
    ).stdout
    source = (
        f"deb [arch={arch} signed-by={keyring}] "
        f"https://download.docker.com/linux/{distro.distro} {codename} stable\n"
    )
    runner.write_file(APT_DOCKER_LIST, source, sudo=True).check(
        "Failed to add the Docker apt repository"
    )

    runner.run(["apt-get", "update"], sudo=True, capture=False).check(
        "Failed to refresh package lists"
    )
    runner.run(distro.install(*DOCKER_PACKAGES), sudo=True, capture=False).check(
        "Failed to install Docker"
    )


def _install_docker_rhel(runner: CommandRunner, distro: DistroProfile) -> None:
    runner.run([distro.package_manager, "remove", "-y", *_LEGACY_DOCKER_RHEL], sudo=True)

    if not runner.run(distro.install("dnf-plugins-core"), sudo=True, capture=False).ok:
        runner.run(distro.install("yum-utils"), sudo=True, capture=False).check(
            "Failed to install repository tooling"
        )

    repo = _DOCKER_REPOS["fedora" if distro.distro == "fedora" else "rhel"]
    runner.run(
        [distro.package_manager, "config-manager", "--add-repo", repo], sudo=True,
    ).check("Failed to add the Docker repository")
    runner.run(distro.install(*DOCKER_PACKAGES), sudo=True, capture=False).check(
        "Failed to install Docker"
    )
    _enable_now(runner, "docker")


def _install_docker_amazon(runner: CommandRunner, distro: DistroProfile) -> None:
    runner.run([distro.package_manager, "remove", "-y", *_LEGACY_DOCKER_RHEL], sudo=True)
    runner.run(distro.install("docker"), sudo=True, capture=False).check(
        "Failed to install Docker"
    )
    _enable_now(runner, "docker")

    url = COMPOSE_RELEASE_URL.format(system=platform.system(), machine=platform.machine())
    runner.run(
        ["curl", "-L", url, "-o", "/usr/local/bin/docker-compose"], sudo=True, capture=False,
    ).check("Failed to download docker-compose")
    runner.run(["chmod", "+x", "/usr/local/bin/docker-compose"], sudo=True).check(
        "Failed to make docker-compose executable"
    )


def _install_docker_suse(runner: CommandRunner, distro: DistroProfile) -> None:
    runner.run(["zypper", "remove", "-y", *_LEGACY_DOCKER_APT], sudo=True)
    runner.run(["zypper", "addrepo", _DOCKER_REPOS["suse"]], sudo=True).check(
        "Failed to add the Docker repository"
    )
    runner.run(["zypper", "refresh"], sudo=True, capture=False).check(
        "Failed to refresh repositories"
    )
    runner.run(distro.install(*DOCKER_PACKAGES), sudo=True, capture=False).check(
        "Failed to install Docker"
    )
    _enable_now(runner, "docker")


_DOCKER_INSTALLERS = {
    "apt": _install_docker_apt,
    "rhel": _install_docker_rhel,
    "amazon": _install_docker_amazon,
    "suse": _install_docker_suse,
}


def install_docker(runner: CommandRunner, distro: DistroProfile, user: str) -> None:
    """Install Docker Engine + Compose and add ``user`` to the docker group."""
    logger.info("Installing Docker for %s", distro.distro)
    _DOCKER_INSTALLERS[distro.family](runner, distro)
    runner.run(["usermod", "-aG", "docker", user], sudo=True).check(
        f"Failed to add {user} to the docker group"
    )


# ── nginx ───────────────────────────────────────────────────────


def ensure_sites_include(runner: CommandRunner, settings: InstallerSettings) -> bool:
    """Add ``include <sites-enabled>/*;`` to nginx.conf if missing.

    Returns:
        True if nginx.conf was modified.
    """
    conf = Path(settings.nginx_conf)
    try:
        content = conf.read_text(encoding="utf-8")
    except OSError:
        content = runner.run(["cat", str(conf)], sudo=True).check(
            f"Cannot read {conf}"
        ).stdout
    if "sites-enabled" in content:
        return False
    include = f"    include {settings.nginx_sites_enabled}/*;"
    runner.run(["sed", "-i", f"/http {{/a\\{include}", str(conf)], sudo=True).check(
        f"Failed to add sites-enabled include to {conf}"
    )
    return True


def install_nginx(
    runner: CommandRunner,
    distro: DistroProfile,
    settings: InstallerSettings,
) -> None:
    logger.info("Installing Nginx for %s", distro.distro)
    if distro.family == "amazon":
        extras = runner.run(
            ["amazon-linux-extras", "install", "nginx1", "-y"], sudo=True, capture=False,
        )
        if not extras.ok:
            runner.run(distro.install("nginx"), sudo=True, capture=False).check(
                "Failed to install Nginx"
            )
    else:
        runner.run(distro.install("nginx"), sudo=True, capture=False).check(
            "Failed to install Nginx"
        )

    runner.run(
        ["mkdir", "-p", settings.nginx_sites_available, settings.nginx_sites_enabled],
        sudo=True,
    ).check("Failed to create nginx site directories")
    ensure_sites_include(runner, settings)
    _enable_now(runner, "nginx")


# ── certbot ─────────────────────────────────────────────────────


def install_certbot(runner: CommandRunner, distro: DistroProfile) -> None:
    logger.info("Installing Certbot for %s", distro.distro)
    if distro.distro == "rhel":
        runner.run(distro.install("epel-release"), sudo=True, capture=False).check(
            "Failed to enable EPEL"
        )
    elif distro.family == "amazon":
        runner.run(
            ["amazon-linux-extras", "install", "epel", "-y"], sudo=True, capture=False,
        ).check("Failed to enable EPEL")
    runner.run(
        distro.install("certbot", "python3-certbot-nginx"), sudo=True, capture=False,
    ).check("Failed to install Certbot")
