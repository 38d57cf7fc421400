"""
Firewall — allow SSH plus HTTP/HTTPS through ufw or firewalld.

The backend comes from the distro profile. HTTP/HTTPS are only opened
when nginx is present; without it the operator's own reverse proxy
needs its ports opened by hand.
"""

from __future__ import annotations

import logging

from stackdeploy.adapters.shell.command import CommandRunner
from stackdeploy.core.models.deployment import DistroProfile

logger = logging.getLogger(__name__)

MANUAL_HINTS = {
    "ufw": "sudo ufw allow 80 && sudo ufw allow 443",
    "firewalld": "sudo firewall-cmd --permanent --add-port=80/tcp --add-port=443/tcp",
}

STATUS_COMMANDS = {
    "ufw": "sudo ufw status",
    "firewalld": "sudo firewall-cmd --list-all",
}


def _configure_ufw(runner: CommandRunner, distro: DistroProfile, web: bool) -> None:
    runner.run(distro.install("ufw"), sudo=True, capture=False).check("Failed to install ufw")
    for rule in (
        ["--force", "reset"],
        ["default", "deny", "incoming"],
        ["default", "allow", "outgoing"],
        ["allow", "ssh"],
    ):
        runner.run(["ufw", *rule], sudo=True).check(f"ufw {' '.join(rule)} failed")
    if web:
        runner.run(["ufw", "allow", "Nginx Full"], sudo=True).check(
            "Failed to allow Nginx Full"
        )
    runner.run(["ufw", "--force", "enable"], sudo=True).check("Failed to enable ufw")


def _configure_firewalld(runner: CommandRunner, distro: DistroProfile, web: bool) -> None:
    runner.run(distro.install("firewalld"), sudo=True, capture=False).check(
        "Failed to install firewalld"
    )
    runner.run(["systemctl", "start", "firewalld"], sudo=True).check("Failed to start firewalld")
    runner.run(["systemctl", "enable", "firewalld"], sudo=True).check(
        "Failed to enable firewalld"
    )
    services = ["ssh", "http", "https"] if web else ["ssh"]
    for service in services:
        runner.run(
            ["firewall-cmd", "--permanent", f"--add-service={service}"], sudo=True,
        ).check(f"Failed to allow {service}")
    runner.run(["firewall-cmd", "--reload"], sudo=True).check("Failed to reload firewalld")


def configure_firewall(runner: CommandRunner, distro: DistroProfile) -> bool:
    """Apply the firewall rules for this host.

    Returns:
        True if web ports were opened (nginx present).
    """
    web = runner.which("nginx")
    logger.info("Configuring %s (web ports: %s)", distro.firewall_backend, web)
    if distro.firewall_backend == "ufw":
        _configure_ufw(runner, distro, web)
    else:
        _configure_firewalld(runner, distro, web)
    return web


def firewall_active(runner: CommandRunner, backend: str) -> bool:
    if backend == "ufw":
        result = runner.run(["ufw", "status"], sudo=True)
        return result.ok and "Status: active" in result.stdout
    return runner.run(["systemctl", "is-active", "--quiet", "firewalld"], sudo=True).ok
