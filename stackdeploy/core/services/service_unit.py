"""
Service registrar — systemd unit that keeps the compose stack running.

The unit shells out to ``docker compose`` (or the legacy
``docker-compose`` binary) with the selected hardware profile.
"""

from __future__ import annotations

import logging

from stackdeploy.adapters.shell.command import CommandRunner
from stackdeploy.core.models.deployment import HardwareProfile, InstallConfig
from stackdeploy.core.models.generated import GeneratedFile
from stackdeploy.core.models.settings import InstallerSettings

logger = logging.getLogger(__name__)

PROFILE_NOTES = {
    HardwareProfile.CPU: "CPU profile will be used - works on all systems",
    HardwareProfile.GPU_NVIDIA: (
        "NVIDIA GPU profile will be used - ensure GPU drivers and container toolkit are installed"
    ),
    HardwareProfile.GPU_AMD: "AMD GPU profile will be used - ensure ROCm drivers are installed",
}

GPU_CHECKS = {
    HardwareProfile.GPU_NVIDIA: [
        "Verify NVIDIA drivers: nvidia-smi",
        "Verify container toolkit: docker run --rm --gpus all nvidia/cuda:11.0-base nvidia-smi",
        "Documentation: https://docs.nvidia.com/datacenter/cloud-native/container-toolkit/",
    ],
    HardwareProfile.GPU_AMD: [
        "Verify ROCm: rocm-smi",
        "Verify Docker ROCm: docker run --rm --device=/dev/kfd --device=/dev/dri "
        "rocm/tensorflow:latest rocm-smi",
        "Documentation: https://rocmdocs.amd.com/en/latest/",
    ],
}

_UNIT = """\
[Unit]
Description=N8N AI Workflow Automation ({profile})
Documentation=https://docs.n8n.io
After=network.target docker.service
Requires=docker.service

[Service]
Type=forking
User={user}
Group=docker
WorkingDirectory={directory}
Environment=NODE_ENV=production
Environment=N8N_HOST={domain}
Environment=N8N_PORT={port}
Environment=N8N_PROTOCOL=https
Environment=WEBHOOK_URL=https://{domain}/
Environment=GENERIC_TIMEZONE=UTC
ExecStartPre=/bin/bash -c 'cd {directory} && {compose} pull'
ExecStart=/bin/bash -c 'cd {directory} && {compose} --profile {profile} up -d'
ExecStop=/bin/bash -c 'cd {directory} && {compose} --profile {profile} down'
ExecReload=/bin/bash -c 'cd {directory} && {compose} --profile {profile} restart'
Restart=always
RestartSec=10
StandardOutput=journal
StandardError=journal
SyslogIdentifier=n8n-ai

[Install]
WantedBy=multi-user.target
"""


def compose_command(runner: CommandRunner) -> str:
    """``docker compose`` when the plugin answers, else ``docker-compose``."""
    if runner.which("docker") and runner.run(["docker", "compose", "version"]).ok:
        return "docker compose"
    return "docker-compose"


def render_unit(
    config: InstallConfig,
    settings: InstallerSettings,
    compose: str,
) -> GeneratedFile:
    target = config.require_target()
    return GeneratedFile(
        path=f"{settings.systemd_dir}/{target.unit_name}",
        content=_UNIT.format(
            profile=config.hardware.value,
            user=config.user,
            directory=target.directory_path,
            domain=config.domain,
            port=settings.app_port,
            compose=compose,
        ),
        overwrite=True,
        reason=f"systemd unit for {target.service_identifier}",
    )


def register_service(
    runner: CommandRunner,
    config: InstallConfig,
    settings: InstallerSettings,
) -> GeneratedFile:
    """Write the unit, reload systemd and enable it (not started here)."""
    unit = render_unit(config, settings, compose_command(runner))
    target = config.require_target()

    logger.info("Writing systemd unit %s (%s profile)", unit.path, config.hardware.value)
    runner.write_file(unit.path, unit.content, sudo=True).check(f"Failed to write {unit.path}")
    runner.run(["systemctl", "daemon-reload"], sudo=True).check("Failed to reload systemd")
    runner.run(["systemctl", "enable", target.service_identifier], sudo=True).check(
        "Failed to enable N8N service"
    )
    return unit


# ── Start ───────────────────────────────────────────────────────


def in_docker_group(runner: CommandRunner, user: str) -> bool:
    result = runner.run(["id", "-nG", user])
    return result.ok and "docker" in result.stdout.split()


def add_to_docker_group(runner: CommandRunner, user: str) -> None:
    runner.run(["usermod", "-aG", "docker", user], sudo=True).check(
        f"Failed to add {user} to the docker group"
    )


def start_service(
    runner: CommandRunner,
    config: InstallConfig,
    settings: InstallerSettings,
) -> None:
    """Start the unit, then block for the warm-up delay."""
    target = config.require_target()
    logger.info("Starting %s", target.unit_name)
    runner.run(["systemctl", "start", target.service_identifier], sudo=True).check(
        "Failed to start N8N service"
    )
    runner.sleep(settings.warmup_seconds)
