"""
Deployment models — what gets installed, where, and on which OS.

``InstallConfig`` is the single run configuration threaded through
every pipeline step. It is frozen: a step that learns something new
returns ``config.evolve(...)`` instead of mutating shared state.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class HardwareProfile(str, Enum):
    """Accelerator variant; the value doubles as the compose profile name."""

    CPU = "cpu"
    GPU_NVIDIA = "gpu-nvidia"
    GPU_AMD = "gpu-amd"

    @property
    def label(self) -> str:
        return _HARDWARE_LABELS[self]

    @property
    def is_gpu(self) -> bool:
        return self is not HardwareProfile.CPU


_HARDWARE_LABELS = {
    HardwareProfile.CPU: "CPU Only",
    HardwareProfile.GPU_NVIDIA: "NVIDIA GPU",
    HardwareProfile.GPU_AMD: "AMD GPU",
}


class DeploymentTarget(BaseModel):
    """Where a repository is deployed and what its systemd unit is called.

    Both paths are pure functions of the repository URL, see
    ``stackdeploy.core.services.paths.derive_target``. Two repositories
    with the same final path segment map to the same target.
    """

    model_config = ConfigDict(frozen=True)

    repository_url: str
    directory_path: str
    service_identifier: str

    @property
    def name(self) -> str:
        """Repository name (the service identifier without its suffix)."""
        return self.directory_path.rstrip("/").rsplit("/", 1)[-1]

    @property
    def env_path(self) -> str:
        return f"{self.directory_path}/.env"

    @property
    def unit_name(self) -> str:
        return f"{self.service_identifier}.service"


class DistroProfile(BaseModel):
    """Resolved package-manager command set for the detected OS family."""

    model_config = ConfigDict(frozen=True)

    distro: str                      # normalized family: debian, rhel, fedora, amazon, suse
    os_id: str                       # raw lowercase ID from the release file
    version: str = ""
    package_manager: str
    install_command: tuple[str, ...]
    update_command: tuple[str, ...]
    firewall_backend: str            # ufw | firewalld

    @property
    def family(self) -> str:
        """Coarse family used by provisioners: apt, rhel, amazon or suse."""
        if self.distro in ("debian", "ubuntu"):
            return "apt"
        if self.distro in ("rhel", "fedora"):
            return "rhel"
        return self.distro

    def install(self, *packages: str) -> list[str]:
        """Full install command line for the given packages."""
        return [*self.install_command, *packages]

    def describe(self) -> str:
        return f"{self.os_id} {self.version}".strip()


class InstallConfig(BaseModel):
    """Everything the pipeline has resolved so far.

    Fields start empty and are filled in by the collection steps.
    Provisioning steps read from it and never change it.
    """

    model_config = ConfigDict(frozen=True)

    user: str = ""
    distro: DistroProfile | None = None
    domain: str = ""
    email: str = ""
    target: DeploymentTarget | None = None
    hardware: HardwareProfile = HardwareProfile.CPU

    @property
    def site_name(self) -> str:
        """nginx site file name: the first label of the domain."""
        return self.domain.split(".", 1)[0] if self.domain else ""

    def evolve(self, **changes: Any) -> InstallConfig:
        """Return a copy with the given fields replaced."""
        return self.model_copy(update=changes)

    def require_target(self) -> DeploymentTarget:
        if self.target is None:
            raise ValueError("Deployment target has not been resolved yet")
        return self.target

    def require_distro(self) -> DistroProfile:
        if self.distro is None:
            raise ValueError("Distribution has not been detected yet")
        return self.distro
