"""
L0 Data — supported distributions and their package-manager commands.

Pure data. No logic. Keyed by the lowercase ``ID`` from os-release.
The rhel family entries use dnf when it exists and yum otherwise;
``stackdeploy.core.services.distro`` makes that choice.
"""

from __future__ import annotations

# os-release ID → normalized distro family
DISTRO_ALIASES: dict[str, str] = {
    "ubuntu": "ubuntu",
    "debian": "debian",
    "centos": "rhel",
    "rhel": "rhel",
    "rocky": "rhel",
    "almalinux": "rhel",
    "fedora": "fedora",
    "amzn": "amazon",
    "sles": "suse",
    "opensuse": "suse",
    "opensuse-leap": "suse",
    "opensuse-tumbleweed": "suse",
}

# Normalized family → command set
DISTRO_COMMANDS: dict[str, dict] = {
    "ubuntu": {
        "package_manager": "apt",
        "install_command": ("apt-get", "install", "-y"),
        "update_command": ("apt-get", "update"),
        "firewall_backend": "ufw",
    },
    "debian": {
        "package_manager": "apt",
        "install_command": ("apt-get", "install", "-y"),
        "update_command": ("apt-get", "update"),
        "firewall_backend": "ufw",
    },
    "rhel": {
        "package_manager": "yum",
        "install_command": ("yum", "install", "-y"),
        "update_command": ("yum", "update", "-y"),
        "firewall_backend": "firewalld",
    },
    "fedora": {
        "package_manager": "dnf",
        "install_command": ("dnf", "install", "-y"),
        "update_command": ("dnf", "update", "-y"),
        "firewall_backend": "firewalld",
    },
    "amazon": {
        "package_manager": "yum",
        "install_command": ("yum", "install", "-y"),
        "update_command": ("yum", "update", "-y"),
        "firewall_backend": "firewalld",
    },
    "suse": {
        "package_manager": "zypper",
        "install_command": ("zypper", "install", "-y"),
        "update_command": ("zypper", "update", "-y"),
        "firewall_backend": "firewalld",
    },
}

# Families that switch to dnf when the binary is present
DNF_PREFERRED: frozenset[str] = frozenset({"rhel"})

SUPPORTED_NAMES = "Ubuntu, Debian, CentOS, RHEL, Rocky, AlmaLinux, Fedora, Amazon Linux 2, SUSE/openSUSE"
