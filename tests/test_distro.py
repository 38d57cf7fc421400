"""
Tests for distribution detection — release files and the lookup table.
"""

from pathlib import Path

import pytest

from stackdeploy.core.errors import UnsupportedDistroError
from stackdeploy.core.services.distro import (
    detect_distro,
    parse_os_release,
    read_release_info,
    resolve_profile,
)


def _root(tmp_path: Path, files: dict[str, str]) -> Path:
    (tmp_path / "etc").mkdir()
    for name, content in files.items():
        (tmp_path / "etc" / name).write_text(content)
    return tmp_path


def _no_dnf(name):
    return None


def _has_dnf(name):
    return "/usr/bin/dnf" if name == "dnf" else None


class TestParseOsRelease:
    def test_quoted_and_unquoted(self):
        info = parse_os_release('NAME="Ubuntu"\nID=ubuntu\nVERSION_ID="22.04"\n# comment\n\n')
        assert info == {"NAME": "Ubuntu", "ID": "ubuntu", "VERSION_ID": "22.04"}


class TestReadReleaseInfo:
    def test_os_release(self, tmp_path):
        root = _root(tmp_path, {"os-release": 'ID="Rocky"\nVERSION_ID="9.3"\n'})
        assert read_release_info(root) == ("rocky", "9.3")

    def test_os_release_wins_over_markers(self, tmp_path):
        root = _root(tmp_path, {
            "os-release": "ID=ubuntu\nVERSION_ID=24.04\n",
            "debian_version": "bookworm/sid\n",
        })
        assert read_release_info(root) == ("ubuntu", "24.04")

    def test_redhat_release(self, tmp_path):
        root = _root(tmp_path, {"redhat-release": "CentOS Linux release 7.9.2009 (Core)\n"})
        assert read_release_info(root) == ("rhel", "7.9")

    def test_debian_version(self, tmp_path):
        root = _root(tmp_path, {"debian_version": "12.5\n"})
        assert read_release_info(root) == ("debian", "12.5")

    def test_no_descriptor(self, tmp_path):
        root = _root(tmp_path, {})
        with pytest.raises(UnsupportedDistroError, match="Cannot detect"):
            read_release_info(root)


class TestResolveProfile:
    @pytest.mark.parametrize("os_id", ["ubuntu", "debian"])
    def test_apt(self, os_id):
        p = resolve_profile(os_id, which=_no_dnf)
        assert p.package_manager == "apt"
        assert p.install_command == ("apt-get", "install", "-y")
        assert p.update_command == ("apt-get", "update")
        assert p.firewall_backend == "ufw"

    @pytest.mark.parametrize("os_id", ["centos", "rhel", "rocky", "almalinux"])
    def test_rhel_prefers_dnf(self, os_id):
        p = resolve_profile(os_id, which=_has_dnf)
        assert p.distro == "rhel"
        assert p.package_manager == "dnf"
        assert p.install_command == ("dnf", "install", "-y")
        assert p.firewall_backend == "firewalld"

    def test_rhel_falls_back_to_yum(self):
        p = resolve_profile("centos", "7", which=_no_dnf)
        assert p.package_manager == "yum"
        assert p.update_command == ("yum", "update", "-y")

    def test_fedora(self):
        p = resolve_profile("fedora", which=_no_dnf)
        assert p.package_manager == "dnf"

    def test_amazon_stays_on_yum(self):
        p = resolve_profile("amzn", "2", which=_has_dnf)
        assert p.distro == "amazon"
        assert p.package_manager == "yum"

    @pytest.mark.parametrize("os_id", ["sles", "opensuse", "opensuse-leap", "opensuse-tumbleweed"])
    def test_suse(self, os_id):
        p = resolve_profile(os_id)
        assert p.distro == "suse"
        assert p.install_command == ("zypper", "install", "-y")

    def test_case_insensitive(self):
        assert resolve_profile("Ubuntu").distro == "ubuntu"

    def test_unknown(self):
        with pytest.raises(UnsupportedDistroError, match="Unsupported distribution: arch"):
            resolve_profile("arch")

    def test_version_carried(self):
        assert resolve_profile("debian", "12").describe() == "debian 12"


class TestDetectDistro:
    def test_detects_from_root(self, tmp_path):
        root = _root(tmp_path, {"os-release": "ID=almalinux\nVERSION_ID=9.4\n"})
        p = detect_distro(root, which=_has_dnf)
        assert p.distro == "rhel"
        assert p.os_id == "almalinux"
        assert p.version == "9.4"
        assert p.package_manager == "dnf"

    def test_unsupported_is_fatal(self, tmp_path):
        root = _root(tmp_path, {"os-release": "ID=gentoo\n"})
        with pytest.raises(UnsupportedDistroError):
            detect_distro(root, which=_no_dnf)
