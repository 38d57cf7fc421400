"""
Verifier — post-install health probe.

Every check becomes a ``ComponentHealth``. Failures are unhealthy;
missing optional pieces (nginx, TLS, firewall) are degraded. Nothing
here raises for a failed probe: verification reports, it never aborts.
"""

from __future__ import annotations

import logging
import socket
import urllib.error
import urllib.request
from collections.abc import Callable

from stackdeploy.adapters.shell.command import CommandRunner
from stackdeploy.core.models.deployment import InstallConfig
from stackdeploy.core.models.settings import InstallerSettings
from stackdeploy.core.observability.health import ComponentHealth, SystemHealth
from stackdeploy.core.services.certs import (
    certificate_exists,
    certificate_expiry,
    certificate_path,
)
from stackdeploy.core.services.firewall import firewall_active

logger = logging.getLogger(__name__)

HTTP_OK = (200, 302)
PROBE_TIMEOUT = 10


# ── Network probes ──────────────────────────────────────────────


class _NoRedirect(urllib.request.HTTPRedirectHandler):
    def redirect_request(self, req, fp, code, msg, headers, newurl):
        return None


def http_status(url: str, timeout: float = PROBE_TIMEOUT) -> int | None:
    """Status code for GET ``url`` without following redirects; None if unreachable."""
    opener = urllib.request.build_opener(_NoRedirect)
    req = urllib.request.Request(url, headers={"User-Agent": "stackdeploy/verify"})
    try:
        with opener.open(req, timeout=timeout) as resp:
            return resp.status
    except urllib.error.HTTPError as e:
        return e.code
    except (urllib.error.URLError, OSError) as e:
        logger.debug("HTTP probe %s failed: %s", url, e)
        return None


def port_open(host: str, port: int, timeout: float = 3) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


# ── Checks ──────────────────────────────────────────────────────


def _systemd_active(runner: CommandRunner, unit: str) -> bool:
    return runner.run(["systemctl", "is-active", "--quiet", unit], sudo=True).ok


def check_nginx(runner: CommandRunner) -> ComponentHealth:
    if not runner.which("nginx"):
        return ComponentHealth(
            name="nginx", status="degraded",
            message="Nginx not installed - using external reverse proxy",
        )
    if _systemd_active(runner, "nginx"):
        return ComponentHealth(name="nginx", status="healthy", message="Nginx is running")
    return ComponentHealth(name="nginx", status="unhealthy", message="Nginx is not running")


def check_service(runner: CommandRunner, config: InstallConfig) -> ComponentHealth:
    unit = config.require_target().service_identifier
    if _systemd_active(runner, unit):
        return ComponentHealth(name="service", status="healthy", message="N8N service is running")
    return ComponentHealth(name="service", status="unhealthy", message="N8N service is not running")


def check_port(port: int, probe: Callable[[str, int], bool]) -> ComponentHealth:
    if probe("127.0.0.1", port):
        return ComponentHealth(
            name="port", status="healthy", message=f"N8N is listening on port {port}",
        )
    return ComponentHealth(
        name="port", status="unhealthy", message=f"N8N is not listening on port {port}",
    )


def _http_component(
    name: str,
    url: str,
    ok_message: str,
    fail_message: str,
    probe: Callable[[str], int | None],
) -> ComponentHealth:
    code = probe(url)
    details = {"url": url, "status_code": code}
    if code in HTTP_OK:
        return ComponentHealth(name=name, status="healthy", message=ok_message, details=details)
    return ComponentHealth(name=name, status="unhealthy", message=fail_message, details=details)


def check_tls(
    runner: CommandRunner,
    config: InstallConfig,
    settings: InstallerSettings,
    probe: Callable[[str], int | None],
) -> list[ComponentHealth]:
    """HTTPS on the domain when a certificate exists, else plain HTTP."""
    domain = config.domain
    cert = certificate_path(domain, settings)
    if not certificate_exists(runner, cert):
        return [
            ComponentHealth(
                name="certificate", status="degraded",
                message="SSL certificate not found - site running on HTTP only",
                details={"hint": f"sudo certbot --nginx -d {domain}"},
            ),
            _http_component(
                "domain", f"http://{domain}",
                f"HTTP is working for {domain}", f"HTTP is not working for {domain}", probe,
            ),
        ]

    expiry = certificate_expiry(runner, cert)
    return [
        ComponentHealth(
            name="certificate", status="healthy",
            message="SSL certificate exists"
            + (f" (expires {expiry})" if expiry else ""),
            details={"path": str(cert), "expires": expiry},
        ),
        _http_component(
            "domain", f"https://{domain}",
            f"HTTPS is working for {domain}", f"HTTPS is not working for {domain}", probe,
        ),
    ]


def check_docker(runner: CommandRunner) -> list[ComponentHealth]:
    version = runner.run(["docker", "--version"])
    if not version.ok:
        return [ComponentHealth(name="docker", status="unhealthy", message="Docker is not installed")]

    # "Docker version 27.1.1, build 6312585"
    words = version.stdout.split()
    number = words[2].rstrip(",") if len(words) >= 3 else version.stdout
    installed = ComponentHealth(
        name="docker", status="healthy",
        message=f"Docker is installed ({number})", details={"version": number},
    )
    if runner.run(["docker", "ps"]).ok:
        access = ComponentHealth(name="docker_access", status="healthy", message="Docker is accessible")
    else:
        access = ComponentHealth(
            name="docker_access", status="unhealthy",
            message="Docker is not accessible (may need to re-login)",
        )
    return [installed, access]


def check_firewall(runner: CommandRunner, backend: str) -> ComponentHealth:
    label = "UFW firewall" if backend == "ufw" else "Firewalld"
    if firewall_active(runner, backend):
        return ComponentHealth(name="firewall", status="healthy", message=f"{label} is active")
    return ComponentHealth(name="firewall", status="degraded", message=f"{label} is not active")


def verify_installation(
    runner: CommandRunner,
    config: InstallConfig,
    settings: InstallerSettings,
    *,
    http_probe: Callable[[str], int | None] = http_status,
    port_probe: Callable[[str, int], bool] = port_open,
) -> SystemHealth:
    """Probe every component of a finished installation."""
    logger.info("Running verification checks for %s", config.domain)
    health = SystemHealth()

    distro = config.distro
    if distro is not None:
        health.add(ComponentHealth(
            name="os", status="healthy",
            message=f"Operating System: {distro.distro} {distro.version}".rstrip(),
            details={"package_manager": distro.package_manager},
        ))

    health.add(check_nginx(runner))
    health.add(check_service(runner, config))
    health.add(check_port(settings.app_port, port_probe))
    health.add(_http_component(
        "localhost", f"http://localhost:{settings.app_port}",
        "N8N is responding on localhost", "N8N is not responding on localhost", http_probe,
    ))
    for component in check_tls(runner, config, settings, http_probe):
        health.add(component)
    for component in check_docker(runner):
        health.add(component)
    if distro is not None:
        health.add(check_firewall(runner, distro.firewall_backend))

    logger.info("Verification finished: %s", health.status)
    return health
