"""
TLS certificates — Let's Encrypt issuance through certbot's nginx plugin.
"""

from __future__ import annotations

import logging
from pathlib import Path

from stackdeploy.adapters.shell.command import CommandResult, CommandRunner
from stackdeploy.core.models.deployment import InstallConfig
from stackdeploy.core.models.settings import InstallerSettings

logger = logging.getLogger(__name__)

TROUBLESHOOTING = (
    "Domain DNS not pointing to this server's IP",
    "Domain not yet propagated (wait 24-48 hours)",
    "Let's Encrypt rate limits (try again later)",
    "Firewall blocking port 80/443",
    "Another service using port 80",
)

LOG_FILES = (
    "Certbot logs: /var/log/letsencrypt/letsencrypt.log",
    "Nginx error logs: /var/log/nginx/error.log",
)


def manual_command(config: InstallConfig) -> str:
    """The certbot invocation an operator can run by hand later."""
    return f"sudo certbot --nginx -d {config.domain} --email {config.email}"


def issue_certificate(runner: CommandRunner, config: InstallConfig) -> CommandResult:
    """Request a certificate for ``config.domain``; certbot edits the nginx site."""
    logger.info("Requesting certificate for %s", config.domain)
    return runner.run(
        [
            "certbot", "--nginx",
            "-d", config.domain,
            "--email", config.email,
            "--agree-tos", "--non-interactive",
        ],
        sudo=True,
        capture=False,
    )


def dry_run_renewal(runner: CommandRunner) -> bool:
    """``certbot renew --dry-run``; informational only."""
    return runner.run(["certbot", "renew", "--dry-run"], sudo=True, capture=False).ok


def certificate_path(domain: str, settings: InstallerSettings) -> Path:
    return Path(settings.letsencrypt_live_dir) / domain / "fullchain.pem"


def certificate_expiry(runner: CommandRunner, cert: Path) -> str | None:
    """``notAfter`` date of ``cert`` as printed by openssl, or None."""
    result = runner.run(
        ["openssl", "x509", "-in", str(cert), "-noout", "-enddate"], sudo=True,
    )
    if not result.ok or "=" not in result.stdout:
        return None
    return result.stdout.split("=", 1)[1].strip()


def certificate_exists(runner: CommandRunner, cert: Path) -> bool:
    # The live directory is root-only, so test through sudo.
    return runner.run(["test", "-f", str(cert)], sudo=True).ok
