"""
Input collector — interactive prompts with validation loops.

The validators are pure functions. The ``ask_*`` helpers loop on the
console until a value passes: invalid input never ends the program,
it only blocks progress. Soft warnings (a bare root domain, a
non-email admin username) can be overridden by the operator.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from stackdeploy.core.errors import InstallAborted
from stackdeploy.core.models.deployment import HardwareProfile, InstallConfig
from stackdeploy.core.models.environment import EnvValues
from stackdeploy.core.models.settings import InstallerSettings
from stackdeploy.core.services.keys import (
    encryption_key_error,
    generate_encryption_key,
    generate_jwt_secret,
    jwt_secret_error,
)
from stackdeploy.core.services.paths import derive_target

if TYPE_CHECKING:
    from stackdeploy.ui.cli.console import Console

logger = logging.getLogger(__name__)

_LABEL = r"[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?"
DOMAIN_RE = re.compile(rf"^{_LABEL}(\.{_LABEL})+$")
EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
REPOSITORY_RE = re.compile(r"^https?://")

MIN_PASSWORD_LENGTH = 8

_HARDWARE_CHOICES: dict[str, HardwareProfile] = {
    "1": HardwareProfile.CPU,
    "cpu": HardwareProfile.CPU,
    "2": HardwareProfile.GPU_NVIDIA,
    "nvidia": HardwareProfile.GPU_NVIDIA,
    "3": HardwareProfile.GPU_AMD,
    "amd": HardwareProfile.GPU_AMD,
}

_GPU_REQUIREMENTS: dict[HardwareProfile, tuple[list[str], str, str]] = {
    HardwareProfile.GPU_NVIDIA: (
        [
            "NVIDIA GPU installed",
            "NVIDIA drivers installed",
            "NVIDIA Container Toolkit installed",
            "Docker configured for GPU access",
        ],
        "Do you have NVIDIA GPU properly configured with Docker?",
        "https://docs.nvidia.com/datacenter/cloud-native/container-toolkit/install-guide.html",
    ),
    HardwareProfile.GPU_AMD: (
        [
            "AMD GPU installed",
            "ROCm drivers installed",
            "Docker configured for ROCm access",
        ],
        "Do you have AMD GPU properly configured with ROCm and Docker?",
        "https://rocmdocs.amd.com/en/latest/deploy/docker.html",
    ),
}


# ═══════════════════════════════════════════════════════════════════
#  Validators
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DomainCheck:
    """Verdict on a domain: invalid, valid, or valid with a soft warning."""

    valid: bool
    warning: bool = False
    message: str = ""


def check_domain(domain: str) -> DomainCheck:
    """Validate a hostname meant to be the n8n subdomain."""
    if ".." in domain or domain.startswith((".", "-")) or domain.endswith((".", "-")):
        return DomainCheck(
            valid=False,
            message="Cannot have consecutive dots or start/end with dots/hyphens.",
        )
    if not DOMAIN_RE.match(domain):
        return DomainCheck(
            valid=False,
            message="Domain should contain only letters, numbers, dots, and hyphens",
        )
    if len(domain.split(".")) < 3:
        return DomainCheck(
            valid=True,
            warning=True,
            message="This appears to be a root domain (domain.tld). N8N should typically use a subdomain.",
        )
    return DomainCheck(valid=True)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def is_valid_repository_url(url: str) -> bool:
    return bool(REPOSITORY_RE.match(url))


def parse_hardware_choice(answer: str) -> HardwareProfile | None:
    """Map a menu answer (``1``/``cpu``, ``2``/``nvidia``, ``3``/``amd``) to a profile."""
    return _HARDWARE_CHOICES.get(answer.strip().lower() or "1")


# ═══════════════════════════════════════════════════════════════════
#  Deployment prompts
# ═══════════════════════════════════════════════════════════════════


def ask_domain(console: Console) -> str:
    while True:
        domain = console.prompt("Enter your SUBDOMAIN for N8N (e.g., ai.yourcompany.com)")
        verdict = check_domain(domain)
        if not verdict.valid:
            console.error(f"Invalid domain format. {verdict.message}")
            continue
        if verdict.warning:
            console.warn(f"You entered: {domain}")
            console.warn(verdict.message)
            console.warn("Examples: ai.yourcompany.com, n8n.demo.ai, automation.company.io")
            if console.ask_yes_no(f"Continue with '{domain}' anyway?"):
                return domain
            continue
        console.log(f"Subdomain '{domain}' looks good!")
        return domain


def ask_email(console: Console) -> str:
    while True:
        email = console.prompt("Enter your email for SSL certificate")
        if is_valid_email(email):
            return email
        console.error("Invalid email format. Please try again.")


def ask_repository(console: Console, default_repository: str) -> str:
    console.blank()
    console.info("Repository Configuration:")
    console.info(f"Default: {default_repository} (official n8n AI starter kit)")
    if console.ask_yes_no("Use the default n8n AI starter kit repository?", default=True):
        console.log("Using official n8n AI starter kit repository")
        return default_repository
    while True:
        url = console.prompt("Enter your custom repository URL")
        if is_valid_repository_url(url):
            return url
        console.error("Invalid repository URL. Please include http:// or https://")


def ask_hardware_profile(console: Console) -> HardwareProfile:
    console.blank()
    console.info("GPU/Hardware Configuration:")
    console.info("  1. CPU Only (default) - Works on all systems, slower AI processing")
    console.info("  2. NVIDIA GPU - Best performance for AI workloads, requires NVIDIA GPU + drivers")
    console.info("  3. AMD GPU (Linux) - Good performance for AI workloads, requires AMD GPU + ROCm")
    while True:
        answer = console.prompt("Select hardware profile [1-CPU/2-NVIDIA/3-AMD]", default="1")
        profile = parse_hardware_choice(answer)
        if profile is None:
            console.error("Invalid selection. Please choose 1, 2, or 3.")
            continue
        if not profile.is_gpu:
            console.log("Selected: CPU Only profile")
            return profile

        requirements, question, docs = _GPU_REQUIREMENTS[profile]
        console.warn(f"{profile.label} profile selected")
        console.info("Requirements:")
        for item in requirements:
            console.info(f"  - {item}")
        if console.ask_yes_no(question):
            console.log(f"Selected: {profile.label} profile")
            return profile
        console.warn(f"Please configure the {profile.label} first, or choose CPU profile")
        console.info(f"See: {docs}")


def collect_user_input(
    console: Console,
    config: InstallConfig,
    settings: InstallerSettings,
) -> InstallConfig:
    """Collect domain, email, repository and hardware profile.

    Returns the evolved config with the deployment target resolved.

    Raises:
        InstallAborted: If the operator rejects the final summary.
    """
    console.log("Collecting configuration details...")
    console.blank()
    console.info("N8N will be configured for a subdomain of your main domain.")
    console.info("Suggested: ai.yourcompany.com, n8n.yourcompany.com, automation.yourcompany.com")
    console.blank()

    domain = ask_domain(console)
    email = ask_email(console)
    repository = ask_repository(console, settings.default_repository)
    target = derive_target(
        repository,
        install_root=settings.install_root,
        service_suffix=settings.service_suffix,
    )
    console.log(f"Project directory set to: {target.directory_path}")
    console.log(f"Service name set to: {target.service_identifier}")

    hardware = ask_hardware_profile(console)
    updated = config.evolve(domain=domain, email=email, target=target, hardware=hardware)

    console.blank()
    console.log("Configuration collected:")
    console.info(f"N8N Subdomain: {domain}")
    console.info(f"SSL Email: {email}")
    console.info(f"Repository: {repository}")
    console.info(f"Hardware Profile: {hardware.value}")
    console.info(f"Nginx config: {settings.nginx_sites_available}/{updated.site_name}")
    console.blank()
    console.warn(f"IMPORTANT: Make sure your DNS A record for '{domain}' points to this server's IP address")
    console.warn("before proceeding with SSL setup, otherwise certificate generation will fail.")

    if not console.ask_yes_no("Continue with this configuration?", default=True):
        raise InstallAborted("Configuration cancelled by user")

    logger.info("Configuration accepted for %s (%s)", domain, target.directory_path)
    return updated


# ═══════════════════════════════════════════════════════════════════
#  Secret prompts
# ═══════════════════════════════════════════════════════════════════


def _ask_min_length(console: Console, text: str, label: str) -> str:
    while True:
        value = console.prompt_secret(f"{text} (min {MIN_PASSWORD_LENGTH} characters)")
        if len(value) >= MIN_PASSWORD_LENGTH:
            return value
        console.error(f"{label} must be at least {MIN_PASSWORD_LENGTH} characters long")


def ask_encryption_key(console: Console) -> str:
    """Generate (if accepted and possible) or prompt for a 32-character key."""
    console.info("N8N requires a 32-character encryption key for securing data.")
    if console.ask_yes_no("Generate encryption key automatically?", default=True):
        key = generate_encryption_key()
        if key is not None:
            console.log("Generated 32-character encryption key")
            return key
        console.warn("Secure random source not available. Please enter manually.")

    while True:
        key = console.prompt("Enter 32-character encryption key")
        problem = encryption_key_error(key)
        if problem is None:
            return key
        console.error(problem)
        console.info("Generate one with: openssl rand -hex 16")


def ask_jwt_secret(console: Console) -> str:
    """Generate (if accepted and possible) or prompt for a JWT secret."""
    console.info("JWT secret for user management tokens.")
    if console.ask_yes_no("Generate JWT secret automatically?", default=True):
        secret = generate_jwt_secret()
        if secret is not None:
            console.log("Generated JWT secret")
            return secret
        console.warn("Secure random source not available. Please enter manually.")

    while True:
        secret = console.prompt("Enter JWT secret (recommended 32+ characters)")
        problem = jwt_secret_error(secret)
        if problem is None:
            return secret
        console.error(problem)
        console.info("Generate one with: openssl rand -base64 32")


def collect_env_values(console: Console) -> EnvValues:
    """Collect n8n admin credentials, database settings and security keys."""
    console.log("Collecting N8N environment configuration...")
    console.blank()
    console.info("N8N Basic Authentication Setup:")

    while True:
        auth_user = console.prompt("Enter N8N admin username (email format recommended)")
        if not auth_user:
            continue
        if is_valid_email(auth_user):
            break
        console.warn("Email format recommended for username (e.g., admin@yourcompany.com)")
        if console.ask_yes_no(f"Continue with '{auth_user}' anyway?"):
            break

    auth_password = _ask_min_length(console, "Enter N8N admin password", "Password")

    console.blank()
    console.info("Database Configuration:")
    postgres_user = console.prompt("PostgreSQL username", default="root") or "root"
    postgres_password = _ask_min_length(console, "Enter PostgreSQL password", "Database password")
    postgres_db = console.prompt("PostgreSQL database name", default="n8n") or "n8n"

    console.blank()
    console.info("Security Keys Configuration:")
    encryption_key = ask_encryption_key(console)
    jwt_secret = ask_jwt_secret(console)

    console.log("Environment configuration collected successfully")
    return EnvValues(
        auth_user=auth_user,
        auth_password=auth_password,
        postgres_user=postgres_user,
        postgres_password=postgres_password,
        postgres_db=postgres_db,
        encryption_key=encryption_key,
        jwt_secret=jwt_secret,
    )
