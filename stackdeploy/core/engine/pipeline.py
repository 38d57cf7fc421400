"""
Install pipeline — the ordered step list wired to the console.

Order matters: distro detection precedes any package work, input
collection precedes provisioning, and the .env is reconciled inside
the clone step (secrets are only asked for when no existing file will
be used).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from stackdeploy.adapters.shell.command import CommandRunner
from stackdeploy.core.engine.executor import Step, StepSkipped
from stackdeploy.core.errors import InstallAborted
from stackdeploy.core.models.deployment import HardwareProfile, InstallConfig
from stackdeploy.core.models.environment import ReconciliationResult
from stackdeploy.core.models.settings import InstallerSettings
from stackdeploy.core.services import certs, firewall, packages, preflight, proxy, service_unit
from stackdeploy.core.services.distro import detect_distro
from stackdeploy.core.services.env_reconcile import (
    locate_environment_source,
    missing_keys,
    resolve_environment_file,
)
from stackdeploy.core.services.input_collector import collect_env_values, collect_user_input
from stackdeploy.core.services.repo import clone_repository

if TYPE_CHECKING:
    from stackdeploy.ui.cli.console import Console

logger = logging.getLogger(__name__)


class InstallPipeline:
    """Builds the install steps around one runner, console and settings.

    Args:
        runner: Command runner (``MockRunner`` in tests).
        console: Operator console.
        settings: Installer settings.
        cwd: Directory searched for an operator-supplied .env.
        os_root: Filesystem root holding ``etc/os-release``.
    """

    def __init__(
        self,
        runner: CommandRunner,
        console: Console,
        settings: InstallerSettings,
        *,
        cwd: Path | None = None,
        os_root: Path = Path("/"),
    ):
        self.runner = runner
        self.console = console
        self.settings = settings
        self.cwd = cwd
        self.os_root = os_root
        self.reconciliation: ReconciliationResult | None = None

    def steps(self) -> list[Step]:
        c = self.console
        return [
            Step("root-check", self.root_check),
            Step("detect", self.detect),
            Step("prerequisites", self.prerequisites),
            Step("configure", self.configure),
            Step(
                "system-update", self.system_update,
                confirm="Update system packages?",
                on_decline=lambda: c.info("Skipping system update"),
            ),
            Step(
                "docker", self.docker,
                confirm="Install Docker and Docker Compose?",
                on_decline=lambda: c.info("Skipping Docker installation"),
            ),
            Step(
                "nginx", self.nginx,
                confirm="Install and configure Nginx?",
                on_decline=self._nginx_declined,
            ),
            Step(
                "certbot", self.certbot,
                confirm="Install Certbot for SSL certificates?",
                on_decline=lambda: c.info("Skipping Certbot installation"),
            ),
            Step(
                "repository", self.repository,
                confirm="Clone the AI starter kit repository?",
                on_decline=lambda: c.info("Skipping repository clone"),
            ),
            Step("nginx-site", self.nginx_site),
            Step(
                "service", self.service,
                confirm="Create systemd service for N8N?",
                on_decline=lambda: c.info("Skipping N8N service creation"),
            ),
            Step("tls", self.tls),
            Step(
                "firewall", self.firewall,
                confirm="Configure firewall?",
                on_decline=lambda: c.info("Skipping firewall configuration"),
            ),
            Step(
                "start", self.start,
                confirm="Start N8N service?",
                on_decline=lambda: c.info("Skipping service start"),
            ),
        ]

    # ── Preflight and collection ─────────────────────────────────

    def root_check(self, config: InstallConfig) -> None:
        preflight.check_not_root(self.runner, self.settings)

    def detect(self, config: InstallConfig) -> InstallConfig:
        distro = detect_distro(self.os_root, which=self.runner.which)
        self.console.log(f"Detected: {distro.distro} {distro.version}".rstrip())
        self.console.info(f"Package manager: {distro.package_manager}")
        self.console.info(f"Firewall: {distro.firewall_backend}")
        return config.evolve(distro=distro)

    def prerequisites(self, config: InstallConfig) -> None:
        self.console.log("Checking prerequisites...")
        installed = preflight.run_preflight(self.runner, config.require_distro(), self.settings)
        for tool in installed:
            self.console.info(f"Installed missing tool: {tool}")
        self.console.log("Prerequisites check passed")

    def configure(self, config: InstallConfig) -> InstallConfig:
        updated = collect_user_input(self.console, config, self.settings)
        self.console.blank()
        distro = updated.require_distro()
        self.console.log(f"Starting installation process for {distro.describe()}...")
        self.console.blank()
        return updated

    # ── Packages ─────────────────────────────────────────────────

    def system_update(self, config: InstallConfig) -> None:
        distro = config.require_distro()
        self.console.log(f"Updating system packages for {distro.distro}...")
        packages.update_system(self.runner, distro)
        self.console.log("System updated successfully")

    def docker(self, config: InstallConfig) -> None:
        distro = config.require_distro()
        self.console.log(f"Installing Docker for {distro.distro}...")
        packages.install_docker(self.runner, distro, config.user)
        self.console.log("Docker installed successfully")
        self.console.warn("You may need to log out and back in for docker group membership to apply")

    def nginx(self, config: InstallConfig) -> None:
        distro = config.require_distro()
        self.console.log(f"Installing Nginx for {distro.distro}...")
        packages.install_nginx(self.runner, distro, self.settings)
        self.console.log("Nginx installed and started")

    def _nginx_declined(self) -> None:
        self.console.info("Skipping Nginx installation")
        self.console.warn("You'll need to configure your own reverse proxy for N8N")
        self.console.warn(f"N8N will run on http://localhost:{self.settings.app_port}")
        self.console.info(
            f"Make sure to proxy requests to port {self.settings.app_port} "
            "and handle SSL termination"
        )

    def certbot(self, config: InstallConfig) -> None:
        distro = config.require_distro()
        self.console.log(f"Installing Certbot for {distro.distro}...")
        packages.install_certbot(self.runner, distro)
        self.console.log("Certbot installed successfully")

    # ── Repository and .env ──────────────────────────────────────

    def repository(self, config: InstallConfig) -> None:
        target = config.require_target()
        self.console.log(f"Cloning repository: {target.repository_url}")
        if clone_repository(self.runner, target, config.user):
            self.console.info(f"Kept existing .env at {target.env_path}")
        self.reconciliation = self.environment(config)
        self.console.log("Repository cloned and configured successfully")

    def environment(self, config: InstallConfig) -> ReconciliationResult:
        """Reconcile ``<target>/.env``, collecting secrets only if it must be generated."""
        target_dir = Path(config.require_target().directory_path)
        fallback = Path(self.settings.fallback_env_path)

        values = None
        if locate_environment_source(target_dir, cwd=self.cwd, fallback_path=fallback) is None:
            values = collect_env_values(self.console).as_env(config.domain)

        result = resolve_environment_file(
            target_dir,
            target_dir / self.settings.env_template_name,
            values,
            cwd=self.cwd,
            fallback_path=fallback,
        )

        if result.source == "existing":
            self.console.log(".env file already exists in project directory - skipping configuration")
        elif result.source in ("cwd", "fallback"):
            self.console.info(f"Using existing environment configuration from {result.origin}")
            self.console.warn(f"Backup this file securely: {result.path}")
        else:
            self.console.log(".env file configured successfully")
            if result.appended:
                self.console.warn(f"Added keys missing from the template: {', '.join(result.appended)}")
            self.console.info("Configuration Summary:")
            self.console.info(f"  Domain: {config.domain}")
            self.console.info(f"  N8N Admin User: {values['N8N_BASIC_AUTH_USER']}")
            self.console.info(f"  Database: {values['POSTGRES_DB']} (user: {values['POSTGRES_USER']})")
            self.console.info("  Security: Encryption key and JWT secret configured")
            self.console.warn("IMPORTANT: Your .env file contains sensitive information.")
            self.console.warn("File permissions set to 600 (owner read/write only)")
            self.console.warn(f"Backup this file securely: {result.path}")

        if not result.generated:
            unset = missing_keys(Path(result.path))
            if unset:
                self.console.warn(f"Existing .env does not set: {', '.join(unset)}")
        return result

    # ── Reverse proxy and TLS ────────────────────────────────────

    def nginx_site(self, config: InstallConfig) -> None:
        if not self.runner.which("nginx"):
            self.console.warn("Nginx not installed. Skipping Nginx configuration.")
            self.console.info("If you install Nginx later, you can create the config manually")
            raise StepSkipped("nginx not installed")
        if not self.console.ask_yes_no(f"Create Nginx configuration for {config.domain}?"):
            self.console.info("Skipping Nginx configuration")
            self.console.info("You'll need to configure your reverse proxy manually")
            raise StepSkipped("declined")

        self.console.log("Creating Nginx configuration...")
        proxy.configure_proxy(self.runner, config, self.settings)
        self.console.log("Nginx configuration created and activated")

    def tls(self, config: InstallConfig) -> None:
        manual = certs.manual_command(config)
        if not self.runner.which("nginx"):
            self.console.warn("Nginx not installed. Skipping SSL setup.")
            self.console.info("SSL certificates require a web server for domain validation.")
            self.console.info("Install nginx or another web server first, then run:")
            self.console.info(f"  {manual}")
            raise StepSkipped("nginx not installed")
        if not self.console.ask_yes_no("Setup SSL certificate with Let's Encrypt?"):
            self.console.info("Skipping SSL setup")
            raise StepSkipped("declined")

        self.console.log("Setting up SSL certificate...")
        if certs.issue_certificate(self.runner, config).ok:
            self.console.log("SSL certificate setup completed successfully")
            if certs.dry_run_renewal(self.runner):
                self.console.log("SSL auto-renewal test passed")
            else:
                self.console.warn("SSL auto-renewal test failed, but certificate is installed")
            return

        self.console.error("Failed to setup SSL certificate")
        self.console.blank()
        self.console.warn("Common SSL setup issues:")
        for n, issue in enumerate(certs.TROUBLESHOOTING, 1):
            self.console.info(f"  {n}. {issue}")
        self.console.blank()
        self.console.warn("Check the following log files for detailed errors:")
        for line in certs.LOG_FILES:
            self.console.info(f"  - {line}")
        self.console.blank()
        self.console.info("You can manually setup SSL later with:")
        self.console.info(f"  {manual}")
        self.console.blank()

        if self.console.ask_yes_no("Skip SSL setup and continue with the installation?", default=True):
            self.console.warn("Continuing without SSL - your site will be HTTP only")
            self.console.info("You can setup SSL manually after the installation completes")
            raise StepSkipped("certificate issuance failed")
        raise InstallAborted("Stopping installation. Please fix SSL issues and run the script again.")

    # ── Service ──────────────────────────────────────────────────

    def service(self, config: InstallConfig) -> None:
        self.console.log(f"Creating N8N systemd service with {config.hardware.value} profile...")
        self.console.log(f"Using Docker Compose profile: {config.hardware.value}")
        self.console.info(service_unit.PROFILE_NOTES[config.hardware])

        service_unit.register_service(self.runner, config, self.settings)
        self.console.log(f"N8N systemd service created and enabled with {config.hardware.value} profile")

        if config.hardware is not HardwareProfile.CPU:
            self.console.blank()
            self.console.warn("GPU Profile Notes:")
            for note in service_unit.GPU_CHECKS[config.hardware]:
                self.console.info(f"  - {note}")
            self.console.blank()

    def firewall(self, config: InstallConfig) -> None:
        distro = config.require_distro()
        self.console.log(f"Configuring firewall for {distro.distro}...")
        if firewall.configure_firewall(self.runner, distro):
            self.console.log("Configured firewall for Nginx")
        else:
            self.console.warn("Nginx not installed - you'll need to configure firewall for your reverse proxy")
            self.console.info(f"For example: {firewall.MANUAL_HINTS[distro.firewall_backend]}")
        self.console.log("Firewall configured successfully")

    def start(self, config: InstallConfig) -> None:
        self.console.log("Starting N8N service...")
        if not service_unit.in_docker_group(self.runner, config.user):
            self.console.warn(
                f"User {config.user} is not in docker group. You may need to log out and log back in."
            )
            if self.console.ask_yes_no("Add user to docker group and continue?"):
                service_unit.add_to_docker_group(self.runner, config.user)
        service_unit.start_service(self.runner, config, self.settings)
        self.console.log("N8N service started")
