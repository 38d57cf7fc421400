"""
CLI commands for installing and verifying a deployment.

Thin wrappers over ``stackdeploy.core.engine`` and
``stackdeploy.core.services.verify``.
"""

from __future__ import annotations

import getpass
import sys
from pathlib import Path

import click

from stackdeploy.adapters.shell.command import CommandRunner
from stackdeploy.core.config.loader import ConfigError, load_settings
from stackdeploy.core.errors import UnsupportedDistroError
from stackdeploy.core.models.deployment import InstallConfig
from stackdeploy.core.models.settings import InstallerSettings
from stackdeploy.core.observability.health import SystemHealth
from stackdeploy.ui.cli.console import Console

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _settings(ctx: click.Context, console: Console) -> InstallerSettings:
    config_path: Path | None = ctx.obj.get("config_path") if ctx.obj else None
    try:
        return load_settings(config_path)
    except ConfigError as e:
        console.error(str(e))
        sys.exit(EXIT_FAILURE)


def _runner(ctx: click.Context) -> CommandRunner:
    runner = ctx.obj.get("runner") if ctx.obj else None
    return runner or CommandRunner()


def _console(ctx: click.Context) -> Console:
    console = ctx.obj.get("console") if ctx.obj else None
    return console or Console()


# ── Reporting ───────────────────────────────────────────────────


def print_health(console: Console, health: SystemHealth) -> None:
    for component in health.components:
        if component.status == "healthy":
            console.ok(component.message)
        elif component.status == "degraded":
            console.warn(component.message)
        else:
            console.fail(component.message)
        expires = component.details.get("expires") if component.name == "certificate" else None
        if expires:
            console.info(f"  Certificate expires: {expires}")


def print_summary(
    console: Console,
    health: SystemHealth,
    config: InstallConfig,
    settings: InstallerSettings,
    runner: CommandRunner,
) -> None:
    """Verdict, system information and the commands an operator will need next."""
    target = config.require_target()
    service = target.service_identifier
    has_nginx = runner.which("nginx")
    certificate = health.get("certificate")
    scheme = "https" if certificate is not None and certificate.healthy else "http"

    console.blank()
    if health.passed:
        console.log("Installation completed successfully!")
        console.info(f"You can access N8N at: {scheme}://{config.domain}")
        console.info(f"Service status: sudo systemctl status {service}")
        console.info(f"Service logs: sudo journalctl -u {service} -f")
    else:
        console.error("Some components failed verification")
        console.warn("Check the errors above and run individual commands to troubleshoot")

    distro = config.distro
    if distro is not None:
        console.blank()
        console.info("System Information:")
        console.info(f"  OS: {distro.distro} {distro.version}".rstrip())
        console.info(f"  Package Manager: {distro.package_manager}")
        console.info(f"  Firewall: {distro.firewall_backend}")
    console.info(f"  Hardware Profile: {config.hardware.value}")

    console.blank()
    console.info("Useful commands:")
    console.info(f"  Check N8N logs: sudo journalctl -u {service} -f")
    console.info(f"  Restart N8N: sudo systemctl restart {service}")
    if has_nginx:
        console.info("  Check Nginx: sudo systemctl status nginx")
    console.info("  Test SSL renewal: sudo certbot renew --dry-run")
    console.info(f"  Edit environment: nano {target.env_path}")
    console.info(f"  View current config: grep -v -e PASSWORD -e SECRET {target.env_path}")
    console.info("  Generate new encryption key: openssl rand -hex 16")
    console.info("  Generate new JWT secret: openssl rand -base64 32")
    if distro is not None:
        from stackdeploy.core.services.firewall import STATUS_COMMANDS

        console.info(f"  Check firewall: {STATUS_COMMANDS[distro.firewall_backend]}")
        if not has_nginx:
            console.info("  Note: Without nginx, you may need to configure firewall for your reverse proxy")


def _show_status(runner: CommandRunner, service: str) -> None:
    if runner.which("nginx"):
        runner.run(["systemctl", "status", "nginx", "--no-pager"], sudo=True, capture=False)
        click.echo()
    runner.run(["systemctl", "status", service, "--no-pager"], sudo=True, capture=False)


# ── Commands ────────────────────────────────────────────────────


@click.command("install")
@click.pass_context
def install(ctx: click.Context) -> None:
    """Run the interactive installer."""
    from stackdeploy.core.engine.executor import run_pipeline
    from stackdeploy.core.engine.pipeline import InstallPipeline
    from stackdeploy.core.services.verify import verify_installation

    console = _console(ctx)
    settings = _settings(ctx, console)
    runner = _runner(ctx)
    pipeline = InstallPipeline(runner, console, settings)

    console.blank()
    console.log("=== N8N Self-Hosted AI Starter Kit Setup ===")
    console.log("=== Multi-Distribution Support ===")
    console.blank()

    try:
        report = run_pipeline(
            pipeline.steps(),
            InstallConfig(user=getpass.getuser()),
            ask=console.ask_yes_no,
        )
        if report.error is not None:
            console.error(str(report.error))
            console.error(f"Installation failed with exit code {EXIT_FAILURE}")
            console.warn("Check the logs above for details")
            sys.exit(EXIT_FAILURE)

        config = report.config
        console.blank()
        console.log("Running verification checks...")
        health = verify_installation(runner, config, settings)
        print_health(console, health)
        print_summary(console, health, config, settings, runner)

        console.blank()
        console.log("Setup process completed!")
        if console.ask_yes_no("Show final service status?"):
            console.blank()
            _show_status(runner, config.require_target().service_identifier)
    except (KeyboardInterrupt, click.Abort):
        console.blank()
        console.error("Installation interrupted")
        sys.exit(EXIT_INTERRUPTED)


@click.command("verify")
@click.argument("repository_url")
@click.argument("domain")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def verify(ctx: click.Context, repository_url: str, domain: str, as_json: bool) -> None:
    """Probe an existing deployment of REPOSITORY_URL served at DOMAIN."""
    import json

    from stackdeploy.core.services.distro import detect_distro
    from stackdeploy.core.services.paths import derive_target
    from stackdeploy.core.services.verify import verify_installation

    console = _console(ctx)
    settings = _settings(ctx, console)
    runner = _runner(ctx)

    target = derive_target(
        repository_url,
        install_root=settings.install_root,
        service_suffix=settings.service_suffix,
    )
    config = InstallConfig(user=getpass.getuser(), domain=domain, target=target)
    try:
        config = config.evolve(distro=detect_distro(which=runner.which))
    except UnsupportedDistroError as e:
        console.warn(f"{e}; skipping OS and firewall checks")

    health = verify_installation(runner, config, settings)

    if as_json:
        click.echo(json.dumps(health.to_dict(), indent=2))
    else:
        print_health(console, health)
        print_summary(console, health, config, settings, runner)

    sys.exit(0 if health.passed else EXIT_FAILURE)
