"""
stackdeploy — CLI entrypoint.

Usage:
    stackdeploy                 # interactive install
    stackdeploy --help
    stackdeploy detect
    stackdeploy target https://github.com/org/kit.git
    stackdeploy verify https://github.com/org/kit.git ai.example.com
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from stackdeploy import __version__
from stackdeploy.core.observability.logging_config import setup_logging


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="stackdeploy")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to stackdeploy.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Install the n8n self-hosted AI starter kit behind nginx and TLS."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = None
    setup_logging(level=level)

    if ctx.invoked_subcommand is None:
        ctx.invoke(install)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def detect(as_json: bool) -> None:
    """Detect the Linux distribution and show its package-manager profile."""
    from stackdeploy.core.errors import UnsupportedDistroError
    from stackdeploy.core.services.distro import detect_distro

    try:
        profile = detect_distro()
    except UnsupportedDistroError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(profile.model_dump(mode="json"), indent=2))
        return

    click.secho(f"🐧 {profile.describe()}", fg="cyan", bold=True)
    click.echo(f"   Family:          {profile.distro}")
    click.echo(f"   Package manager: {profile.package_manager}")
    click.echo(f"   Install:         {' '.join(profile.install_command)}")
    click.echo(f"   Update:          {' '.join(profile.update_command)}")
    click.echo(f"   Firewall:        {profile.firewall_backend}")


@cli.command()
@click.argument("repository_url")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def target(ctx: click.Context, repository_url: str, as_json: bool) -> None:
    """Show the deployment directory and service name for REPOSITORY_URL."""
    from stackdeploy.core.config.loader import ConfigError, load_settings
    from stackdeploy.core.services.paths import derive_target

    try:
        settings = load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    result = derive_target(
        repository_url,
        install_root=settings.install_root,
        service_suffix=settings.service_suffix,
    )

    if as_json:
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
        return

    click.echo(f"Directory: {result.directory_path}")
    click.echo(f"Service:   {result.service_identifier}")
    click.echo(f"Unit file: {settings.systemd_dir}/{result.unit_name}")


# ── Register commands from stackdeploy/ui/cli/ ────────────────────

from stackdeploy.ui.cli.install import install, verify

cli.add_command(install)
cli.add_command(verify)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
