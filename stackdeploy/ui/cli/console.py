"""
Interactive console — coloured status lines and prompts on top of click.

Core services receive a console instead of calling ``input()`` or
``print()`` themselves, so tests can script the conversation by
overriding ``prompt``, ``prompt_secret`` and ``ask_yes_no``.
"""

from __future__ import annotations

from datetime import datetime

import click


class Console:
    """Operator-facing output and input."""

    # ── Output ───────────────────────────────────────────────────

    def log(self, message: str) -> None:
        """Progress line, timestamped."""
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        click.secho(f"[{stamp}] {message}", fg="green")

    def info(self, message: str) -> None:
        click.secho(f"[INFO] {message}", fg="blue")

    def warn(self, message: str) -> None:
        click.secho(f"[WARNING] {message}", fg="yellow")

    def error(self, message: str) -> None:
        click.secho(f"[ERROR] {message}", fg="red", err=True)

    def ok(self, message: str) -> None:
        """Passed verification check."""
        click.secho(f"  ✓ {message}", fg="green")

    def fail(self, message: str) -> None:
        """Failed verification check."""
        click.secho(f"  ✗ {message}", fg="red")

    def blank(self) -> None:
        click.echo("")

    # ── Input ────────────────────────────────────────────────────

    def prompt(self, text: str, default: str | None = None) -> str:
        """Read one line; an empty answer returns ``default`` (or "")."""
        value = click.prompt(
            text,
            default=default if default is not None else "",
            show_default=default is not None,
            type=str,
        )
        return value.strip()

    def prompt_secret(self, text: str) -> str:
        """Read one line without echoing it."""
        return click.prompt(text, hide_input=True, default="", show_default=False, type=str)

    def ask_yes_no(self, question: str, default: bool = False) -> bool:
        """Ask until the answer is yes or no; empty input picks ``default``."""
        suffix = "[Y/n]" if default else "[y/N]"
        while True:
            answer = click.prompt(
                f"{question} {suffix}",
                default="y" if default else "n",
                show_default=False,
                type=str,
            )
            answer = answer.strip().lower()
            if answer in ("y", "yes"):
                return True
            if answer in ("n", "no"):
                return False
            click.echo("Please answer yes or no.")
