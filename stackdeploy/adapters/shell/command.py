"""
Shell command adapter — the single place external tools are invoked.

Package managers, git, docker, nginx, certbot, systemctl and the
firewall tools all go through ``CommandRunner.run``. It never raises
for a failing command: callers get a ``CommandResult`` and decide
whether the failure is fatal (``result.check(...)``) or ignorable.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path

from stackdeploy.core.errors import CommandError

logger = logging.getLogger(__name__)

# Exit codes used when the command never ran
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


@dataclass
class CommandResult:
    """Outcome of one external command."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    elapsed_ms: int = 0
    sudo: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def check(self, message: str) -> CommandResult:
        """Raise ``CommandError`` with ``message`` unless the command succeeded."""
        if not self.ok:
            raise CommandError(
                message,
                command=self.command,
                returncode=self.returncode,
                stderr=self.stderr,
            )
        return self


@dataclass
class CommandRunner:
    """Run external commands, prefixing ``sudo`` when asked and not root.

    Attributes:
        default_timeout: Seconds before a captured command is killed.
            ``None`` waits forever, which package installs need.
        calls: Every command line executed, in order (for diagnostics).
    """

    default_timeout: float | None = None
    calls: list[list[str]] = field(default_factory=list)

    # ── Queries ──────────────────────────────────────────────────

    def which(self, name: str) -> bool:
        """Whether ``name`` is an executable on PATH."""
        return shutil.which(name) is not None

    @property
    def is_root(self) -> bool:
        return os.geteuid() == 0

    # ── Execution ────────────────────────────────────────────────

    def run(
        self,
        cmd: list[str],
        *,
        sudo: bool = False,
        capture: bool = True,
        input: str | None = None,
        timeout: float | None = None,
        cwd: str | None = None,
    ) -> CommandResult:
        """Run ``cmd`` and return its result.

        Args:
            cmd: Argument list; never passed through a shell.
            sudo: Run with root privileges.
            capture: Capture stdout/stderr. Long installs pass False so the
                operator sees package-manager progress on the terminal.
            input: Text piped to stdin.
            timeout: Override ``default_timeout``.
            cwd: Working directory for the command.
        """
        full = list(cmd)
        if sudo and not self.is_root:
            full = ["sudo", *full]

        self.calls.append(full)
        logger.debug("Executing: %s (cwd=%s)", " ".join(full), cwd)

        start = time.monotonic()
        try:
            proc = subprocess.run(
                full,
                capture_output=capture,
                text=True,
                input=input,
                timeout=timeout if timeout is not None else self.default_timeout,
                cwd=cwd,
            )
        except FileNotFoundError:
            return CommandResult(
                command=full,
                returncode=EXIT_NOT_FOUND,
                stderr=f"{full[0]}: command not found",
                sudo=sudo,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                command=full,
                returncode=EXIT_TIMEOUT,
                stderr=f"Command timed out ({timeout or self.default_timeout}s)",
                sudo=sudo,
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        result = CommandResult(
            command=full,
            returncode=proc.returncode,
            stdout=(proc.stdout or "").strip(),
            stderr=(proc.stderr or "").strip(),
            elapsed_ms=elapsed_ms,
            sudo=sudo,
        )
        if not result.ok:
            logger.debug("Command failed (exit %d): %s", result.returncode, result.stderr)
        return result

    def write_file(
        self,
        path: str,
        content: str,
        *,
        sudo: bool = False,
        mode: int | None = None,
    ) -> CommandResult:
        """Write ``content`` to ``path``, through ``sudo tee`` for system paths."""
        if sudo and not self.is_root:
            result = self.run(["tee", path], sudo=True, input=content)
            if result.ok and mode is not None:
                result = self.run(["chmod", format(mode, "o"), path], sudo=True)
            return result

        target = Path(path)
        try:
            target.write_text(content, encoding="utf-8")
            if mode is not None:
                target.chmod(mode)
        except OSError as e:
            return CommandResult(command=["write", path], returncode=1, stderr=str(e))
        return CommandResult(command=["write", path], returncode=0)

    def sleep(self, seconds: float) -> None:
        """Block for ``seconds`` (service warm-up)."""
        if seconds > 0:
            logger.debug("Waiting %.0fs", seconds)
            time.sleep(seconds)
