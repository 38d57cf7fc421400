"""
Installer errors — the fatal half of the error taxonomy.

Input validation problems never raise; collectors re-prompt instead.
Anything raised from here aborts the whole run: the pipeline stops at
the failing step and the CLI exits non-zero.
"""

from __future__ import annotations


class InstallError(Exception):
    """Base class for errors that abort the installation."""


class UnsupportedDistroError(InstallError):
    """The running OS is not in the supported distribution table."""


class PreflightError(InstallError):
    """A prerequisite check failed (root user, sudo, connectivity)."""


class ReconcileError(InstallError):
    """The .env file could not be produced at the deployment target."""


class InstallAborted(InstallError):
    """The operator declined to continue."""


class CommandError(InstallError):
    """An external command failed and the step cannot continue without it."""

    def __init__(
        self,
        message: str,
        *,
        command: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr

    def __str__(self) -> str:
        base = super().__str__()
        if self.returncode is not None:
            base = f"{base} (exit {self.returncode})"
        if self.stderr:
            base = f"{base}: {self.stderr.strip().splitlines()[-1]}"
        return base
