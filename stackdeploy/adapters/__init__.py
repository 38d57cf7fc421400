"""Adapters — bindings to the external tools the installer drives.

Public re-exports for convenient access.
"""

from stackdeploy.adapters.mock import MockCall, MockRunner
from stackdeploy.adapters.shell.command import CommandResult, CommandRunner

__all__ = [
    "CommandResult",
    "CommandRunner",
    "MockCall",
    "MockRunner",
]
