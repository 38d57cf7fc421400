"""
Generated file model — nginx sites and systemd units rendered by the installer.
"""

from __future__ import annotations

from pydantic import BaseModel


class GeneratedFile(BaseModel):
    """A system file produced by a renderer.

    Attributes:
        path:      Absolute destination path.
        content:   Full file content.
        overwrite: Whether an existing file is replaced.
        reason:    Why this file was generated.
    """

    path: str
    content: str
    overwrite: bool = False
    reason: str = ""
