"""
Environment reconciler — produce exactly one .env at the deployment target.

Source precedence, first match wins:

1. ``<target>/.env`` — authoritative; left byte-for-byte untouched.
2. ``<cwd>/.env`` — copied verbatim, mode forced to 0600.
3. the fallback path (``/root/.env`` by default) — same as (2).
4. the repository's ``.env.example`` — copied, then every recognized key
   is rewritten in place; keys the template lacks are appended under a
   labeled comment block.

Operator secrets in a pre-existing file are never replaced. Any copy or
write failure raises ``ReconcileError`` and aborts the installation.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from collections.abc import Mapping
from pathlib import Path

from stackdeploy.core.data.env_keys import ENV_SECTIONS, RECOGNIZED_KEYS
from stackdeploy.core.errors import ReconcileError
from stackdeploy.core.models.environment import EnvSource, ReconciliationResult

logger = logging.getLogger(__name__)

ENV_FILE = ".env"
ENV_MODE = 0o600


# ═══════════════════════════════════════════════════════════════════
#  Reading
# ═══════════════════════════════════════════════════════════════════


def read_env_values(env_path: Path) -> dict[str, str]:
    """Read raw key=value pairs from a .env file.

    Handles comments, blank lines, ``export KEY=value`` and quoted values.
    """
    if not env_path.is_file():
        return {}
    values: dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[7:].strip()
        key, _, value = line.partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]
        values[key.strip()] = value
    return values


def missing_keys(env_path: Path) -> list[str]:
    """Recognized keys that ``env_path`` does not assign."""
    try:
        present = read_env_values(env_path)
    except OSError as e:
        logger.warning("Cannot read %s: %s", env_path, e)
        return []
    return [key for key in RECOGNIZED_KEYS if key not in present]


# ═══════════════════════════════════════════════════════════════════
#  Source precedence
# ═══════════════════════════════════════════════════════════════════


def locate_environment_source(
    target_dir: Path,
    *,
    cwd: Path | None = None,
    fallback_path: Path | None = None,
) -> tuple[EnvSource, Path] | None:
    """Find the pre-existing .env that reconciliation would use.

    Returns:
        ``(source, path)`` for the first match, or None when the file
        has to be generated from the template.
    """
    candidates: list[tuple[EnvSource, Path | None]] = [
        ("existing", target_dir / ENV_FILE),
        ("cwd", (cwd or Path.cwd()) / ENV_FILE),
        ("fallback", fallback_path),
    ]
    for source, path in candidates:
        if path is None:
            continue
        try:
            found = path.is_file()
        except PermissionError as e:
            logger.warning("Skipping unreadable %s: %s", path, e)
            continue
        if found:
            return source, path
    return None


# ═══════════════════════════════════════════════════════════════════
#  Template rendering
# ═══════════════════════════════════════════════════════════════════


def _key_pattern(key: str) -> re.Pattern[str]:
    return re.compile(rf"^([ \t]*(?:export[ \t]+)?){re.escape(key)}[ \t]*=.*$", re.MULTILINE)


def render_environment(
    template: str,
    values: Mapping[str, str],
) -> tuple[str, list[str], list[str]]:
    """Apply ``values`` to template text.

    Every line assigning a recognized key is rewritten with the new value.
    Recognized keys with no such line are appended, grouped by section.

    Returns:
        ``(content, substituted_keys, appended_keys)``.
    """
    content = template
    substituted: list[str] = []
    missing: set[str] = set()

    for _, keys in ENV_SECTIONS:
        for key in keys:
            if key not in values:
                continue
            value = values[key]
            content, count = _key_pattern(key).subn(
                lambda m, k=key, v=value: f"{m.group(1)}{k}={v}", content,
            )
            if count:
                substituted.append(key)
            else:
                missing.add(key)

    appended: list[str] = []
    blocks: list[str] = []
    for section, keys in ENV_SECTIONS:
        section_keys = [k for k in keys if k in missing]
        if not section_keys:
            continue
        blocks.append("")
        blocks.append(f"# {section}")
        for key in section_keys:
            blocks.append(f"{key}={values[key]}")
            appended.append(key)

    if blocks:
        if content and not content.endswith("\n"):
            content += "\n"
        content += "\n".join(blocks) + "\n"
    elif content and not content.endswith("\n"):
        content += "\n"

    return content, substituted, appended


# ═══════════════════════════════════════════════════════════════════
#  Reconciliation
# ═══════════════════════════════════════════════════════════════════


def _copy_private(source: Path, target: Path) -> None:
    """Copy ``source`` to ``target``, never exposing it beyond mode 0600."""
    try:
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, ENV_MODE)
        os.fchmod(fd, ENV_MODE)
        with os.fdopen(fd, "wb") as dst, source.open("rb") as src:
            shutil.copyfileobj(src, dst)
    except OSError as e:
        raise ReconcileError(f"Failed to copy {source} to {target}: {e}") from e


def resolve_environment_file(
    target_dir: Path,
    template_path: Path,
    values: Mapping[str, str] | None,
    *,
    cwd: Path | None = None,
    fallback_path: Path | None = Path("/root/.env"),
) -> ReconciliationResult:
    """Produce the deployment's .env file.

    Args:
        target_dir: Deployment directory (the cloned repository).
        template_path: The repository's ``.env.example``.
        values: Recognized key → value; only needed when no pre-existing
            file is found.
        cwd: Directory checked for an operator-supplied .env (default: cwd).
        fallback_path: Well-known system location checked last.

    Raises:
        ReconcileError: On any copy/write failure, or when the template
            branch is reached without ``values``.
    """
    target = target_dir / ENV_FILE
    found = locate_environment_source(target_dir, cwd=cwd, fallback_path=fallback_path)

    if found is not None:
        source, origin = found
        if source == "existing":
            logger.info(".env already exists at %s; leaving it unchanged", target)
            return ReconciliationResult(path=str(target), source="existing", origin=str(target))

        logger.info("Copying existing .env from %s to %s", origin, target)
        _copy_private(origin, target)
        return ReconciliationResult(path=str(target), source=source, origin=str(origin))

    if values is None:
        raise ReconcileError(
            f"No existing .env found and no values supplied to generate {target}"
        )

    if template_path.is_file():
        logger.info("Generating %s from %s", target, template_path.name)
        _copy_private(template_path, target)
    else:
        logger.warning("%s not found; generating .env from recognized keys only", template_path)

    try:
        if not target.exists():
            target.touch(mode=ENV_MODE)
        template = target.read_text(encoding="utf-8") if target.is_file() else ""
        content, substituted, appended = render_environment(template, values)
        target.write_text(content, encoding="utf-8")
        target.chmod(ENV_MODE)
    except OSError as e:
        raise ReconcileError(f"Failed to write {target}: {e}") from e

    if appended:
        logger.info("Appended keys missing from template: %s", ", ".join(appended))

    return ReconciliationResult(
        path=str(target),
        source="template",
        origin=str(template_path),
        substituted=substituted,
        appended=appended,
    )
