"""
Logging configuration — set up once by the CLI before any step runs.

Operator-facing progress goes through the click console; this module
only configures the diagnostic ``logging`` stream (stderr, plus an
optional file). Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  STACKDEPLOY_LOG_LEVEL env var  >  WARNING (default)

Optional file output via STACKDEPLOY_LOG_FILE / STACKDEPLOY_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

ENV_LEVEL = "STACKDEPLOY_LOG_LEVEL"
ENV_FILE = "STACKDEPLOY_LOG_FILE"
ENV_FILE_LEVEL = "STACKDEPLOY_LOG_FILE_LEVEL"

# ── Format strings ──────────────────────────────────────────────

_FMT_MINIMAL = "%(levelname)s: %(message)s"

_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# File output — always full detail
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"


def resolve_level(cli_level: str | None, environ: Mapping[str, str] | None = None) -> str:
    """Pick the console level: CLI flag, then env var, then WARNING."""
    env = os.environ if environ is None else environ
    return cli_level or env.get(ENV_LEVEL) or "WARNING"


def setup_logging(
    level: str | None = None,
    log_file: str | None = None,
    log_file_level: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> None:
    """Configure Python logging for the installer process.

    Args:
        level: Level name from the CLI; ``None`` defers to the environment.
        log_file: Log file path; defaults to ``STACKDEPLOY_LOG_FILE``.
        log_file_level: Level for the file; defaults to
            ``STACKDEPLOY_LOG_FILE_LEVEL``, then to the console level.
        environ: Environment mapping (tests pass their own).
    """
    env = os.environ if environ is None else environ
    numeric_level = _parse_level(resolve_level(level, env))
    log_file = log_file or env.get(ENV_FILE)
    log_file_level = log_file_level or env.get(ENV_FILE_LEVEL)

    # ── Console handler (stderr) ────────────────────────────────
    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    effective_level = numeric_level

    # ── File handler (optional) ─────────────────────────────────
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
