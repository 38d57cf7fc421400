"""
Configuration loader — reads stackdeploy.yml into InstallerSettings.

The file is optional: with no file every setting keeps its default.
When a file is given or found it must be a valid YAML mapping that
matches the settings schema.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from stackdeploy.core.models.settings import InstallerSettings

logger = logging.getLogger(__name__)

# Default config filename
SETTINGS_FILE = "stackdeploy.yml"

# Environment variable that points at an explicit settings file
SETTINGS_ENV_VAR = "STACKDEPLOY_CONFIG"


class ConfigError(Exception):
    """Raised when the settings file is unreadable or invalid."""


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for stackdeploy.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to stackdeploy.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_settings(path: Path | None = None) -> InstallerSettings:
    """Load and validate installer settings.

    Resolution order: explicit ``path`` > ``$STACKDEPLOY_CONFIG`` >
    stackdeploy.yml found upward from cwd > built-in defaults.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None and os.environ.get(SETTINGS_ENV_VAR):
        path = Path(os.environ[SETTINGS_ENV_VAR])
    elif path is None:
        path = find_settings_file()
        if path is None:
            logger.debug("No %s found, using defaults", SETTINGS_FILE)
            return InstallerSettings()

    if not path.is_file():
        raise ConfigError(f"Settings file not found: {path}")

    logger.debug("Loading installer settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return InstallerSettings()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Allow everything to sit under a top-level "installer" key
    settings_data = data.get("installer", data)

    try:
        settings = InstallerSettings.model_validate(settings_data)
    except Exception as e:
        raise ConfigError(f"Invalid installer settings: {e}") from e

    logger.info("Loaded installer settings from %s", path)
    return settings
