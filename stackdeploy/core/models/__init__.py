"""
Domain models — Pydantic types for the installer.

All models are re-exported here for convenient access:

    from stackdeploy.core.models import InstallConfig, DeploymentTarget, Receipt
"""

from stackdeploy.core.models.deployment import (
    DeploymentTarget,
    DistroProfile,
    HardwareProfile,
    InstallConfig,
)
from stackdeploy.core.models.environment import EnvValues, ReconciliationResult
from stackdeploy.core.models.generated import GeneratedFile
from stackdeploy.core.models.receipt import Receipt
from stackdeploy.core.models.settings import DEFAULT_REPOSITORY, InstallerSettings

__all__ = [
    # deployment.py
    "DeploymentTarget",
    "DistroProfile",
    "HardwareProfile",
    "InstallConfig",
    # environment.py
    "EnvValues",
    "ReconciliationResult",
    # generated.py
    "GeneratedFile",
    # receipt.py
    "Receipt",
    # settings.py
    "DEFAULT_REPOSITORY",
    "InstallerSettings",
]
