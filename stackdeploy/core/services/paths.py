"""
Path resolver — deployment directory and unit name from a repository URL.

Only the final path segment is used, so ``org-a/kit`` and ``org-b/kit``
resolve to the same directory and service. That collision is accepted
as-is; callers that care must compare ``repository_url`` themselves.
"""

from __future__ import annotations

from stackdeploy.core.models.deployment import DeploymentTarget


def repository_name(repository_url: str) -> str:
    """Last path segment of the URL with any ``.git`` suffix removed."""
    name = repository_url.rstrip("/").rsplit("/", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name


def derive_target(
    repository_url: str,
    *,
    install_root: str = "/opt",
    service_suffix: str = "-service",
) -> DeploymentTarget:
    """Derive the deployment target for ``repository_url``.

    >>> derive_target("https://github.com/org/my-repo.git").directory_path
    '/opt/my-repo'
    """
    name = repository_name(repository_url)
    return DeploymentTarget(
        repository_url=repository_url,
        directory_path=f"{install_root.rstrip('/')}/{name}",
        service_identifier=f"{name}{service_suffix}",
    )
