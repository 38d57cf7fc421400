"""
Installer settings — tunables read from stackdeploy.yml.

Every field has a default matching a stock Linux host, so the file is
optional. Tests point the paths at ``tmp_path``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_REPOSITORY = "https://github.com/n8n-io/self-hosted-ai-starter-kit.git"


class InstallerSettings(BaseModel):
    """Paths, ports and defaults used by the install pipeline."""

    model_config = ConfigDict(extra="forbid")

    default_repository: str = DEFAULT_REPOSITORY
    install_root: str = "/opt"
    service_suffix: str = "-service"

    # .env reconciliation
    fallback_env_path: str = "/root/.env"
    env_template_name: str = ".env.example"

    # Application
    app_port: int = Field(default=5678, ge=1, le=65535)
    warmup_seconds: float = Field(default=15, ge=0)

    # System layout
    nginx_conf: str = "/etc/nginx/nginx.conf"
    nginx_sites_available: str = "/etc/nginx/sites-available"
    nginx_sites_enabled: str = "/etc/nginx/sites-enabled"
    systemd_dir: str = "/etc/systemd/system"
    letsencrypt_live_dir: str = "/etc/letsencrypt/live"

    # Preflight
    connectivity_host: str = "google.com"
    allow_root: bool = False
