"""
Environment file models — collected secrets and reconciliation outcome.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

EnvSource = Literal["existing", "cwd", "fallback", "template"]


class EnvValues(BaseModel):
    """Operator-supplied values written into a freshly generated .env."""

    model_config = ConfigDict(frozen=True)

    auth_user: str
    auth_password: str
    postgres_user: str = "root"
    postgres_password: str
    postgres_db: str = "n8n"
    encryption_key: str
    jwt_secret: str

    def as_env(self, domain: str) -> dict[str, str]:
        """Map every recognized .env key to its value for ``domain``."""
        url = f"https://{domain}"
        return {
            "DOMAIN": domain,
            "N8N_PROTOCOL": "https",
            "N8N_HOST": domain,
            "WEBHOOK_URL": url,
            "WEBHOOK_TUNNEL_URL": url,
            "N8N_BASIC_AUTH_ACTIVE": "true",
            "N8N_BASIC_AUTH_USER": self.auth_user,
            "N8N_BASIC_AUTH_PASSWORD": self.auth_password,
            "POSTGRES_USER": self.postgres_user,
            "POSTGRES_PASSWORD": self.postgres_password,
            "POSTGRES_DB": self.postgres_db,
            "N8N_ENCRYPTION_KEY": self.encryption_key,
            "N8N_USER_MANAGEMENT_JWT_SECRET": self.jwt_secret,
        }


class ReconciliationResult(BaseModel):
    """Which source became the deployment's .env, and what was changed.

    Attributes:
        path:        The .env at the deployment target.
        source:      ``existing`` (left untouched), ``cwd`` / ``fallback``
                     (copied verbatim) or ``template`` (generated).
        origin:      Path the file was copied from, if any.
        substituted: Keys rewritten in place (template branch only).
        appended:    Keys missing from the template and appended.
    """

    path: str
    source: EnvSource
    origin: str = ""
    substituted: list[str] = Field(default_factory=list)
    appended: list[str] = Field(default_factory=list)

    @property
    def generated(self) -> bool:
        return self.source == "template"

    @property
    def written(self) -> bool:
        """Whether reconciliation wrote to the target at all."""
        return self.source != "existing"
