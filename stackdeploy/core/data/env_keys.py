"""
L0 Data — recognized .env keys, grouped into labeled sections.

Section order and key order define how missing keys are appended
to a generated .env file.
"""

from __future__ import annotations

ENV_SECTIONS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Domain settings", ("DOMAIN",)),
    ("n8n configuration", (
        "N8N_PROTOCOL",
        "N8N_HOST",
        "WEBHOOK_URL",
        "WEBHOOK_TUNNEL_URL",
    )),
    ("n8n authentication", (
        "N8N_BASIC_AUTH_ACTIVE",
        "N8N_BASIC_AUTH_USER",
        "N8N_BASIC_AUTH_PASSWORD",
    )),
    ("Database settings", (
        "POSTGRES_USER",
        "POSTGRES_PASSWORD",
        "POSTGRES_DB",
    )),
    ("n8n encryption and security", (
        "N8N_ENCRYPTION_KEY",
        "N8N_USER_MANAGEMENT_JWT_SECRET",
    )),
)

RECOGNIZED_KEYS: tuple[str, ...] = tuple(
    key for _, keys in ENV_SECTIONS for key in keys
)
