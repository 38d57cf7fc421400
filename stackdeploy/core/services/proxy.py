"""
Reverse proxy — nginx server block for the n8n subdomain.

HTTP-only at first; certbot later rewrites the block to add TLS.
"""

from __future__ import annotations

import logging

from stackdeploy.adapters.shell.command import CommandRunner
from stackdeploy.core.models.deployment import InstallConfig
from stackdeploy.core.models.generated import GeneratedFile
from stackdeploy.core.models.settings import InstallerSettings

logger = logging.getLogger(__name__)

_SERVER_BLOCK = """\
server {{
    server_name {domain};

    # Let's Encrypt challenges
    location /.well-known/acme-challenge/ {{
        root /var/www/html;
        try_files $uri $uri/ =404;
    }}

    location / {{
        proxy_pass http://localhost:{port};
        proxy_set_header Host $host;
        proxy_set_header X-Real-IP $remote_addr;
        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $scheme;
        proxy_set_header X-Forwarded-Host $host;
        proxy_http_version 1.1;
        proxy_set_header Upgrade $http_upgrade;
        proxy_set_header Connection "upgrade";
        proxy_connect_timeout 30s;
        proxy_send_timeout 30s;
        proxy_read_timeout 30s;

        proxy_set_header X-Frame-Options DENY;
        proxy_set_header X-Content-Type-Options nosniff;
        proxy_set_header X-XSS-Protection "1; mode=block";
    }}

    location /health {{
        access_log off;
        return 200 "healthy\\n";
        add_header Content-Type text/plain;
    }}

    add_header Strict-Transport-Security "max-age=31536000; includeSubDomains" always;
    add_header X-Frame-Options DENY always;
    add_header X-Content-Type-Options nosniff always;

    listen 80;
}}
"""


def render_site(config: InstallConfig, settings: InstallerSettings) -> GeneratedFile:
    """Server block proxying ``config.domain`` to the local n8n port."""
    return GeneratedFile(
        path=f"{settings.nginx_sites_available}/{config.site_name}",
        content=_SERVER_BLOCK.format(domain=config.domain, port=settings.app_port),
        overwrite=True,
        reason=f"Reverse proxy for {config.domain}",
    )


def configure_proxy(
    runner: CommandRunner,
    config: InstallConfig,
    settings: InstallerSettings,
) -> GeneratedFile:
    """Write, enable and load the site; removes nginx's default site.

    Raises:
        CommandError: If the config fails ``nginx -t`` or nginx won't reload.
    """
    site = render_site(config, settings)
    enabled = f"{settings.nginx_sites_enabled}/{config.site_name}"

    logger.info("Writing nginx site %s", site.path)
    runner.write_file(site.path, site.content, sudo=True).check(
        f"Failed to write {site.path}"
    )
    runner.run(["ln", "-sf", site.path, enabled], sudo=True).check(
        f"Failed to enable site {config.site_name}"
    )
    runner.run(["rm", "-f", f"{settings.nginx_sites_enabled}/default"], sudo=True)

    runner.run(["nginx", "-t"], sudo=True).check("Nginx configuration test failed")
    runner.run(["systemctl", "reload", "nginx"], sudo=True).check("Failed to reload nginx")
    return site
