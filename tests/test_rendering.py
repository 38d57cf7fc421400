"""
Tests for generated system files — nginx site and systemd unit.
"""

import pytest

from stackdeploy.adapters.mock import MockRunner
from stackdeploy.core.errors import CommandError
from stackdeploy.core.models.deployment import HardwareProfile
from stackdeploy.core.services.proxy import configure_proxy, render_site
from stackdeploy.core.services.service_unit import (
    add_to_docker_group,
    compose_command,
    in_docker_group,
    register_service,
    render_unit,
    start_service,
)

# ── nginx site ───────────────────────────────────────────────────────


class TestRenderSite:
    def test_path_uses_first_label(self, install_config, settings):
        site = render_site(install_config, settings)
        assert site.path == f"{settings.nginx_sites_available}/ai"
        assert site.overwrite

    def test_content(self, install_config, settings):
        content = render_site(install_config, settings).content
        assert "server_name ai.example.com;" in content
        assert "proxy_pass http://localhost:5678;" in content
        assert "location /.well-known/acme-challenge/" in content
        assert 'proxy_set_header Connection "upgrade";' in content
        assert "proxy_read_timeout 30s;" in content
        assert 'return 200 "healthy\\n";' in content
        assert "Strict-Transport-Security" in content
        assert "listen 80;" in content
        assert content.count("{") == content.count("}")

    def test_custom_port(self, install_config, settings):
        custom = settings.model_copy(update={"app_port": 8080})
        assert "proxy_pass http://localhost:8080;" in render_site(install_config, custom).content


class TestConfigureProxy:
    def test_sequence(self, runner, install_config, settings):
        site = configure_proxy(runner, install_config, settings)
        enabled = settings.nginx_sites_enabled
        assert runner.files[site.path] == site.content
        assert runner.lines[1:] == [
            f"ln -sf {site.path} {enabled}/ai",
            f"rm -f {enabled}/default",
            "nginx -t",
            "systemctl reload nginx",
        ]

    def test_default_site_removal_may_fail(self, runner, install_config, settings):
        runner.set_failure("rm -f")
        configure_proxy(runner, install_config, settings)
        assert runner.ran("systemctl reload nginx")

    def test_invalid_config_is_fatal(self, runner, install_config, settings):
        runner.set_failure("nginx -t", stderr="nginx: configuration file test failed")
        with pytest.raises(CommandError, match="Nginx configuration test failed"):
            configure_proxy(runner, install_config, settings)
        assert not runner.ran("systemctl reload")


# ── systemd unit ─────────────────────────────────────────────────────


class TestComposeCommand:
    def test_plugin(self, runner):
        assert compose_command(runner) == "docker compose"

    def test_plugin_missing(self, runner):
        runner.set_failure("docker compose")
        assert compose_command(runner) == "docker-compose"

    def test_no_docker(self):
        assert compose_command(MockRunner()) == "docker-compose"


class TestRenderUnit:
    def test_path(self, install_config, settings):
        unit = render_unit(install_config, settings, "docker compose")
        assert unit.path == f"{settings.systemd_dir}/self-hosted-ai-starter-kit-service.service"

    def test_content(self, install_config, settings):
        directory = install_config.require_target().directory_path
        content = render_unit(install_config, settings, "docker compose").content
        assert "Description=N8N AI Workflow Automation (cpu)" in content
        assert "Requires=docker.service" in content
        assert "User=deploy" in content
        assert "Group=docker" in content
        assert f"WorkingDirectory={directory}" in content
        assert "Environment=N8N_HOST=ai.example.com" in content
        assert "Environment=N8N_PORT=5678" in content
        assert "Environment=WEBHOOK_URL=https://ai.example.com/" in content
        assert f"ExecStart=/bin/bash -c 'cd {directory} && docker compose --profile cpu up -d'" in content
        assert f"ExecStop=/bin/bash -c 'cd {directory} && docker compose --profile cpu down'" in content
        assert "Restart=always" in content
        assert "WantedBy=multi-user.target" in content

    @pytest.mark.parametrize("profile", list(HardwareProfile))
    def test_hardware_profile(self, install_config, settings, profile):
        config = install_config.evolve(hardware=profile)
        content = render_unit(config, settings, "docker-compose").content
        assert f"docker-compose --profile {profile.value} up -d" in content
        assert f"({profile.value})" in content


class TestRegisterService:
    def test_sequence(self, runner, install_config, settings):
        unit = register_service(runner, install_config, settings)
        assert runner.files[unit.path] == unit.content
        assert runner.lines[-2:] == [
            "systemctl daemon-reload",
            "systemctl enable self-hosted-ai-starter-kit-service",
        ]
        assert not runner.ran("systemctl start")

    def test_enable_failure(self, runner, install_config, settings):
        runner.set_failure("systemctl enable")
        with pytest.raises(CommandError, match="Failed to enable N8N service"):
            register_service(runner, install_config, settings)


class TestStartService:
    def test_starts_and_waits(self, runner, install_config, settings):
        start_service(runner, install_config, settings)
        assert runner.lines == ["systemctl start self-hosted-ai-starter-kit-service"]
        assert runner.slept == [15]

    def test_start_failure(self, runner, install_config, settings):
        runner.set_failure("systemctl start")
        with pytest.raises(CommandError, match="Failed to start N8N service"):
            start_service(runner, install_config, settings)
        assert runner.slept == []

    def test_docker_group(self, runner):
        runner.set_response("id -nG", stdout="deploy sudo docker")
        assert in_docker_group(runner, "deploy")
        runner.set_response("id -nG", stdout="deploy sudo dockerish")
        assert not in_docker_group(runner, "deploy")

    def test_add_to_group(self, runner):
        add_to_docker_group(runner, "deploy")
        assert runner.lines == ["usermod -aG docker deploy"]
