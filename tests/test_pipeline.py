"""
Tests for the install pipeline — steps wired to a scripted console.
"""

import stat
from pathlib import Path

import pytest

from stackdeploy.adapters.mock import MockRunner
from stackdeploy.core.engine.executor import StepSkipped, run_pipeline
from stackdeploy.core.engine.pipeline import InstallPipeline
from stackdeploy.core.errors import InstallAborted, PreflightError, UnsupportedDistroError
from stackdeploy.core.models.deployment import HardwareProfile, InstallConfig


@pytest.fixture
def host(tmp_path: Path, settings) -> Path:
    """Fake filesystem root reporting Ubuntu 22.04."""
    (tmp_path / "etc" / "os-release").write_text('ID=ubuntu\nVERSION_ID="22.04"\n')
    (tmp_path / "cwd").mkdir()
    return tmp_path


@pytest.fixture
def pipeline(runner, console, settings, host) -> InstallPipeline:
    return InstallPipeline(runner, console, settings, cwd=host / "cwd", os_root=host)


@pytest.fixture
def target_dir(install_config) -> Path:
    """Deployment directory as left by the clone, with the kit's template."""
    directory = Path(install_config.require_target().directory_path)
    directory.mkdir(parents=True)
    (directory / ".env.example").write_text("POSTGRES_USER=changeme\nPOSTGRES_PASSWORD=changeme\n")
    return directory


ENV_ANSWERS = [
    "admin@example.com",
    "adminpass1",
    "",            # postgres user
    "dbpass123",
    "",            # postgres db
    "",            # generate encryption key
    "",            # generate jwt secret
]


class TestFullRun:
    def test_everything_accepted(self, pipeline, runner, console, settings, target_dir):
        runner.set_response("id -nG", stdout="deploy docker")
        console.answers = [
            "ai.example.com", "ops@example.com", "", "1", "",
            "y",                  # system update
            "y",                  # docker
            "y",                  # nginx
            "y",                  # certbot
            "y",                  # repository
            *ENV_ANSWERS,
            "y",                  # nginx site
            "y",                  # systemd service
            "y",                  # ssl
            "y",                  # firewall
            "y",                  # start
        ]

        report = run_pipeline(pipeline.steps(), InstallConfig(user="deploy"), ask=console.ask_yes_no)

        assert report.error is None
        assert report.succeeded == 14
        assert console.answers == []

        config = report.config
        assert config.domain == "ai.example.com"
        assert config.distro.distro == "ubuntu"
        assert config.hardware is HardwareProfile.CPU

        env = target_dir / ".env"
        assert "POSTGRES_PASSWORD=dbpass123\n" in env.read_text()
        assert stat.S_IMODE(env.stat().st_mode) == 0o600
        assert pipeline.reconciliation.source == "template"

        assert runner.ran("git clone")
        assert runner.ran("certbot --nginx -d ai.example.com")
        assert runner.lines[-1] == "systemctl start self-hosted-ai-starter-kit-service"
        assert runner.slept == [15]

    def test_everything_declined(self, pipeline, runner, console, target_dir):
        console.answers = [
            "ai.example.com", "ops@example.com", "", "1", "",
            "n", "n", "n", "n", "n",
            "n",                  # nginx site (nginx is on PATH)
            "n",                  # service
            "n",                  # ssl
            "n", "n",
        ]

        report = run_pipeline(pipeline.steps(), InstallConfig(user="deploy"), ask=console.ask_yes_no)

        assert report.all_ok
        assert report.skipped == 10
        assert runner.lines == ["sudo -v", "ping -c 1 google.com"]
        assert "You'll need to configure your own reverse proxy for N8N" in console.messages("warn")

    def test_root_stops_before_prompting(self, console, settings, host):
        pipeline = InstallPipeline(MockRunner(root=True), console, settings, os_root=host)
        report = run_pipeline(pipeline.steps(), InstallConfig(), ask=console.ask_yes_no)
        assert isinstance(report.error, PreflightError)
        assert report.total == 1
        assert console.prompts == []

    def test_unsupported_distro(self, runner, console, settings, host):
        (host / "etc" / "os-release").write_text("ID=arch\n")
        pipeline = InstallPipeline(runner, console, settings, os_root=host)
        report = run_pipeline(pipeline.steps(), InstallConfig(), ask=console.ask_yes_no)
        assert isinstance(report.error, UnsupportedDistroError)
        assert runner.call_count == 0

    def test_rejected_summary_aborts(self, pipeline, console):
        console.answers = ["ai.example.com", "ops@example.com", "", "1", "n"]
        report = run_pipeline(pipeline.steps(), InstallConfig(), ask=console.ask_yes_no)
        assert isinstance(report.error, InstallAborted)
        assert report.receipt("configure").failed


# ── .env reconciliation ──────────────────────────────────────────────


class TestEnvironment:
    def test_generated_from_template(self, pipeline, console, install_config, target_dir):
        console.answers = list(ENV_ANSWERS)
        result = pipeline.environment(install_config)
        assert result.generated
        assert "  N8N Admin User: admin@example.com" in console.messages("info")
        assert any("Added keys missing" in m for m in console.messages("warn"))

    def test_existing_target_kept_without_prompts(self, pipeline, console, install_config, target_dir):
        (target_dir / ".env").write_text("N8N_HOST=old.example.com\n")
        result = pipeline.environment(install_config)
        assert result.source == "existing"
        assert console.prompts == []
        assert any(m.startswith("Existing .env does not set:") for m in console.messages("warn"))

    def test_operator_file_in_cwd(self, pipeline, console, install_config, target_dir, host):
        (host / "cwd" / ".env").write_text("DOMAIN=ai.example.com\n")
        result = pipeline.environment(install_config)
        assert result.source == "cwd"
        assert (target_dir / ".env").read_text() == "DOMAIN=ai.example.com\n"
        assert console.prompts == []

    def test_repository_keeps_existing_env(self, pipeline, runner, console, install_config, target_dir):
        (target_dir / ".env").write_text("POSTGRES_PASSWORD=keep\n")
        pipeline.repository(install_config)
        assert runner.ran("rm -rf")
        assert (target_dir / ".env").read_text() == "POSTGRES_PASSWORD=keep\n"
        assert pipeline.reconciliation.source == "existing"
        assert any("Kept existing .env" in m for m in console.messages("info"))


# ── Reverse proxy and TLS ────────────────────────────────────────────


class TestNginxSite:
    def test_skipped_without_nginx(self, console, settings, install_config):
        pipeline = InstallPipeline(MockRunner(), console, settings)
        with pytest.raises(StepSkipped, match="nginx not installed"):
            pipeline.nginx_site(install_config)
        assert console.prompts == []

    def test_declined(self, pipeline, runner, console, install_config):
        console.answers = ["n"]
        with pytest.raises(StepSkipped, match="declined"):
            pipeline.nginx_site(install_config)
        assert runner.call_count == 0

    def test_accepted(self, pipeline, runner, console, install_config):
        console.answers = ["y"]
        pipeline.nginx_site(install_config)
        assert console.prompts == ["Create Nginx configuration for ai.example.com?"]
        assert runner.ran("nginx -t")


class TestTls:
    def test_skipped_without_nginx(self, console, settings, install_config):
        pipeline = InstallPipeline(MockRunner(), console, settings)
        with pytest.raises(StepSkipped):
            pipeline.tls(install_config)
        assert "  sudo certbot --nginx -d ai.example.com --email ops@example.com" in console.messages("info")

    def test_renewal_failure_only_warns(self, pipeline, runner, console, install_config):
        runner.set_failure("certbot renew")
        console.answers = ["y"]
        pipeline.tls(install_config)
        assert "SSL auto-renewal test failed, but certificate is installed" in console.messages("warn")

    def test_failure_then_continue(self, pipeline, runner, console, install_config):
        runner.set_failure("certbot --nginx")
        console.answers = ["y", ""]
        with pytest.raises(StepSkipped, match="certificate issuance failed"):
            pipeline.tls(install_config)
        assert console.messages("error") == ["Failed to setup SSL certificate"]
        assert "  1. Domain DNS not pointing to this server's IP" in console.messages("info")

    def test_failure_then_stop(self, pipeline, runner, console, install_config):
        runner.set_failure("certbot --nginx")
        console.answers = ["y", "n"]
        with pytest.raises(InstallAborted):
            pipeline.tls(install_config)


# ── Service, firewall, start ─────────────────────────────────────────


class TestService:
    def test_gpu_notes(self, pipeline, console, install_config):
        pipeline.service(install_config.evolve(hardware=HardwareProfile.GPU_NVIDIA))
        assert "GPU Profile Notes:" in console.messages("warn")
        assert "  - Verify NVIDIA drivers: nvidia-smi" in console.messages("info")

    def test_cpu_no_gpu_notes(self, pipeline, console, install_config):
        pipeline.service(install_config)
        assert "GPU Profile Notes:" not in console.messages("warn")


class TestFirewallStep:
    def test_without_nginx_shows_hint(self, console, settings, install_config):
        pipeline = InstallPipeline(MockRunner(), console, settings)
        pipeline.firewall(install_config)
        assert "For example: sudo ufw allow 80 && sudo ufw allow 443" in console.messages("info")


class TestStart:
    def test_in_group(self, pipeline, runner, console, install_config):
        runner.set_response("id -nG", stdout="deploy docker")
        pipeline.start(install_config)
        assert console.prompts == []
        assert runner.ran("systemctl start")

    def test_added_to_group(self, pipeline, runner, console, install_config):
        console.answers = ["y"]
        pipeline.start(install_config)
        assert runner.ran("usermod -aG docker deploy")
        assert runner.ran("systemctl start")

    def test_declined_group_still_starts(self, pipeline, runner, console, install_config):
        console.answers = ["n"]
        pipeline.start(install_config)
        assert not runner.ran("usermod")
        assert runner.ran("systemctl start")
