"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from stackdeploy.adapters.mock import MockRunner
from stackdeploy.core.models.deployment import DistroProfile, InstallConfig
from stackdeploy.core.models.settings import InstallerSettings
from stackdeploy.core.services.distro import resolve_profile
from stackdeploy.core.services.paths import derive_target


class ScriptedConsole:
    """Console stand-in that answers prompts from a script and records output.

    Each prompt, secret prompt and yes/no question consumes the next
    answer. An empty answer takes the prompt's default. Running out of
    answers fails the test with the unexpected prompt text.
    """

    def __init__(self, answers=()):
        self.answers = list(answers)
        self.lines: list[tuple[str, str]] = []
        self.prompts: list[str] = []

    # Output

    def log(self, message):
        self.lines.append(("log", message))

    def info(self, message):
        self.lines.append(("info", message))

    def warn(self, message):
        self.lines.append(("warn", message))

    def error(self, message):
        self.lines.append(("error", message))

    def ok(self, message):
        self.lines.append(("ok", message))

    def fail(self, message):
        self.lines.append(("fail", message))

    def blank(self):
        self.lines.append(("blank", ""))

    # Input

    def _next(self, text):
        self.prompts.append(text)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {text}")
        return self.answers.pop(0)

    def prompt(self, text, default=None):
        answer = self._next(text).strip()
        return answer or (default or "")

    def prompt_secret(self, text):
        return self._next(text)

    def ask_yes_no(self, question, default=False):
        while True:
            answer = self._next(question).strip().lower()
            if not answer:
                return default
            if answer in ("y", "yes"):
                return True
            if answer in ("n", "no"):
                return False

    # Inspection

    def messages(self, kind):
        return [m for k, m in self.lines if k == kind]

    @property
    def text(self):
        return "\n".join(m for _, m in self.lines)


@pytest.fixture
def console() -> ScriptedConsole:
    return ScriptedConsole()


@pytest.fixture
def runner() -> MockRunner:
    return MockRunner(available={"git", "curl", "docker", "nginx"})


@pytest.fixture
def settings(tmp_path: Path) -> InstallerSettings:
    """Settings with every system path redirected under tmp_path."""
    etc = tmp_path / "etc"
    (etc / "nginx").mkdir(parents=True)
    (etc / "nginx" / "nginx.conf").write_text("http {\n}\n")
    return InstallerSettings(
        install_root=str(tmp_path / "opt"),
        fallback_env_path=str(tmp_path / "root" / ".env"),
        nginx_conf=str(etc / "nginx" / "nginx.conf"),
        nginx_sites_available=str(etc / "nginx" / "sites-available"),
        nginx_sites_enabled=str(etc / "nginx" / "sites-enabled"),
        systemd_dir=str(etc / "systemd" / "system"),
        letsencrypt_live_dir=str(etc / "letsencrypt" / "live"),
        warmup_seconds=15,
    )


@pytest.fixture
def ubuntu() -> DistroProfile:
    return resolve_profile("ubuntu", "22.04")


@pytest.fixture
def install_config(ubuntu: DistroProfile, settings: InstallerSettings) -> InstallConfig:
    """A fully collected configuration, as after the input step."""
    return InstallConfig(
        user="deploy",
        distro=ubuntu,
        domain="ai.example.com",
        email="ops@example.com",
        target=derive_target(
            "https://github.com/n8n-io/self-hosted-ai-starter-kit.git",
            install_root=settings.install_root,
        ),
    )
