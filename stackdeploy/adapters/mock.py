"""
Mock runner — test double for every external command.

Records each command instead of executing it. By default every
command succeeds with empty output; individual commands can be made
to fail or return canned output by matching on their leading words.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from stackdeploy.adapters.shell.command import CommandResult, CommandRunner


@dataclass
class MockCall:
    """One recorded command (without the sudo prefix)."""

    command: list[str]
    sudo: bool = False
    input: str | None = None
    cwd: str | None = None

    @property
    def line(self) -> str:
        return " ".join(self.command)


@dataclass
class MockRunner(CommandRunner):
    """Universal command runner mock.

    Attributes:
        available: Executables ``which`` reports as present.
        root: What ``is_root`` reports.
    """

    available: set[str] = field(default_factory=set)
    root: bool = False
    log: list[MockCall] = field(default_factory=list)
    files: dict[str, str] = field(default_factory=dict)
    slept: list[float] = field(default_factory=list)
    _responses: list[tuple[tuple[str, ...], CommandResult]] = field(default_factory=list)

    # ── Configuration ────────────────────────────────────────────

    def set_response(
        self,
        prefix: str,
        *,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        """Answer commands starting with ``prefix`` (space-separated words).

        Later registrations win over earlier ones for the same command.
        """
        words = tuple(prefix.split())
        self._responses.insert(
            0,
            (words, CommandResult(command=list(words), returncode=returncode,
                                  stdout=stdout, stderr=stderr)),
        )

    def set_failure(self, prefix: str, stderr: str = "Mock failure", returncode: int = 1) -> None:
        """Make commands starting with ``prefix`` fail."""
        self.set_response(prefix, returncode=returncode, stderr=stderr)

    def reset(self) -> None:
        self.log.clear()
        self.calls.clear()
        self.files.clear()
        self.slept.clear()
        self._responses.clear()

    # ── Queries over the log ─────────────────────────────────────

    @property
    def call_count(self) -> int:
        return len(self.log)

    @property
    def lines(self) -> list[str]:
        return [c.line for c in self.log]

    def ran(self, prefix: str) -> bool:
        """Whether any recorded command starts with ``prefix``."""
        words = prefix.split()
        return any(c.command[: len(words)] == words for c in self.log)

    def find(self, prefix: str) -> list[MockCall]:
        words = prefix.split()
        return [c for c in self.log if c.command[: len(words)] == words]

    # ── CommandRunner overrides ──────────────────────────────────

    def which(self, name: str) -> bool:
        return name in self.available

    @property
    def is_root(self) -> bool:
        return self.root

    def run(
        self,
        cmd: list[str],
        *,
        sudo: bool = False,
        capture: bool = True,
        input: str | None = None,
        timeout: float | None = None,
        cwd: str | None = None,
    ) -> CommandResult:
        self.log.append(MockCall(command=list(cmd), sudo=sudo, input=input, cwd=cwd))
        self.calls.append(list(cmd))

        for words, canned in self._responses:
            if tuple(cmd[: len(words)]) == words:
                return CommandResult(
                    command=list(cmd),
                    returncode=canned.returncode,
                    stdout=canned.stdout,
                    stderr=canned.stderr,
                    sudo=sudo,
                )
        return CommandResult(command=list(cmd), returncode=0, sudo=sudo)

    def write_file(
        self,
        path: str,
        content: str,
        *,
        sudo: bool = False,
        mode: int | None = None,
    ) -> CommandResult:
        self.files[path] = content
        return self.run(["tee", path], sudo=sudo, input=content)

    def sleep(self, seconds: float) -> None:
        self.slept.append(seconds)
