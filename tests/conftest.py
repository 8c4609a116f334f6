"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from ffibuild.config import ProjectLayout
from ffibuild.models import CommandResult

Handler = Callable[[tuple[str, ...]], CommandResult]


@dataclass
class RecordedCall:
    args: tuple[str, ...]
    env: dict[str, str] | None
    cwd: Path | None
    capture: bool


@dataclass
class FakeRunner:
    """Command runner that records calls and answers from per-tool handlers."""

    handlers: dict[str, Handler] = field(default_factory=dict)
    calls: list[RecordedCall] = field(default_factory=list)

    def run(
        self,
        args: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
        capture: bool = False,
    ) -> CommandResult:
        argv = tuple(args)
        self.calls.append(
            RecordedCall(args=argv, env=dict(env) if env is not None else None, cwd=cwd, capture=capture)
        )
        handler = self.handlers.get(argv[0])
        if handler is None:
            return CommandResult(returncode=0)
        return handler(argv)

    def calls_for(self, tool: str, subcommand: str | None = None) -> list[RecordedCall]:
        return [
            call
            for call in self.calls
            if call.args[0] == tool and (subcommand is None or subcommand in call.args[1:2])
        ]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def layout(tmp_path: Path) -> ProjectLayout:
    project = ProjectLayout(root=tmp_path)
    project.bridge_dir.mkdir(parents=True)
    project.header_file.parent.mkdir(parents=True)
    return project


@pytest.fixture
def tools_on_path(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pretend cargo, cbindgen and rustup are installed."""
    monkeypatch.setattr("ffibuild.probe.shutil.which", lambda tool: f"/usr/bin/{tool}")
