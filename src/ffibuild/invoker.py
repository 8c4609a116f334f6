"""Cargo build invocation."""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from ffibuild.models import BuildRequest, ResolvedEnvironment
from ffibuild.observability import StructuredLogger
from ffibuild.runner import CommandRunner, SubprocessRunner


def build_command(
    env: ResolvedEnvironment,
    request: BuildRequest,
    *,
    tool: str = "cargo",
    package: str = "libsignal-ffi",
) -> tuple[str, ...]:
    command = [tool, "build", "-p", package]
    if request.release:
        command.append("--release")
    if request.verbose:
        command.append("--verbose")
    if request.target_triple:
        command.extend(["--target", request.target_triple])
    if env.features:
        command.extend(["--features", ",".join(env.features)])
    if request.build_std:
        command.append("-Zbuild-std")
    return tuple(command)


def child_environment(
    env: ResolvedEnvironment,
    inherited: Mapping[str, str],
) -> dict[str, str]:
    merged = dict(inherited)
    merged.update(env.extra_env)
    return merged


@dataclass(slots=True)
class BuildInvoker:
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    cwd: Path | None = None
    tool: str = "cargo"
    package: str = "libsignal-ffi"
    inherited_env: Mapping[str, str] | None = None

    def run(self, env: ResolvedEnvironment, request: BuildRequest) -> int:
        command = build_command(env, request, tool=self.tool, package=self.package)
        inherited = self.inherited_env if self.inherited_env is not None else os.environ
        self.logger.echo(shlex.join(command))
        self.logger.log(
            operation="run",
            stage="build",
            target=request.target_triple,
            profile=request.profile.value,
            message="invoking compiler",
            extra={"command": list(command), "env": dict(sorted(env.extra_env.items()))},
        )
        result = self.runner.run(command, env=child_environment(env, inherited), cwd=self.cwd)
        self.logger.log(
            operation="run",
            stage="build",
            target=request.target_triple,
            profile=request.profile.value,
            message="compiler exited",
            level="info" if result.ok else "error",
            extra={"returncode": result.returncode},
        )
        return result.returncode
