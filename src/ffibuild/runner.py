"""Capability interface for invoking external tools."""

from __future__ import annotations

import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ffibuild.errors import ToolMissing
from ffibuild.models import CommandResult


class CommandRunner(Protocol):
    def run(
        self,
        args: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
        capture: bool = False,
    ) -> CommandResult:
        """Run *args* to completion and return its exit status and captured output."""


@dataclass(slots=True)
class SubprocessRunner:
    """Blocking runner; uncaptured streams are inherited from this process."""

    def run(
        self,
        args: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
        capture: bool = False,
    ) -> CommandResult:
        try:
            result = subprocess.run(
                list(args),
                cwd=str(cwd) if cwd is not None else None,
                env=dict(env) if env is not None else None,
                capture_output=capture,
                text=True,
                encoding="utf-8",
                errors="surrogateescape",
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolMissing(
                f"`{args[0]}` could not be executed.",
                tool=args[0],
                hint=f"Ensure `{args[0]}` is installed and on PATH.",
            ) from exc
        return CommandResult(
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )
