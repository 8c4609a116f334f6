"""C header generation and drift verification via cbindgen."""

from __future__ import annotations

import difflib
import os
import re
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field

from ffibuild.config import ProjectLayout
from ffibuild.errors import BuildFailed
from ffibuild.invoker import child_environment
from ffibuild.models import BuildRequest, HeaderDiffResult, HeaderMode, ResolvedEnvironment
from ffibuild.observability import StructuredLogger
from ffibuild.runner import CommandRunner, SubprocessRunner

# The only cbindgen warning we hide; every other stderr line is forwarded.
SUPPRESSED_WARNING = re.compile(
    r'WARN: Missing `\[defines\]` entry for `feature = "ffi"` in cbindgen config\.'
)


def filter_generator_stderr(text: str) -> str:
    return "".join(
        line for line in text.splitlines(keepends=True) if not SUPPRESSED_WARNING.search(line)
    )


def unified_header_diff(reference: str, generated: str, label: str) -> str:
    diff = "".join(
        difflib.unified_diff(
            reference.splitlines(keepends=True),
            generated.splitlines(keepends=True),
            fromfile=label,
            tofile=f"{label} (generated)",
        )
    )
    # Undecodable bytes are kept for comparison but shown as U+FFFD.
    return diff.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


@dataclass(slots=True)
class HeaderSync:
    layout: ProjectLayout
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    tool: str = "cbindgen"
    inherited_env: Mapping[str, str] | None = None

    def command(self, request: BuildRequest, mode: HeaderMode) -> tuple[str, ...]:
        args = [self.tool]
        if mode is HeaderMode.VERIFY:
            args.append("-q")
        if request.release:
            args.extend(["--profile", "release"])
        if mode is HeaderMode.GENERATE:
            args.extend(["-o", str(self.layout.header_path)])
        args.append(str(self.layout.bridge_crate))
        return tuple(args)

    def sync(
        self,
        request: BuildRequest,
        env: ResolvedEnvironment,
        mode: HeaderMode,
    ) -> HeaderDiffResult:
        command = self.command(request, mode)
        inherited = self.inherited_env if self.inherited_env is not None else os.environ
        self.logger.echo(shlex.join(command))
        self._log(request, mode, "invoking header generator", extra={"command": list(command)})
        result = self.runner.run(
            command,
            env=child_environment(env, inherited),
            cwd=self.layout.root,
            capture=True,
        )

        if mode is HeaderMode.GENERATE and result.stdout:
            self.logger.echo(result.stdout.rstrip("\n"))
        forwarded = filter_generator_stderr(result.stderr)
        if forwarded:
            self.logger.echo(forwarded.rstrip("\n"))
        if not result.ok:
            self._log(
                request,
                mode,
                "header generator failed",
                level="error",
                extra={"returncode": result.returncode},
            )
            raise BuildFailed(
                "cbindgen failed.",
                returncode=result.returncode,
                hint="Check the cbindgen output above for details.",
                context={"command": shlex.join(command)},
            )

        if mode is HeaderMode.GENERATE:
            self._log(request, mode, "header written", extra={"path": str(self.layout.header_path)})
            return HeaderDiffResult(up_to_date=True)

        header_file = self.layout.header_file
        reference = ""
        if header_file.is_file():
            reference = header_file.read_text(encoding="utf-8", errors="surrogateescape")
        if reference == result.stdout:
            self._log(request, mode, "header up to date")
            return HeaderDiffResult(up_to_date=True)
        diff_text = unified_header_diff(reference, result.stdout, str(self.layout.header_path))
        self._log(request, mode, "header drift detected", level="error")
        return HeaderDiffResult(up_to_date=False, diff_text=diff_text)

    def _log(
        self,
        request: BuildRequest,
        mode: HeaderMode,
        message: str,
        *,
        level: str = "info",
        extra: dict[str, object] | None = None,
    ) -> None:
        self.logger.log(
            operation=mode.value,
            stage="header",
            target=request.target_triple,
            profile=request.profile.value,
            message=message,
            level=level,
            extra=extra,
        )
