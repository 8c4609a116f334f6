"""Command-line driver: parse flags, sequence the build stages, map exit codes."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import NoReturn, TextIO

from ffibuild.config import TARGET_ENV, ProjectLayout, request_from_options
from ffibuild.errors import BuildFailed, FfiBuildError, HeaderDrift, UsageError
from ffibuild.header import HeaderSync
from ffibuild.invoker import BuildInvoker, build_command
from ffibuild.models import Action, BuildRequest, ResolvedEnvironment
from ffibuild.observability import StructuredLogger
from ffibuild.probe import ToolchainProbe
from ffibuild.profile import TargetProfile
from ffibuild.receipt import BuildReceipt
from ffibuild.runner import CommandRunner, SubprocessRunner

EXIT_INTERRUPTED = 130

EPILOG = f"Use {TARGET_ENV} for cross-compilation (such as for iOS)."


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise UsageError(message, hint=f"Run `{self.prog} --help` for usage.")


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog=prog,
        description="Build the native FFI library and keep its C header in sync.",
        epilog=EPILOG,
        add_help=False,
        allow_abbrev=False,
    )
    profile = parser.add_mutually_exclusive_group()
    profile.add_argument(
        "-d", "--debug", dest="release", action="store_const", const=False, default=None,
        help="debug build (default)",
    )
    profile.add_argument(
        "-r", "--release", dest="release", action="store_const", const=True,
        help="release build",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="verbose build")
    header = parser.add_mutually_exclusive_group()
    header.add_argument(
        "--generate-ffi", dest="action", action="store_const", const=Action.GENERATE_HEADER,
        default=Action.BUILD, help="regenerate ffi headers",
    )
    header.add_argument(
        "--verify-ffi", dest="action", action="store_const", const=Action.VERIFY_HEADER,
        help="verify that ffi headers are up to date",
    )
    parser.add_argument(
        "--build-std", action="store_true",
        help="use Cargo's -Zbuild-std to compile for a tier 3 target",
    )
    parser.add_argument("--receipt", type=Path, help="write a build receipt (.cbor or JSON)")
    parser.add_argument("--log-json", type=Path, help="export structured logs as JSON lines")
    parser.add_argument("-h", "--help", action="store_true", help="print usage and exit")
    return parser


def find_project_root(start: Path, layout: ProjectLayout | None = None) -> Path:
    """Walk up from *start* to the directory that holds the FFI bridge crate."""
    bridge = (layout or ProjectLayout(root=start)).bridge_crate
    for candidate in (start, *start.parents):
        if (candidate / bridge).is_dir():
            return candidate
    return start


@dataclass(slots=True)
class CliDriver:
    layout: ProjectLayout
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    environ: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    probe: ToolchainProbe | None = None
    invoker: BuildInvoker | None = None
    prog: str | None = None
    stdout: TextIO | None = None

    def run(self, argv: Sequence[str]) -> int:
        parser = build_parser(self.prog)
        try:
            options = parser.parse_args(list(argv))
        except UsageError as exc:
            parser.print_usage(sys.stderr)
            self._report(exc)
            return exc.exit_code

        if options.help:
            parser.print_help(self.stdout if self.stdout is not None else sys.stdout)
            return 0

        try:
            request = request_from_options(
                layout=self.layout,
                environ=self.environ,
                release=bool(options.release),
                verbose=options.verbose,
                action=options.action,
                build_std=options.build_std,
            )
            return self.execute(request, receipt_path=options.receipt)
        except HeaderDrift as exc:
            out = self.stdout if self.stdout is not None else sys.stdout
            out.write(exc.diff_text)
            out.flush()
            self._report(exc)
            return exc.exit_code
        except FfiBuildError as exc:
            self._report(exc)
            code = exc.exit_code
            # A child killed by a signal reports -N; shells report 128 + N.
            return 128 - code if code < 0 else code
        except KeyboardInterrupt:
            self.logger.echo("interrupted")
            return EXIT_INTERRUPTED
        finally:
            if options.log_json is not None:
                self.logger.to_json_lines(options.log_json)

    def execute(self, request: BuildRequest, *, receipt_path: Path | None = None) -> int:
        probe = self.probe or ToolchainProbe(
            runner=self.runner,
            cbindgen_requirement=self.layout.cbindgen_requirement,
        )
        env = TargetProfile(probe).resolve(request, self.environ)
        self.logger.log(
            operation="resolve",
            stage="profile",
            target=request.target_triple,
            profile=request.profile.value,
            message="environment resolved",
            extra={"lto_mode": env.lto_mode.value, "features": list(env.features)},
        )

        probe.require("cargo")
        header_mode = request.header_mode
        if header_mode is not None:
            availability = probe.require("cbindgen")
            if availability.version:
                self.logger.echo(availability.version)

        invoker = self.invoker or BuildInvoker(
            runner=self.runner,
            logger=self.logger,
            cwd=self.layout.root,
            package=self.layout.package,
            inherited_env=self.environ,
        )
        returncode = invoker.run(env, request)
        header_up_to_date: bool | None = None
        try:
            if returncode != 0:
                raise BuildFailed(
                    "cargo build failed.",
                    returncode=returncode,
                    context={"target": request.target_triple or "host"},
                )
            if header_mode is None:
                return 0

            sync = HeaderSync(
                layout=self.layout,
                runner=self.runner,
                logger=self.logger,
                inherited_env=self.environ,
            )
            result = sync.sync(request, env, header_mode)
            header_up_to_date = result.up_to_date
            if not result.up_to_date:
                raise HeaderDrift(
                    f"{self.layout.header_path.name} not up to date.",
                    diff_text=result.diff_text or "",
                    hint=f"Run `{self.prog or 'ffibuild'} --generate-ffi` to regenerate it.",
                    context={"path": str(self.layout.header_path)},
                )
            return 0
        finally:
            if receipt_path is not None:
                self._write_receipt(receipt_path, request, env, returncode, header_up_to_date)

    def _write_receipt(
        self,
        path: Path,
        request: BuildRequest,
        env: ResolvedEnvironment,
        returncode: int,
        header_up_to_date: bool | None,
    ) -> None:
        receipt = BuildReceipt(
            request=request,
            environment=env,
            command=build_command(env, request, package=self.layout.package),
            returncode=returncode,
            header_up_to_date=header_up_to_date,
        )
        receipt.write(path)

    def _report(self, exc: FfiBuildError) -> None:
        self.logger.log(
            operation="report",
            stage="cli",
            target=self.environ.get(TARGET_ENV),
            profile=None,
            message=exc.args[0] if exc.args else exc.code,
            level="error",
            extra=exc.to_dict(),
        )
        self.logger.echo(f"error: {exc}")


def main(argv: Sequence[str] | None = None) -> int:
    root = find_project_root(Path.cwd())
    driver = CliDriver(layout=ProjectLayout(root=root), prog="ffibuild")
    return driver.run(sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":
    sys.exit(main())
