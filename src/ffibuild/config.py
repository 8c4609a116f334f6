"""Project layout and environment-derived request configuration."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from ffibuild.errors import ConfigError
from ffibuild.models import Action, BuildRequest, Profile

TARGET_ENV = "CARGO_BUILD_TARGET"
TOOLCHAIN_ENV = "RUSTUP_TOOLCHAIN"
SDK_DIR_ENV = "DEVELOPER_SDK_DIR"

_CHANNEL_RE = re.compile(r'^\s*channel\s*=\s*"([^"]+)"\s*$', re.MULTILINE)


@dataclass(frozen=True, slots=True)
class ProjectLayout:
    root: Path
    package: str = "libsignal-ffi"
    header_path: Path = Path("swift/Sources/SignalFfi/signal_ffi.h")
    bridge_crate: Path = Path("rust/bridge/ffi")
    toolchain_file: Path = Path("rust-toolchain")
    cbindgen_requirement: str = "^0.16"

    @property
    def header_file(self) -> Path:
        return self.root / self.header_path

    @property
    def bridge_dir(self) -> Path:
        return self.root / self.bridge_crate

    def toolchain_pin(self) -> str | None:
        """Read the pinned toolchain from the project's toolchain file.

        Accepts both the legacy one-line format and the TOML ``[toolchain]``
        table with a ``channel`` key.
        """
        for candidate in (self.toolchain_file, self.toolchain_file.with_suffix(".toml")):
            path = self.root / candidate
            if not path.is_file():
                continue
            text = path.read_text(encoding="utf-8")
            match = _CHANNEL_RE.search(text)
            if match is not None:
                return match.group(1)
            stripped = text.strip()
            if stripped and "\n" not in stripped and "=" not in stripped:
                return stripped
            raise ConfigError(
                f"Cannot read a toolchain channel from {candidate}.",
                hint=f"Set {TOOLCHAIN_ENV} or fix the toolchain file.",
                context={"path": str(path)},
            )
        return None


def request_from_options(
    *,
    layout: ProjectLayout,
    environ: Mapping[str, str],
    release: bool = False,
    verbose: bool = False,
    action: Action = Action.BUILD,
    build_std: bool = False,
    features: Iterable[str] = (),
) -> BuildRequest:
    toolchain = environ.get(TOOLCHAIN_ENV) or None
    if build_std and toolchain is None:
        toolchain = layout.toolchain_pin()
    return BuildRequest(
        target_triple=environ.get(TARGET_ENV) or None,
        profile=Profile.RELEASE if release else Profile.DEBUG,
        verbose=verbose,
        features=frozenset(features),
        action=action,
        build_std=build_std,
        toolchain=toolchain,
        sdk_dir=environ.get(SDK_DIR_ENV) or None,
    )
