"""Core typed value objects passed between build stages."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType


class Profile(StrEnum):
    DEBUG = "debug"
    RELEASE = "release"


class Action(StrEnum):
    BUILD = "build"
    GENERATE_HEADER = "generate-header"
    VERIFY_HEADER = "verify-header"


class LtoMode(StrEnum):
    OFF = "off"
    THIN = "thin"
    FAT = "fat"


class HeaderMode(StrEnum):
    GENERATE = "generate"
    VERIFY = "verify"


@dataclass(frozen=True, slots=True)
class BuildRequest:
    """One logical build request, fixed once parsed from the command line."""

    target_triple: str | None = None
    profile: Profile = Profile.DEBUG
    verbose: bool = False
    features: frozenset[str] = frozenset()
    action: Action = Action.BUILD
    build_std: bool = False
    toolchain: str | None = None
    sdk_dir: str | None = None

    @property
    def release(self) -> bool:
        return self.profile is Profile.RELEASE

    @property
    def cross_compiling(self) -> bool:
        return bool(self.target_triple)

    @property
    def header_mode(self) -> HeaderMode | None:
        if self.action is Action.GENERATE_HEADER:
            return HeaderMode.GENERATE
        if self.action is Action.VERIFY_HEADER:
            return HeaderMode.VERIFY
        return None


@dataclass(frozen=True, slots=True)
class ResolvedEnvironment:
    compiler_flags: tuple[str, ...] = ()
    linker_flags: tuple[str, ...] = ()
    lto_mode: LtoMode = LtoMode.THIN
    deployment_target: str | None = None
    extra_env: Mapping[str, str] = field(default_factory=dict)
    features: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra_env", MappingProxyType(dict(self.extra_env)))

    def __hash__(self) -> int:
        return hash(
            (
                self.compiler_flags,
                self.linker_flags,
                self.lto_mode,
                self.deployment_target,
                tuple(sorted(self.extra_env.items())),
                self.features,
            )
        )


@dataclass(frozen=True, slots=True)
class ToolAvailability:
    tool: str
    found: bool
    version: str | None = None
    path: str | None = None


@dataclass(frozen=True, slots=True)
class HeaderDiffResult:
    up_to_date: bool
    diff_text: str | None = None


@dataclass(frozen=True, slots=True)
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0
