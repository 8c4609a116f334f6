"""Resolution of a build request into a concrete toolchain environment.

Each rule appends to ordered flag builders; nothing a rule adds is replaced by a
later rule. The resulting :class:`ResolvedEnvironment` depends only on the
request, the inherited environment mapping, and what the probe reports about
the installed toolchain.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from ffibuild.errors import ConfigError
from ffibuild.models import BuildRequest, LtoMode, ResolvedEnvironment

SMALL_CRYPTO_CFLAG = "-DOPENSSL_SMALL"
FULL_LTO_CFLAG = "-flto=full"
ARMV8_CRYPTO_RUSTFLAGS = ("--cfg", "aes_armv8", "--cfg", "polyval_armv8")

# The cc crate does not derive a usable clang target for Catalyst triples.
CATALYST_TARGET_OVERRIDES: dict[str, str] = {
    "aarch64-apple-ios-macabi": "--target=arm64-apple-ios-macabi",
    "x86_64-apple-ios-macabi": "--target=x86_64-apple-ios-macabi",
}

IOS_TRIPLE_RE = re.compile(r"-ios(-sim|-macabi)?$")
IOS_DEPLOYMENT_TARGET = "13"

TESTING_FEATURE = "testing-fns"
MINIMAL_TARGET = "aarch64-apple-ios"

SOURCE_COMPONENT = "rust-src"


class ComponentProbe(Protocol):
    def has_component(self, toolchain: str | None, component: str) -> bool:
        """Return whether *component* is installed for *toolchain*."""


def is_arm64(triple: str) -> bool:
    arch = triple.split("-", 1)[0]
    return arch in ("aarch64", "arm64", "arm64e")


def is_ios_family(triple: str | None) -> bool:
    return bool(triple) and IOS_TRIPLE_RE.search(triple) is not None


def _split_flags(value: str | None) -> list[str]:
    return value.split() if value else []


@dataclass(slots=True)
class _EnvBuilder:
    cflags: list[str] = field(default_factory=list)
    rustflags: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    features: list[str] = field(default_factory=list)

    def set_env(self, name: str, value: str) -> None:
        if name in self.env and self.env[name] != value:
            raise ConfigError(
                f"Conflicting values resolved for {name}.",
                context={"existing": self.env[name], "new": value},
            )
        self.env[name] = value

    def add_feature(self, name: str) -> None:
        if name not in self.features:
            self.features.append(name)


@dataclass(slots=True)
class TargetProfile:
    probe: ComponentProbe

    def resolve(
        self,
        request: BuildRequest,
        environ: Mapping[str, str] | None = None,
    ) -> ResolvedEnvironment:
        inherited = dict(environ or {})
        if request.build_std:
            self._ensure_source_component(request)

        builder = _EnvBuilder()
        triple = request.target_triple

        # Baseline.
        builder.cflags.append(SMALL_CRYPTO_CFLAG)
        builder.set_env("CARGO_PROFILE_RELEASE_DEBUG", "1")

        if triple and is_arm64(triple):
            builder.rustflags.extend(ARMV8_CRYPTO_RUSTFLAGS)

        # Catalyst overrides carry the C flags accumulated so far.
        override = CATALYST_TARGET_OVERRIDES.get(triple or "")
        if override is not None:
            per_target = [override, *builder.cflags, *_split_flags(inherited.get("CFLAGS"))]
            builder.set_env(f"CFLAGS_{triple.replace('-', '_')}", " ".join(per_target))

        builder.set_env("CARGO_PROFILE_DEV_LTO", LtoMode.THIN.value)
        release_lto = LtoMode.THIN
        deployment_target: str | None = None
        if is_ios_family(triple):
            release_lto = LtoMode.FAT
            builder.cflags.append(FULL_LTO_CFLAG)
            deployment_target = IOS_DEPLOYMENT_TARGET
            builder.set_env("IPHONEOS_DEPLOYMENT_TARGET", deployment_target)
        builder.set_env("CARGO_PROFILE_RELEASE_LTO", release_lto.value)

        if triple != MINIMAL_TARGET:
            builder.add_feature(TESTING_FEATURE)
        for feature in sorted(request.features):
            builder.add_feature(feature)

        if request.sdk_dir:
            library_path = f"{request.sdk_dir}/MacOSX.sdk/usr/lib"
            if inherited.get("LIBRARY_PATH"):
                library_path = f"{library_path}:{inherited['LIBRARY_PATH']}"
            builder.set_env("LIBRARY_PATH", library_path)

        builder.cflags.extend(_split_flags(inherited.get("CFLAGS")))
        builder.set_env("CFLAGS", " ".join(builder.cflags))
        if builder.rustflags:
            # Only cross builds reach here; host RUSTFLAGS stay untouched so the
            # incremental cache stays valid.
            builder.rustflags.extend(_split_flags(inherited.get("RUSTFLAGS")))
            builder.set_env("RUSTFLAGS", " ".join(builder.rustflags))

        return ResolvedEnvironment(
            compiler_flags=tuple(builder.cflags),
            linker_flags=tuple(builder.rustflags),
            lto_mode=release_lto if request.release else LtoMode.THIN,
            deployment_target=deployment_target,
            extra_env=builder.env,
            features=tuple(builder.features),
        )

    def _ensure_source_component(self, request: BuildRequest) -> None:
        if self.probe.has_component(request.toolchain, SOURCE_COMPONENT):
            return
        toolchain = f"+{request.toolchain} " if request.toolchain else ""
        raise ConfigError(
            f"{SOURCE_COMPONENT} component not installed; --build-std needs the standard library source.",
            hint=f"Get it by running: rustup {toolchain}component add {SOURCE_COMPONENT}",
            context={
                "toolchain": request.toolchain or "",
                "target": request.target_triple or "",
            },
        )
