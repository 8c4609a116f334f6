"""Build receipts: deterministic records of one coordinator run."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import cbor2

from ffibuild.models import BuildRequest, ResolvedEnvironment


def environment_fingerprint(env: ResolvedEnvironment) -> str:
    canonical = json.dumps(environment_payload(env), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def environment_payload(env: ResolvedEnvironment) -> dict[str, Any]:
    return {
        "compiler_flags": list(env.compiler_flags),
        "linker_flags": list(env.linker_flags),
        "lto_mode": env.lto_mode.value,
        "deployment_target": env.deployment_target,
        "extra_env": dict(sorted(env.extra_env.items())),
        "features": list(env.features),
    }


@dataclass(frozen=True, slots=True)
class BuildReceipt:
    request: BuildRequest
    environment: ResolvedEnvironment
    command: tuple[str, ...]
    returncode: int
    header_up_to_date: bool | None = None
    schema_version: int = 1

    @property
    def fingerprint(self) -> str:
        return environment_fingerprint(self.environment)

    def to_json(self, path: str | Path | None = None) -> str:
        encoded = json.dumps(self._payload(), indent=2, sort_keys=True) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        encoded = cbor2.dumps(self._payload(), canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    def write(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if output_path.suffix == ".cbor":
            self.to_cbor(output_path)
        else:
            self.to_json(output_path)
        return output_path

    def _payload(self) -> dict[str, Any]:
        request = self.request
        return {
            "schema_version": self.schema_version,
            "request": {
                "target_triple": request.target_triple,
                "profile": request.profile.value,
                "verbose": request.verbose,
                "features": sorted(request.features),
                "action": request.action.value,
                "build_std": request.build_std,
                "toolchain": request.toolchain,
            },
            "environment": environment_payload(self.environment),
            "fingerprint": self.fingerprint,
            "command": list(self.command),
            "returncode": self.returncode,
            "header_up_to_date": self.header_up_to_date,
        }
