"""Detection of the external tools the build depends on."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field

from ffibuild.errors import ToolMissing
from ffibuild.models import ToolAvailability
from ffibuild.runner import CommandRunner, SubprocessRunner

RUSTUP_HINT = "Install a Rust toolchain from https://rustup.rs and ensure it is on PATH."


@dataclass(slots=True)
class ToolchainProbe:
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    cbindgen_requirement: str = "^0.16"

    def verify(self, tool: str) -> ToolAvailability:
        path = shutil.which(tool)
        if path is None:
            return ToolAvailability(tool=tool, found=False)
        result = self.runner.run([tool, "--version"], capture=True)
        version = result.stdout.strip() if result.ok else None
        return ToolAvailability(tool=tool, found=True, version=version or None, path=path)

    def require(self, tool: str) -> ToolAvailability:
        availability = self.verify(tool)
        if not availability.found:
            raise ToolMissing(
                f"`{tool}` not found in PATH.",
                tool=tool,
                hint=self.install_hint(tool),
            )
        return availability

    def install_hint(self, tool: str) -> str | None:
        if tool == "cbindgen":
            if shutil.which("cargo") is None:
                return None
            return f"Get it by running: cargo install cbindgen --vers '{self.cbindgen_requirement}'"
        if tool in ("cargo", "rustup", "rustc"):
            return RUSTUP_HINT
        return None

    def has_component(self, toolchain: str | None, component: str) -> bool:
        """Return whether *component* is installed for *toolchain* (default if None)."""
        self.require("rustup")
        args = ["rustup"]
        if toolchain:
            args.append(f"+{toolchain}")
        args.extend(["component", "list", "--installed"])
        result = self.runner.run(args, capture=True)
        if not result.ok:
            return False
        # Installed components are listed as "<name>" or "<name>-<host triple>".
        return any(
            line.strip() == component or line.strip().startswith(f"{component}-")
            for line in result.stdout.splitlines()
        )
