"""Typed build error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across the CLI and API surfaces."""

    USAGE = "E_USAGE"
    CONFIG = "E_CONFIG"
    TOOL_MISSING = "E_TOOL_MISSING"
    BUILD_FAILED = "E_BUILD_FAILED"
    HEADER_DRIFT = "E_HEADER_DRIFT"


class FfiBuildError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]
    exit_code: int = 1

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "exit_code": self.exit_code,
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class UsageError(FfiBuildError):
    exit_code = 2

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.USAGE, hint=hint, context=context)


class ConfigError(FfiBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONFIG, hint=hint, context=context)


class ToolMissing(FfiBuildError):
    def __init__(
        self,
        message: str,
        *,
        tool: str,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.TOOL_MISSING,
            hint=hint,
            context={"tool": tool, **(context or {})},
        )
        self.tool = tool


class BuildFailed(FfiBuildError):
    """A child process exited non-zero; its status becomes the process exit code."""

    def __init__(
        self,
        message: str,
        *,
        returncode: int,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.BUILD_FAILED,
            hint=hint,
            context={**(context or {}), "returncode": str(returncode)},
        )
        self.returncode = returncode
        self.exit_code = returncode


class HeaderDrift(FfiBuildError):
    def __init__(
        self,
        message: str,
        *,
        diff_text: str,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.HEADER_DRIFT, hint=hint, context=context)
        self.diff_text = diff_text


__all__ = [
    "BuildFailed",
    "ConfigError",
    "ErrorCode",
    "FfiBuildError",
    "HeaderDrift",
    "ToolMissing",
    "UsageError",
]
