"""Cross-target native build coordinator for the FFI library and its C header."""

from .config import ProjectLayout
from .errors import (
    BuildFailed,
    ConfigError,
    ErrorCode,
    FfiBuildError,
    HeaderDrift,
    ToolMissing,
    UsageError,
)
from .header import HeaderSync
from .invoker import BuildInvoker
from .models import (
    Action,
    BuildRequest,
    CommandResult,
    HeaderDiffResult,
    HeaderMode,
    LtoMode,
    Profile,
    ResolvedEnvironment,
    ToolAvailability,
)
from .probe import ToolchainProbe
from .profile import TargetProfile
from .receipt import BuildReceipt

__all__ = [
    "Action",
    "BuildFailed",
    "BuildInvoker",
    "BuildReceipt",
    "BuildRequest",
    "CommandResult",
    "ConfigError",
    "ErrorCode",
    "FfiBuildError",
    "HeaderDiffResult",
    "HeaderDrift",
    "HeaderMode",
    "HeaderSync",
    "LtoMode",
    "Profile",
    "ProjectLayout",
    "ResolvedEnvironment",
    "TargetProfile",
    "ToolAvailability",
    "ToolMissing",
    "ToolchainProbe",
    "UsageError",
]
