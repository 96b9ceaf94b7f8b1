"""Shell environment derivation and CLI executable resolution.

This package provides tools to:
- Reconstruct the user's login-shell environment (shell_env.py)
- Find the CLI on PATH (cli_utils.py) and validate its path (validators.py)
- Check the CLI version against a minimum (version.py)
- Combine all of the above into one cached health result (resolver.py)
- Run commands with a one-time PATH self-heal (exec_retry.py)
"""

__version__ = "0.1.0"

from .cli_env import build_cli_env, check_tool_available, summarize_env
from .cli_utils import ExecutableResolver
from .errors import (
    CommandError,
    CommandFailedError,
    CommandNotFoundError,
    CommandTimeoutError,
)
from .exec_retry import PathFixState, ShellFallbackExecutor, run_with_fallback
from .models import (
    CachedEnvironment,
    CommandResult,
    HealthStatus,
    ResolvedCli,
    ResolverConfig,
    VersionInfo,
)
from .platform_path import build_platform_path
from .process import run_command
from .resolver import (
    CliResolver,
    check_cli_health,
    clear_resolution_cache,
    get_cached_cli_path,
    get_cached_cli_version,
    resolve_cli,
)
from .shell_env import (
    ShellEnvironmentProvider,
    clear_shell_env_cache,
    get_shell_environment,
    parse_env_output,
)
from .validators import CliPathValidator, validate_cli_path
from .version import VersionProber, parse_version

__all__ = [
    "CachedEnvironment",
    "CliPathValidator",
    "CliResolver",
    "CommandError",
    "CommandFailedError",
    "CommandNotFoundError",
    "CommandResult",
    "CommandTimeoutError",
    "ExecutableResolver",
    "HealthStatus",
    "PathFixState",
    "ResolvedCli",
    "ResolverConfig",
    "ShellEnvironmentProvider",
    "ShellFallbackExecutor",
    "VersionInfo",
    "VersionProber",
    "build_cli_env",
    "build_platform_path",
    "check_cli_health",
    "check_tool_available",
    "clear_resolution_cache",
    "clear_shell_env_cache",
    "get_cached_cli_path",
    "get_cached_cli_version",
    "get_shell_environment",
    "parse_env_output",
    "parse_version",
    "resolve_cli",
    "run_command",
    "run_with_fallback",
    "summarize_env",
    "validate_cli_path",
]
