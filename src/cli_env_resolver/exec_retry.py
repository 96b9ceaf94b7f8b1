"""Command execution with a one-time PATH self-heal.

On macOS, GUI apps launched from Finder/Dock get a minimal PATH that excludes
Homebrew and other user-installed tools. ``run_with_fallback`` runs a command
normally and, only if it fails because the executable was not found, derives
the user's shell environment, persists its PATH into this process and
retries once.
"""

import logging
import os
import sys
from dataclasses import dataclass
from typing import MutableMapping, Optional, Sequence

from .errors import CommandNotFoundError
from .models import CommandResult, ResolverConfig
from .process import run_command
from .protocols import CommandRunner, EnvironmentSource
from .shell_env import get_default_provider

logger = logging.getLogger(__name__)


@dataclass
class PathFixState:
    """Process-wide record of the PATH self-heal.

    ``attempted`` is cleared again when an attempt fails so a later command
    can retry; ``succeeded`` stays set for the life of the process.
    """
    attempted: bool = False
    succeeded: bool = False

    def reset(self) -> None:
        self.attempted = False
        self.succeeded = False


def is_not_found_error(error: BaseException) -> bool:
    """Check if a failure means the executable itself does not exist."""
    return isinstance(error, (CommandNotFoundError, FileNotFoundError))


class ShellFallbackExecutor:
    """Runs arbitrary commands, self-healing PATH once on "not found"."""

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        env_provider: Optional[EnvironmentSource] = None,
        runner: Optional[CommandRunner] = None,
        state: Optional[PathFixState] = None,
        environ: Optional[MutableMapping[str, str]] = None,
        platform: Optional[str] = None,
    ):
        """Initialize the executor.

        Args:
            config: Resolver configuration (timeouts, self-heal platforms)
            env_provider: Source of the user's shell environment
            runner: Command runner
            state: PATH fix flags (default: a fresh state owned by this executor)
            environ: Host environment whose PATH is fixed (default: os.environ)
            platform: Platform string as in sys.platform (default: current)
        """
        self.config = config or ResolverConfig()
        self.env_provider = env_provider or get_default_provider()
        self.runner = runner or run_command
        self.state = state or PathFixState()
        self.environ = os.environ if environ is None else environ
        self.platform = platform or sys.platform

    def _eligible(self, error: BaseException) -> bool:
        return (
            self.platform in self.config.self_heal_platforms
            and not self.state.succeeded
            and not self.state.attempted
            and is_not_found_error(error)
        )

    async def run(
        self,
        cmd: str,
        args: Sequence[str] = (),
        *,
        env: Optional[dict[str, str]] = None,
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Run a command, retrying once with the shell environment if not found.

        Args:
            cmd: Executable to run
            args: Arguments
            env: Caller's environment (None inherits the host environment)
            cwd: Working directory
            timeout: Seconds before the child is killed (default from config)

        Returns:
            CommandResult of the first successful run

        Raises:
            CommandError: The original failure, or the retry's failure
        """
        timeout = self.config.command_timeout if timeout is None else timeout

        try:
            return await self.runner(cmd, args, env=env, cwd=cwd, timeout=timeout)
        except Exception as error:
            if not self._eligible(error):
                raise
            original = error

        self.state.attempted = True
        logger.info("Command %s not found, deriving shell environment", cmd)

        try:
            shell_env = await self.env_provider.get_environment()
        except Exception as e:
            logger.error("Could not derive shell environment: %s", e)
            shell_env = {}

        shell_path = shell_env.get("PATH")
        if not shell_path:
            self.state.attempted = False
            raise original

        # Persist so every later spawn in this process benefits
        self.environ["PATH"] = shell_path
        self.state.succeeded = True
        logger.info("Fixed process PATH for GUI app")

        retry_env = {**shell_env, **(env or {}), "PATH": shell_path}
        try:
            return await self.runner(cmd, args, env=retry_env, cwd=cwd, timeout=timeout)
        except Exception as retry_error:
            self.state.attempted = False
            logger.error("Retry of %s failed: %s", cmd, retry_error)
            raise


_path_fix_state = PathFixState()
_default_executor: Optional[ShellFallbackExecutor] = None


def get_default_executor() -> ShellFallbackExecutor:
    """Process-wide executor sharing the process-wide PATH fix state."""
    global _default_executor
    if _default_executor is None:
        provider = get_default_provider()
        _default_executor = ShellFallbackExecutor(
            provider.config, env_provider=provider, state=_path_fix_state
        )
    return _default_executor


async def run_with_fallback(
    cmd: str,
    args: Sequence[str] = (),
    *,
    env: Optional[dict[str, str]] = None,
    cwd: Optional[str] = None,
    timeout: Optional[float] = None,
) -> CommandResult:
    """Run a command with the default executor (see ``ShellFallbackExecutor.run``)."""
    return await get_default_executor().run(cmd, args, env=env, cwd=cwd, timeout=timeout)
