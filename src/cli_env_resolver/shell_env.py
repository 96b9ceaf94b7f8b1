"""User shell environment reconstruction.

GUI apps launched from a desktop launcher (Finder/Dock on macOS, a packaged
Windows app) inherit a minimal environment that lacks the PATH entries set
up in the user's shell profiles. This module recovers the real environment:

- **macOS/Linux**: spawns the user's shell as a non-interactive login shell
  (``-l -c``, never ``-i``) and parses its ``env`` dump
- **Windows**: never spawns a shell; synthesizes PATH from the host PATH plus
  common install locations

Results are cached. A fallback environment (copied from the host process
after a failed shell spawn) gets a shorter TTL so the shell is retried sooner.
"""

import getpass
import logging
import os
import re
import sys
import threading
import time
from typing import Callable, Mapping, Optional

from .errors import CommandError
from .models import CachedEnvironment, ResolverConfig
from .platform_path import (
    build_platform_path,
    get_path_value,
    home_directory,
    path_separator,
    unix_candidate_dirs,
)
from .process import run_command
from .protocols import CommandRunner

logger = logging.getLogger(__name__)

# Marks the env dump so rc-file output before/after it is ignored
ENV_DELIMITER = "_CLI_ENV_DELIMITER_"

# CSI / OSC / two-character escape sequences emitted by fancy prompts
_VT_ESCAPE_RE = re.compile(
    r"\x1b\[[0-?]*[ -/]*[@-~]"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
    r"|\x1b[@-Z\\-_]"
)


class ShellEnvironmentError(Exception):
    """The login shell ran but did not produce a usable environment."""


def strip_control_sequences(text: str) -> str:
    """Remove terminal escape sequences from shell output."""
    return _VT_ESCAPE_RE.sub("", text)


def parse_env_output(output: str, delimiter: Optional[str] = ENV_DELIMITER) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines from an environment dump.

    When ``delimiter`` appears at least twice, only the text between the
    first two occurrences is parsed. Each line is split at its first ``=``;
    lines without ``=`` at offset >= 1 are ignored. Later keys win.

    Args:
        output: Raw shell output
        delimiter: Marker printed around the dump (None to parse everything)

    Returns:
        Parsed environment mapping
    """
    text = strip_control_sequences(output)
    if delimiter:
        sections = text.split(delimiter)
        if len(sections) >= 3:
            text = sections[1]

    env: dict[str, str] = {}
    for line in text.splitlines():
        idx = line.find("=")
        if idx > 0:
            env[line[:idx]] = line[idx + 1:]
    return env


def resolve_shell(environ: Mapping[str, str], platform: str) -> str:
    """Pick the user's shell: $SHELL, else the platform default."""
    shell = environ.get("SHELL")
    if shell:
        return shell
    return "/bin/zsh" if platform == "darwin" else "/bin/bash"


def current_username(environ: Mapping[str, str]) -> str:
    for key in ("USER", "USERNAME", "LOGNAME"):
        value = environ.get(key)
        if value:
            return value
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


def strip_sensitive_keys(env: dict[str, str], keys: list[str]) -> list[str]:
    """Remove auth-related keys in place and return the names removed."""
    removed = [key for key in keys if key in env]
    for key in removed:
        del env[key]
    if removed:
        logger.debug("Stripped %s from derived environment", ", ".join(removed))
    return removed


def host_environment(environ: Mapping[str, object]) -> dict[str, str]:
    """Copy a host environment, keeping string values only."""
    return {k: v for k, v in environ.items() if isinstance(k, str) and isinstance(v, str)}


class ShellEnvironmentProvider:
    """Derives and caches the user's full shell environment.

    Every returned mapping is a fresh copy; callers cannot mutate the cache.
    ``get_environment`` never raises: a failed shell spawn degrades to the
    host environment.
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        runner: Optional[CommandRunner] = None,
        environ: Optional[Mapping[str, str]] = None,
        platform: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the provider.

        Args:
            config: Resolver configuration (TTLs, timeouts, stripped keys)
            runner: Command runner used to spawn the shell
            environ: Host environment (default: live os.environ)
            platform: Platform string as in sys.platform (default: current)
            clock: Monotonic time source for cache expiry
        """
        self.config = config or ResolverConfig()
        self.runner = runner or run_command
        self._environ = environ
        self.platform = platform or sys.platform
        self.clock = clock

        self._cache: Optional[CachedEnvironment] = None
        self._lock = threading.Lock()

    @property
    def environ(self) -> Mapping[str, str]:
        # Read os.environ lazily so a PATH fix made later is visible
        return os.environ if self._environ is None else self._environ

    @property
    def cached(self) -> Optional[CachedEnvironment]:
        """The current cache entry, fresh or not."""
        with self._lock:
            return self._cache

    def clear_cache(self) -> None:
        """Discard the cached environment unconditionally."""
        with self._lock:
            self._cache = None

    async def get_environment(self) -> dict[str, str]:
        """Return the user's environment, deriving it if the cache is stale."""
        now = self.clock()
        with self._lock:
            entry = self._cache
            if entry and entry.is_fresh(
                now, self.config.env_cache_ttl, self.config.fallback_env_cache_ttl
            ):
                logger.debug(
                    "Using cached %s environment", "fallback" if entry.is_fallback else "shell"
                )
                return dict(entry.env)

        if self.platform == "win32":
            env, is_fallback = self._windows_environment(), False
        else:
            env, is_fallback = await self._login_shell_environment()

        strip_sensitive_keys(env, self.config.stripped_env_keys)

        with self._lock:
            self._cache = CachedEnvironment(env=dict(env), timestamp=now, is_fallback=is_fallback)
        return dict(env)

    def _windows_environment(self) -> dict[str, str]:
        """Synthesize the environment on Windows without a shell."""
        environ = self.environ
        home = home_directory(environ, "win32")
        env = {k: v for k, v in host_environment(environ).items() if k.upper() != "PATH"}
        env["PATH"] = build_platform_path(environ, "win32")
        env["HOME"] = home
        env["USERPROFILE"] = home
        user = current_username(environ)
        if user:
            env["USER"] = user

        logger.info("Built Windows environment with %d vars", len(env))
        return env

    async def _login_shell_environment(self) -> tuple[dict[str, str], bool]:
        """Run a login shell and parse its env dump.

        Returns:
            (environment, is_fallback)
        """
        environ = self.environ
        shell = resolve_shell(environ, self.platform)
        command = f"printf '%s' '{ENV_DELIMITER}'; env; printf '%s' '{ENV_DELIMITER}'"

        bootstrap = host_environment(environ)
        bootstrap["HOME"] = home_directory(environ, self.platform)
        # Stop prompt frameworks (oh-my-zsh) blocking on auto-update prompts
        bootstrap["DISABLE_AUTO_UPDATE"] = "true"

        try:
            result = await self.runner(
                shell,
                ["-l", "-c", command],
                env=bootstrap,
                timeout=self.config.shell_timeout,
            )
            env = parse_env_output(result.stdout)
            if not env.get("PATH"):
                raise ShellEnvironmentError(f"{shell} produced no PATH")
        except (CommandError, ShellEnvironmentError, OSError) as e:
            logger.warning("Failed to get shell environment: %s. Falling back to host environment", e)
            return self._fallback_environment(), True

        env.setdefault("HOME", bootstrap["HOME"])
        logger.info("Loaded %d environment variables from %s", len(env), shell)
        return env, False

    def _fallback_environment(self) -> dict[str, str]:
        env = host_environment(self.environ)
        if not get_path_value(env, self.platform):
            env["PATH"] = path_separator(self.platform).join(unix_candidate_dirs(env))
        return env


_default_provider: Optional[ShellEnvironmentProvider] = None


def get_default_provider() -> ShellEnvironmentProvider:
    """Process-wide provider used by the module-level helpers."""
    global _default_provider
    if _default_provider is None:
        _default_provider = ShellEnvironmentProvider()
    return _default_provider


async def get_shell_environment() -> dict[str, str]:
    """Get the user's shell environment from the default provider."""
    return await get_default_provider().get_environment()


def clear_shell_env_cache() -> None:
    """Clear the default provider's cached environment."""
    get_default_provider().clear_cache()
