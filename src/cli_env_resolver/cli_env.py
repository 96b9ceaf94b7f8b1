"""Environment construction for invoking the CLI."""

import logging
import os
import sys
from typing import Mapping, Optional, Sequence

from .errors import CommandError
from .models import ResolverConfig
from .platform_path import home_directory
from .process import run_command
from .protocols import CommandRunner, EnvironmentSource
from .shell_env import (
    current_username,
    get_default_provider,
    host_environment,
    resolve_shell,
    strip_sensitive_keys,
)

logger = logging.getLogger(__name__)


async def build_cli_env(
    custom_env: Optional[Mapping[str, str]] = None,
    env_provider: Optional[EnvironmentSource] = None,
    config: Optional[ResolverConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
    platform: Optional[str] = None,
) -> dict[str, str]:
    """Build the complete environment for running the CLI.

    Layers, lowest first:
    1. Shell environment (full PATH, HOME, locale)
    2. Host environment, except PATH (the launcher's PATH is often minimal)
    3. Required defaults (HOME, USER, SHELL, TERM / USERPROFILE, SystemRoot)
    4. ``custom_env`` overrides; an empty value removes the key

    Sensitive auth keys are stripped last.

    Args:
        custom_env: Caller overrides
        env_provider: Source of the shell environment (default: process-wide)
        config: Resolver configuration (default: the provider's)
        environ: Host environment (default: os.environ)
        platform: Platform string as in sys.platform (default: current)

    Returns:
        Environment mapping for the child process
    """
    env_provider = env_provider or get_default_provider()
    config = config or getattr(env_provider, "config", None) or ResolverConfig()
    environ = os.environ if environ is None else environ
    platform = platform or sys.platform

    env: dict[str, str] = {}
    try:
        env.update(await env_provider.get_environment())
    except Exception as e:
        logger.error("Shell environment failed, using host environment: %s", e)

    shell_path = env.get("PATH")
    env.update(host_environment(environ))
    if shell_path:
        env["PATH"] = shell_path

    home = home_directory(environ, platform)
    env.setdefault("HOME", home)
    if not env.get("USER"):
        user = current_username(environ)
        if user:
            env["USER"] = user
    env.setdefault("SHELL", resolve_shell(environ, platform))
    if platform == "win32":
        env.setdefault("USERPROFILE", home)
        env.setdefault("SystemRoot", environ.get("SystemRoot") or "C:\\Windows")
    else:
        env.setdefault("TERM", "xterm-256color")

    for key, value in (custom_env or {}).items():
        if value == "":
            env.pop(key, None)
        else:
            env[key] = value

    env["CLAUDE_CODE_ENTRYPOINT"] = config.entrypoint
    strip_sensitive_keys(env, config.stripped_env_keys)
    return env


async def check_tool_available(
    cmd: str,
    args: Sequence[str] = (),
    env: Optional[Mapping[str, str]] = None,
    timeout: float = 5.0,
    runner: Optional[CommandRunner] = None,
) -> bool:
    """Check that a tool runs successfully, e.g. ``git lfs version``.

    Returns:
        True if the command exits 0, False on any failure
    """
    runner = runner or run_command
    try:
        await runner(cmd, args, env=env, timeout=timeout)
        return True
    except CommandError as e:
        logger.debug("%s unavailable: %s", e.command_line, e)
        return False


def summarize_env(env: Mapping[str, str]) -> dict[str, object]:
    """Key facts about an environment, safe to display (no secret values)."""
    path = env.get("PATH", "")
    return {
        "HOME": env.get("HOME"),
        "USER": env.get("USER"),
        "SHELL": env.get("SHELL"),
        "path_entries": len([p for p in path.split(os.pathsep) if p]),
        "path_has_homebrew": "/opt/homebrew" in path,
        "path_has_usr_local_bin": "/usr/local/bin" in path,
        "auth_token_set": bool(env.get("ANTHROPIC_AUTH_TOKEN")),
    }
