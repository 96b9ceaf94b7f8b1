"""Utilities for finding the CLI executable on PATH.

Uses the platform's own lookup tool (``which`` on Unix-like systems, ``where``
on Windows) with a supplied environment, so the lookup sees the user's shell
PATH rather than the host process's possibly minimal one.
"""

import logging
import os
import sys
from typing import Mapping, Optional

from .errors import CommandError
from .models import ResolverConfig
from .process import run_command
from .protocols import CommandRunner

logger = logging.getLogger(__name__)


def lookup_tool(platform: str) -> str:
    """Name of the native "locate in PATH" command."""
    return "where" if platform == "win32" else "which"


def first_output_line(output: str) -> Optional[str]:
    """First non-empty line of lookup output (``where`` may list several)."""
    for line in output.splitlines():
        line = line.strip()
        if line:
            return line
    return None


class ExecutableResolver:
    """Finds the CLI executable through a PATH lookup.

    Candidate names are tried in order (``claude`` on Unix; ``claude.exe``,
    ``claude.cmd``, ``claude`` on Windows). A candidate wins only if the
    lookup tool reports it and the reported file exists. A failure for one
    candidate never stops the loop.
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        runner: Optional[CommandRunner] = None,
        platform: Optional[str] = None,
    ):
        self.config = config or ResolverConfig()
        self.runner = runner or run_command
        self.platform = platform or sys.platform

    @property
    def candidates(self) -> list[str]:
        return self.config.candidate_names(self.platform)

    async def resolve_from_path(self, env: Mapping[str, str]) -> Optional[str]:
        """Locate the executable on the PATH in ``env``.

        Args:
            env: Environment whose PATH is searched

        Returns:
            Absolute path to the executable, or None if not found
        """
        tool = lookup_tool(self.platform)

        for candidate in self.candidates:
            try:
                result = await self.runner(
                    tool,
                    [candidate],
                    env=env,
                    timeout=self.config.lookup_timeout,
                )
            except CommandError as e:
                logger.debug("%s %s failed: %s", tool, candidate, e)
                continue

            resolved = first_output_line(result.stdout)
            if resolved and os.path.exists(resolved):
                return os.path.abspath(resolved)
            logger.debug("%s %s reported %r which does not exist", tool, candidate, resolved)

        return None

    async def is_available(self, env: Mapping[str, str]) -> bool:
        """Check if the CLI can be found on PATH."""
        return await self.resolve_from_path(env) is not None
