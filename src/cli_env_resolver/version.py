"""CLI version probing and compatibility checks."""

import logging
import re
from typing import Mapping, Optional

from .errors import CommandError
from .models import ResolverConfig, VersionInfo
from .process import run_command
from .protocols import CommandRunner

logger = logging.getLogger(__name__)

MINIMUM_VERSION = "2.0.0"

_VERSION_RE = re.compile(r"(\d+)\.(\d+)\.(\d+)")


def parse_version_tuple(text: str) -> Optional[tuple[int, int, int]]:
    """Extract the first ``<digits>.<digits>.<digits>`` run from text."""
    match = _VERSION_RE.search(text)
    if not match:
        return None
    major, minor, patch = (int(g) for g in match.groups())
    return (major, minor, patch)


def is_compatible(
    version: tuple[int, int, int],
    minimum: tuple[int, int, int],
) -> bool:
    """Compare major, then minor, then patch; equal counts as compatible."""
    return version >= minimum


def parse_version(output: str, minimum_version: str = MINIMUM_VERSION) -> Optional[VersionInfo]:
    """Parse version output such as ``claude 2.1.5``, ``2.1.5`` or ``v2.1.5``.

    Args:
        output: Raw output of the version command
        minimum_version: Minimum supported version (major.minor.patch)

    Returns:
        VersionInfo, or None if no version could be found
    """
    parsed = parse_version_tuple(output)
    if parsed is None:
        return None

    minimum = parse_version_tuple(minimum_version)
    if minimum is None:
        raise ValueError(f"Invalid minimum version: {minimum_version!r}")

    major, minor, patch = parsed
    return VersionInfo(
        version=f"{major}.{minor}.{patch}",
        major=major,
        minor=minor,
        patch=patch,
        is_compatible=is_compatible(parsed, minimum),
    )


class VersionProber:
    """Runs the CLI with its version flag and parses the result.

    ``probe`` never raises; execution and parse failures both yield None.
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        runner: Optional[CommandRunner] = None,
    ):
        self.config = config or ResolverConfig()
        self.runner = runner or run_command

    async def probe(self, cli_path: str, env: Mapping[str, str]) -> Optional[VersionInfo]:
        """Get version info for the executable at ``cli_path``.

        Args:
            cli_path: Absolute path to the CLI executable
            env: Environment for the child process

        Returns:
            VersionInfo, or None if execution or parsing failed
        """
        try:
            result = await self.runner(
                cli_path,
                [self.config.version_flag],
                env=env,
                timeout=self.config.version_timeout,
            )
        except (CommandError, OSError) as e:
            logger.error("Failed to execute %s %s: %s", cli_path, self.config.version_flag, e)
            return None

        version = parse_version(result.stdout, self.config.minimum_version)
        if version is None:
            logger.warning("Failed to parse version from output: %r", result.stdout[:200])
        return version
