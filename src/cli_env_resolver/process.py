"""Async execution of external commands with a hard timeout."""

import asyncio
import errno
import logging
from typing import Mapping, Optional, Sequence

from .errors import (
    CommandError,
    CommandFailedError,
    CommandNotFoundError,
    CommandTimeoutError,
)
from .models import CommandResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


async def run_command(
    cmd: str,
    args: Sequence[str] = (),
    *,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[str] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
) -> CommandResult:
    """Run an executable directly (no shell) and capture its output.

    Args:
        cmd: Executable name or path
        args: Arguments passed verbatim
        env: Environment for the child; None inherits the host environment
        cwd: Working directory for the child
        timeout: Seconds before the child is killed (None = no limit)

    Returns:
        CommandResult with decoded stdout/stderr

    Raises:
        CommandNotFoundError: The executable does not exist
        CommandTimeoutError: The child ran longer than ``timeout``
        CommandFailedError: The child exited non-zero
        CommandError: Any other spawn failure
    """
    args = list(args)
    try:
        proc = await asyncio.create_subprocess_exec(
            cmd,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=dict(env) if env is not None else None,
            cwd=cwd,
        )
    except FileNotFoundError as e:
        raise CommandNotFoundError(f"Command not found: {cmd}", cmd, args) from e
    except OSError as e:
        if e.errno == errno.ENOENT:
            raise CommandNotFoundError(f"Command not found: {cmd}", cmd, args) from e
        raise CommandError(f"Failed to start {cmd}: {e}", cmd, args) from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
        raise CommandTimeoutError(
            f"{cmd} timed out after {timeout}s", cmd, args
        ) from None

    result = CommandResult(
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        returncode=proc.returncode if proc.returncode is not None else -1,
    )

    if result.returncode != 0:
        detail = result.stderr.strip()[:200]
        raise CommandFailedError(
            f"{cmd} exited with code {result.returncode}" + (f": {detail}" if detail else ""),
            cmd,
            args,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )

    logger.debug("%s exited 0 (%d bytes stdout)", cmd, len(result.stdout))
    return result
