"""Exceptions raised when running external commands."""

from typing import Optional, Sequence


class CommandError(Exception):
    """A child process could not be run to a successful exit."""

    def __init__(
        self,
        message: str,
        cmd: str,
        args: Sequence[str] = (),
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message)
        self.cmd = cmd
        self.args_list = list(args)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    @property
    def command_line(self) -> str:
        return " ".join([self.cmd, *self.args_list])


class CommandNotFoundError(CommandError, FileNotFoundError):
    """The executable does not exist (ENOENT on spawn)."""


class CommandTimeoutError(CommandError, TimeoutError):
    """The child exceeded its timeout and was killed."""


class CommandFailedError(CommandError):
    """The child exited with a non-zero status."""
