"""Security and correctness checks for CLI executable paths.

Any path, whether typed by a user or reported by a PATH lookup, passes
through these checks before it is executed.
"""

import os
import re
import stat
import sys
from dataclasses import dataclass
from typing import Optional

# Reasons are user-facing; each rule has its own message.
NOT_ABSOLUTE = "CLI path must be absolute"
TRAVERSAL = "CLI path cannot contain directory traversal (.. or .)"
NOT_CANONICAL = "CLI path contains invalid characters or redundant separators"
DOES_NOT_EXIST = "CLI path does not exist"
NOT_A_FILE = "CLI path must point to a file, not a directory"
NOT_EXECUTABLE = "CLI path is not executable"


@dataclass
class PathValidationResult:
    """Result of validating a single path."""
    path: str
    reason: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.reason is None


class CliPathValidator:
    """Validates candidate CLI paths.

    Checks, in order, stopping at the first failure:
    1. Path is absolute
    2. No ``.`` or ``..`` segment
    3. Path equals its normalized form
    4. Path exists and is a regular file
    5. Owner-execute bit is set (not checked on Windows)
    """

    _SEGMENT_SPLIT = re.compile(r"[\\/]")

    def __init__(self, platform: Optional[str] = None):
        self.platform = platform or sys.platform

    def validate(self, cli_path: str) -> Optional[str]:
        """Validate a path.

        Args:
            cli_path: Path to check

        Returns:
            None if valid, otherwise the reason it was rejected
        """
        if not cli_path or not os.path.isabs(cli_path):
            return NOT_ABSOLUTE

        if any(part in (".", "..") for part in self._SEGMENT_SPLIT.split(cli_path)):
            return TRAVERSAL

        if os.path.normpath(cli_path) != cli_path:
            return NOT_CANONICAL

        # POSIX normpath keeps a leading "//"
        if self.platform != "win32" and cli_path.startswith("//"):
            return NOT_CANONICAL

        try:
            st = os.stat(cli_path)
        except FileNotFoundError:
            return DOES_NOT_EXIST
        except (OSError, ValueError) as e:
            return f"Validation error: {e}"

        if not stat.S_ISREG(st.st_mode):
            return NOT_A_FILE

        # Windows has no portable permission bit; the version probe tests it
        if self.platform != "win32" and not st.st_mode & stat.S_IXUSR:
            return NOT_EXECUTABLE

        return None

    def check(self, cli_path: str) -> PathValidationResult:
        """Validate a path and wrap the outcome."""
        return PathValidationResult(path=cli_path, reason=self.validate(cli_path))


def validate_cli_path(cli_path: str) -> Optional[str]:
    """Validate a path for the current platform.

    Returns:
        None if valid, otherwise the reason it was rejected
    """
    return CliPathValidator().validate(cli_path)
