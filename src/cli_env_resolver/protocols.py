"""Protocol definitions for dependency injection.

These protocols define the seams between components, enabling:
- Fake command runners in tests (no real child processes)
- Swapping the environment source handed to the resolver
"""

from typing import Mapping, Optional, Protocol, Sequence, runtime_checkable

from .models import CommandResult


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol for running an executable once and capturing its output.

    Implementations raise a ``CommandError`` subclass on spawn failure,
    timeout or non-zero exit.
    """

    async def __call__(
        self,
        cmd: str,
        args: Sequence[str] = (),
        *,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Run ``cmd`` with ``args`` and return captured output."""
        ...


@runtime_checkable
class EnvironmentSource(Protocol):
    """Protocol for anything that can hand out a derived environment."""

    async def get_environment(self) -> dict[str, str]:
        """Return a copy of the current environment map."""
        ...

    def clear_cache(self) -> None:
        """Discard any cached environment."""
        ...
