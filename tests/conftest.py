"""Shared fakes for resolver tests."""

import os
import stat
from pathlib import Path
from typing import Callable, Optional

import pytest

from cli_env_resolver.models import CommandResult


class FakeRunner:
    """Stands in for run_command; records calls and answers from a handler.

    The handler receives (cmd, args) and returns a CommandResult, a stdout
    string, or an exception instance to raise.
    """

    def __init__(self, handler: Callable[[str, list[str]], object]):
        self.handler = handler
        self.calls: list[dict] = []

    async def __call__(self, cmd, args=(), *, env=None, cwd=None, timeout=None):
        args = list(args)
        self.calls.append({
            "cmd": cmd,
            "args": args,
            "env": dict(env) if env is not None else None,
            "timeout": timeout,
        })
        outcome = self.handler(cmd, args)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, str):
            return CommandResult(stdout=outcome)
        return outcome

    def calls_to(self, cmd: str) -> list[dict]:
        return [c for c in self.calls if c["cmd"] == cmd]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticEnvProvider:
    """Environment source returning a fixed mapping."""

    def __init__(self, env: Optional[dict] = None, error: Optional[Exception] = None):
        self.env = env if env is not None else {"PATH": "/usr/bin:/bin", "HOME": "/home/test"}
        self.error = error
        self.calls = 0

    async def get_environment(self) -> dict:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return dict(self.env)

    def clear_cache(self) -> None:
        pass


def make_executable(path: Path, content: str = "#!/bin/sh\necho 2.1.5\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cli_binary(tmp_path):
    """An executable regular file standing in for the CLI."""
    return make_executable(tmp_path / "bin" / "claude")


posix_only = pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits and shells")
