"""Tests for the CLI resolution orchestrator."""

import os
from unittest.mock import patch

import pytest

from cli_env_resolver.cli_utils import ExecutableResolver
from cli_env_resolver.errors import CommandFailedError
from cli_env_resolver.models import HealthStatus, ResolverConfig
from cli_env_resolver.resolver import (
    NOT_FOUND_MESSAGE,
    VERSION_UNKNOWN_MESSAGE,
    CliResolver,
)
from cli_env_resolver.validators import CliPathValidator
from cli_env_resolver.version import VersionProber
from cli_env_resolver import validators

from conftest import FakeRunner, StaticEnvProvider, make_executable, posix_only

pytestmark = posix_only


class CliWorld:
    """Fake PATH lookup and version output around a single runner."""

    def __init__(self, on_path=None, versions=None):
        self.on_path = on_path
        self.versions = versions or {}
        self.runner = FakeRunner(self.handle)

    def handle(self, cmd, args):
        if cmd == "which":
            if self.on_path is None:
                return CommandFailedError("not found", cmd, args, returncode=1)
            return f"{self.on_path}\n"
        if args == ["--version"]:
            outcome = self.versions.get(cmd, "2.1.5")
            return outcome
        return AssertionError(f"unexpected command {cmd} {args}")


def make_resolver(world: CliWorld, env_provider=None, config=None) -> CliResolver:
    config = config or ResolverConfig()
    return CliResolver(
        config,
        env_provider=env_provider or StaticEnvProvider(),
        executable_resolver=ExecutableResolver(config, runner=world.runner, platform="linux"),
        validator=CliPathValidator(platform="linux"),
        prober=VersionProber(config, runner=world.runner),
    )


class TestPrecedence:
    @pytest.mark.asyncio
    async def test_configured_path_wins_over_path(self, tmp_path):
        configured = make_executable(tmp_path / "custom" / "claude")
        on_path = make_executable(tmp_path / "bin" / "claude")
        world = CliWorld(on_path=on_path)
        resolver = make_resolver(world)

        result = await resolver.resolve(configured_path=str(configured))

        assert result.status == HealthStatus.OK
        assert result.path == str(configured)
        assert world.runner.calls_to("which") == []

    @pytest.mark.asyncio
    async def test_invalid_configured_path_falls_through_to_path(self, tmp_path):
        on_path = make_executable(tmp_path / "bin" / "claude")
        world = CliWorld(on_path=on_path)
        resolver = make_resolver(world)

        result = await resolver.resolve(configured_path=str(tmp_path / "nope" / "claude"))

        assert result.status == HealthStatus.OK
        assert result.path == os.path.abspath(str(on_path))
        assert result.error is None

    @pytest.mark.asyncio
    async def test_relative_configured_path_falls_through(self, tmp_path):
        on_path = make_executable(tmp_path / "bin" / "claude")
        resolver = make_resolver(CliWorld(on_path=on_path))

        result = await resolver.resolve(configured_path="claude")
        assert result.status == HealthStatus.OK


class TestMissing:
    @pytest.mark.asyncio
    async def test_nothing_configured_nothing_on_path(self):
        resolver = make_resolver(CliWorld())

        result = await resolver.resolve()

        assert result.status == HealthStatus.MISSING
        assert result.path is None
        assert result.error == NOT_FOUND_MESSAGE
        assert "configured path" not in result.error.lower()

    @pytest.mark.asyncio
    async def test_bad_configured_path_and_nothing_on_path(self, tmp_path):
        resolver = make_resolver(CliWorld())

        result = await resolver.resolve(configured_path=str(tmp_path / "claude"))

        assert result.status == HealthStatus.MISSING
        assert "Configured path invalid" in result.error
        assert validators.DOES_NOT_EXIST in result.error
        assert "not found in PATH" in result.error


class TestValidationAndVersion:
    @pytest.mark.asyncio
    async def test_path_result_failing_validation(self, tmp_path):
        plain = tmp_path / "bin" / "claude"
        plain.parent.mkdir()
        plain.write_text("data")
        plain.chmod(0o644)
        world = CliWorld(on_path=plain)
        resolver = make_resolver(world)

        result = await resolver.resolve()

        assert result.status == HealthStatus.VALIDATION_ERROR
        assert result.error == validators.NOT_EXECUTABLE
        assert result.path == str(plain)
        assert [c for c in world.runner.calls if c["args"] == ["--version"]] == []

    @pytest.mark.asyncio
    async def test_version_probe_failure(self, cli_binary):
        world = CliWorld(versions={str(cli_binary): CommandFailedError("boom", str(cli_binary), returncode=2)})
        resolver = make_resolver(world)

        result = await resolver.resolve(configured_path=str(cli_binary))

        assert result.status == HealthStatus.VERSION_INCOMPATIBLE
        assert result.version is None
        assert result.error == VERSION_UNKNOWN_MESSAGE

    @pytest.mark.asyncio
    async def test_version_below_minimum(self, cli_binary):
        world = CliWorld(versions={str(cli_binary): "1.9.9"})
        resolver = make_resolver(world)

        result = await resolver.resolve(configured_path=str(cli_binary))

        assert result.status == HealthStatus.VERSION_INCOMPATIBLE
        assert result.version.version == "1.9.9"
        assert "1.9.9" in result.error
        assert "2.0.0" in result.error

    @pytest.mark.asyncio
    async def test_probe_uses_derived_environment(self, cli_binary):
        world = CliWorld()
        provider = StaticEnvProvider({"PATH": "/from/shell", "HOME": "/home/dev"})
        resolver = make_resolver(world, env_provider=provider)

        await resolver.resolve(configured_path=str(cli_binary))

        probe = world.runner.calls_to(str(cli_binary))[0]
        assert probe["env"]["PATH"] == "/from/shell"

    @pytest.mark.asyncio
    async def test_env_provider_failure_uses_host_env(self, cli_binary):
        world = CliWorld()
        provider = StaticEnvProvider(error=RuntimeError("shell exploded"))
        resolver = make_resolver(world, env_provider=provider)

        result = await resolver.resolve(configured_path=str(cli_binary))

        assert result.status == HealthStatus.OK
        probe = world.runner.calls_to(str(cli_binary))[0]
        assert probe["env"].get("PATH") == os.environ.get("PATH")

    @pytest.mark.asyncio
    async def test_host_env_fallback_strips_sensitive_keys(self, cli_binary):
        world = CliWorld()
        provider = StaticEnvProvider(error=RuntimeError("shell exploded"))
        resolver = make_resolver(world, env_provider=provider)

        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "sk-secret", "OPENAI_API_KEY": "sk-other"}):
            result = await resolver.resolve(configured_path=str(cli_binary))

        assert result.status == HealthStatus.OK
        probe_env = world.runner.calls_to(str(cli_binary))[0]["env"]
        assert "ANTHROPIC_API_KEY" not in probe_env
        assert "OPENAI_API_KEY" not in probe_env


class TestCaching:
    @pytest.mark.asyncio
    async def test_cached_result_returned_verbatim(self, cli_binary):
        world = CliWorld()
        provider = StaticEnvProvider()
        resolver = make_resolver(world, env_provider=provider)

        first = await resolver.resolve(configured_path=str(cli_binary))
        second = await resolver.resolve(configured_path=str(cli_binary))

        assert first == second
        assert provider.calls == 1
        assert len(world.runner.calls) == 1

    @pytest.mark.asyncio
    async def test_failures_are_cached(self):
        world = CliWorld()
        resolver = make_resolver(world)

        await resolver.resolve()
        result = await resolver.resolve()

        assert result.status == HealthStatus.MISSING
        assert len(world.runner.calls_to("which")) == 1

    @pytest.mark.asyncio
    async def test_skip_cache_re_resolves(self, cli_binary):
        world = CliWorld()
        resolver = make_resolver(world)

        await resolver.resolve(configured_path=str(cli_binary))
        await resolver.resolve(configured_path=str(cli_binary), skip_cache=True)

        assert len(world.runner.calls) == 2

    @pytest.mark.asyncio
    async def test_clear_cache(self, cli_binary):
        world = CliWorld()
        resolver = make_resolver(world)

        await resolver.resolve()
        assert resolver.cached_path is None

        resolver.clear_cache()
        result = await resolver.resolve(configured_path=str(cli_binary))

        assert result.status == HealthStatus.OK
        assert resolver.cached_path == str(cli_binary)
        assert resolver.cached_version.version == "2.1.5"

    @pytest.mark.asyncio
    async def test_mutating_result_does_not_touch_cache(self, cli_binary):
        resolver = make_resolver(CliWorld())

        result = await resolver.resolve(configured_path=str(cli_binary))
        result.path = "/tampered"

        assert resolver.cached_path == str(cli_binary)

    def test_accessors_empty_before_resolution(self):
        resolver = make_resolver(CliWorld())
        assert resolver.cached_path is None
        assert resolver.cached_version is None


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_returns_status_only(self, cli_binary):
        resolver = make_resolver(CliWorld())

        assert await resolver.health_check(configured_path=str(cli_binary)) == HealthStatus.OK

    @pytest.mark.asyncio
    async def test_missing(self):
        resolver = make_resolver(CliWorld())
        assert await resolver.health_check() == HealthStatus.MISSING
