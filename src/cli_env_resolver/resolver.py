"""CLI resolution orchestrator.

Resolution order:
1. User-configured path (if supplied and valid)
2. PATH lookup via ``which``/``where`` in the user's shell environment

The winning path is validated, then its version is checked against the
minimum. Every outcome, failures included, is cached until explicitly
cleared (e.g. when the configured path changes).
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .cli_utils import ExecutableResolver
from .models import HealthStatus, ResolvedCli, ResolverConfig, VersionInfo
from .protocols import EnvironmentSource
from .shell_env import (
    ShellEnvironmentProvider,
    get_default_provider,
    host_environment,
    strip_sensitive_keys,
)
from .validators import CliPathValidator
from .version import VersionProber

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = (
    "Claude CLI not found in PATH. Install it or configure a custom path in settings."
)
VERSION_UNKNOWN_MESSAGE = (
    "Failed to determine Claude CLI version. CLI may be corrupted or incompatible."
)


@dataclass(frozen=True)
class ResolutionCacheEntry:
    """A cached resolution with the time it was produced."""
    result: ResolvedCli
    timestamp: float


class CliResolver:
    """Resolves, validates and version-checks the CLI executable.

    Collaborators are injectable so tests can replace the environment
    source, PATH lookup, validator and version probe.
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        env_provider: Optional[EnvironmentSource] = None,
        executable_resolver: Optional[ExecutableResolver] = None,
        validator: Optional[CliPathValidator] = None,
        prober: Optional[VersionProber] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the resolver.

        Args:
            config: Resolver configuration
            env_provider: Source of the user's shell environment
            executable_resolver: PATH lookup (default built from config)
            validator: Path validator
            prober: Version prober (default built from config)
            clock: Time source for cache timestamps
        """
        self.config = config or ResolverConfig()
        self.env_provider = env_provider or ShellEnvironmentProvider(self.config)
        self.executable_resolver = executable_resolver or ExecutableResolver(self.config)
        self.validator = validator or CliPathValidator()
        self.prober = prober or VersionProber(self.config)
        self.clock = clock

        self._cache: Optional[ResolutionCacheEntry] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        """Forget the last resolution (call when the configured path changes)."""
        with self._lock:
            self._cache = None
        logger.info("Resolution cache cleared")

    @property
    def cache_entry(self) -> Optional[ResolutionCacheEntry]:
        with self._lock:
            return self._cache

    @property
    def cached_path(self) -> Optional[str]:
        """Last resolved path without re-resolving."""
        entry = self.cache_entry
        return entry.result.path if entry else None

    @property
    def cached_version(self) -> Optional[VersionInfo]:
        """Last resolved version without re-resolving."""
        entry = self.cache_entry
        return entry.result.version if entry else None

    def _store(self, result: ResolvedCli) -> ResolvedCli:
        with self._lock:
            self._cache = ResolutionCacheEntry(result=result.model_copy(), timestamp=self.clock())
        return result

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def _environment(self) -> dict[str, str]:
        try:
            return await self.env_provider.get_environment()
        except Exception as e:
            logger.warning("Failed to get shell environment, using host environment: %s", e)
            env = host_environment(os.environ)
            strip_sensitive_keys(env, self.config.stripped_env_keys)
            return env

    async def resolve(
        self,
        configured_path: Optional[str] = None,
        skip_cache: bool = False,
    ) -> ResolvedCli:
        """Resolve the CLI executable.

        Args:
            configured_path: Optional user-configured absolute path
            skip_cache: Force re-resolution even if a result is cached

        Returns:
            ResolvedCli with path, version, status and error
        """
        if not skip_cache:
            entry = self.cache_entry
            if entry is not None:
                logger.debug("Using cached resolution")
                return entry.result.model_copy()

        logger.info("Resolving CLI...")
        env = await self._environment()

        resolved_path: Optional[str] = None
        configured_error: Optional[str] = None
        validated = False

        if configured_path:
            configured_error = self.validator.validate(configured_path)
            if configured_error is None:
                resolved_path = os.path.abspath(configured_path)
                validated = True
                logger.info("Using configured path: %s", resolved_path)
            else:
                logger.warning("Configured path %s rejected: %s", configured_path, configured_error)

        if resolved_path is None:
            resolved_path = await self.executable_resolver.resolve_from_path(env)
            if resolved_path:
                logger.info("Resolved from PATH: %s", resolved_path)

        if resolved_path is None:
            if configured_path:
                error = f"Configured path invalid: {configured_error}. Also not found in PATH."
            else:
                error = NOT_FOUND_MESSAGE
            return self._store(ResolvedCli(status=HealthStatus.MISSING, error=error))

        if not validated:
            reason = self.validator.validate(resolved_path)
            if reason is not None:
                return self._store(ResolvedCli(
                    path=resolved_path,
                    status=HealthStatus.VALIDATION_ERROR,
                    error=reason,
                ))

        version = await self.prober.probe(resolved_path, env)
        if version is None:
            return self._store(ResolvedCli(
                path=resolved_path,
                status=HealthStatus.VERSION_INCOMPATIBLE,
                error=VERSION_UNKNOWN_MESSAGE,
            ))

        if not version.is_compatible:
            return self._store(ResolvedCli(
                path=resolved_path,
                version=version,
                status=HealthStatus.VERSION_INCOMPATIBLE,
                error=(
                    f"Claude CLI version {version.version} is below minimum required "
                    f"version {self.config.minimum_version}. Please upgrade."
                ),
            ))

        logger.info("Resolved Claude CLI %s at %s", version.version, resolved_path)
        return self._store(ResolvedCli(
            path=resolved_path,
            version=version,
            status=HealthStatus.OK,
        ))

    async def health_check(
        self,
        configured_path: Optional[str] = None,
        skip_cache: bool = False,
    ) -> HealthStatus:
        """Resolve and return only the health status."""
        result = await self.resolve(configured_path=configured_path, skip_cache=skip_cache)
        return result.status


_default_resolver: Optional[CliResolver] = None


def get_default_resolver() -> CliResolver:
    """Process-wide resolver sharing the default shell environment provider."""
    global _default_resolver
    if _default_resolver is None:
        provider = get_default_provider()
        _default_resolver = CliResolver(provider.config, env_provider=provider)
    return _default_resolver


async def resolve_cli(
    configured_path: Optional[str] = None,
    skip_cache: bool = False,
) -> ResolvedCli:
    return await get_default_resolver().resolve(configured_path, skip_cache)


async def check_cli_health(
    configured_path: Optional[str] = None,
    skip_cache: bool = False,
) -> HealthStatus:
    return await get_default_resolver().health_check(configured_path, skip_cache)


def clear_resolution_cache() -> None:
    get_default_resolver().clear_cache()


def get_cached_cli_path() -> Optional[str]:
    return get_default_resolver().cached_path


def get_cached_cli_version() -> Optional[VersionInfo]:
    return get_default_resolver().cached_version
