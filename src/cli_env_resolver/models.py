"""Data models for CLI resolution and environment derivation.

Uses Pydantic for validation so configuration files and resolution results
share one typed representation.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class HealthStatus(str, Enum):
    """Outcome of one CLI resolution attempt."""
    OK = "OK"                                      # Resolved, executable, version-compatible
    MISSING = "MISSING"                            # Not configured and not on PATH
    VERSION_INCOMPATIBLE = "VERSION_INCOMPATIBLE"  # Too old, or version could not be read
    PERMISSION_ERROR = "PERMISSION_ERROR"          # Reserved, see DESIGN.md
    VALIDATION_ERROR = "VALIDATION_ERROR"          # Failed a security/type check


class VersionInfo(BaseModel):
    """Version parsed from the CLI's version output.

    Immutable once computed; compatibility is fixed at parse time.
    """
    model_config = ConfigDict(frozen=True)

    version: str = Field(..., description="Normalized version string, e.g. '2.1.5'")
    major: int
    minor: int
    patch: int
    is_compatible: bool = Field(..., description="Whether version meets the minimum")


class ResolvedCli(BaseModel):
    """Result of resolving the CLI executable."""
    path: Optional[str] = Field(default=None, description="Absolute path to the executable")
    version: Optional[VersionInfo] = None
    status: HealthStatus
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == HealthStatus.OK


class CachedEnvironment(BaseModel):
    """Last derived environment, replaced wholesale on refresh."""
    model_config = ConfigDict(frozen=True)

    env: dict[str, str]
    timestamp: float
    is_fallback: bool = False

    def is_fresh(self, now: float, ttl: float, fallback_ttl: float) -> bool:
        """Check whether this entry is still within its TTL."""
        limit = fallback_ttl if self.is_fallback else ttl
        return now - self.timestamp < limit


class CommandResult(BaseModel):
    """Captured output of a finished child process."""
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0


class ResolverConfig(BaseModel):
    """Configuration for environment derivation and CLI resolution."""
    # Executable
    executable_name: str = Field(
        default="claude",
        description="Base name of the CLI executable"
    )
    windows_extensions: list[str] = Field(
        default_factory=lambda: [".exe", ".cmd", ""],
        description="Extensions tried in order on Windows ('' = bare name)"
    )
    minimum_version: str = Field(
        default="2.0.0",
        description="Minimum supported CLI version (major.minor.patch)"
    )
    version_flag: str = Field(default="--version")

    # Timeouts (seconds)
    shell_timeout: float = Field(default=5.0, gt=0, description="Login shell env dump")
    lookup_timeout: float = Field(default=5.0, gt=0, description="Per-candidate which/where")
    version_timeout: float = Field(default=5.0, gt=0, description="Version probe")
    command_timeout: float = Field(default=10.0, gt=0, description="Generic command execution")

    # Environment cache
    env_cache_ttl: float = Field(
        default=60.0,
        gt=0,
        description="TTL for environments derived from a real login shell"
    )
    fallback_env_cache_ttl: float = Field(
        default=10.0,
        gt=0,
        description="TTL for fallback environments (retry shell sooner)"
    )

    # Keys that would interfere with the CLI's own auth resolution
    stripped_env_keys: list[str] = Field(
        default_factory=lambda: [
            "ANTHROPIC_API_KEY",
            "OPENAI_API_KEY",
            "CLAUDE_CODE_USE_BEDROCK",
            "CLAUDE_CODE_USE_VERTEX",
        ]
    )

    # Platforms where GUI launches start with a minimal PATH
    self_heal_platforms: list[str] = Field(default_factory=lambda: ["darwin"])

    entrypoint: str = Field(
        default="sdk-py",
        description="Value for CLAUDE_CODE_ENTRYPOINT in invocation environments"
    )

    @field_validator("minimum_version")
    @classmethod
    def _check_minimum_version(cls, value: str) -> str:
        parts = value.split(".")
        if len(parts) != 3 or not all(p.isdigit() for p in parts):
            raise ValueError(f"minimum_version must be major.minor.patch, got {value!r}")
        return value

    @model_validator(mode="after")
    def _check_ttls(self) -> "ResolverConfig":
        if self.fallback_env_cache_ttl >= self.env_cache_ttl:
            raise ValueError("fallback_env_cache_ttl must be shorter than env_cache_ttl")
        return self

    def candidate_names(self, platform: str) -> list[str]:
        """Executable names to look up, in preference order."""
        if platform == "win32":
            return [f"{self.executable_name}{ext}" for ext in self.windows_extensions]
        return [self.executable_name]

    @classmethod
    def load(cls, path: Path | str) -> "ResolverConfig":
        """Load configuration from a JSON file."""
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))
