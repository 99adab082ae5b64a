"""Runtime configuration.

Values can be overridden via:
1. Environment variables with the SHPLAMBERT_ prefix (e.g. SHPLAMBERT_STRICT_PROFILES=true)
2. .env file in the current directory
3. Default values in code
"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .profiles import PROFILES


class Settings(BaseSettings):
    """Reprojection, stream and server settings.

    Attributes:
        default_profile: Preset used when no profile is given or a name is unknown
        strict_profiles: Reject unknown profile names instead of falling back
        epsilon: Convergence tolerance of the iterative latitude solvers (radians)
        max_iterations: Iteration cap of the latitude solvers
        notify_after: Progress callback period in records (0 notifies on every record)
        log_level: Logging level name for the entry point
    """

    model_config = SettingsConfigDict(
        env_prefix="SHPLAMBERT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    default_profile: str = Field(default="LII", description="Fallback projection profile")
    strict_profiles: bool = Field(default=False, description="Fail on unknown profile names")
    epsilon: float = Field(default=1e-11, description="Solver tolerance in radians")
    max_iterations: int = Field(default=100, description="Solver iteration cap")
    notify_after: int = Field(default=0, ge=0, description="Progress notification period")
    log_level: str = Field(default="INFO", description="Logging level")
    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(default=8000, description="Server port")

    @field_validator("default_profile")
    @classmethod
    def validate_default_profile(cls, v: str) -> str:
        if v not in PROFILES:
            raise ValueError(f"default_profile must be one of {sorted(PROFILES)}, got {v!r}")
        return v

    @field_validator("epsilon")
    @classmethod
    def validate_epsilon(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"epsilon must be positive, got {v}")
        return v

    @field_validator("max_iterations")
    @classmethod
    def validate_max_iterations(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_iterations must be at least 1, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level {v!r}")
        return level


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """Configure a plain text root handler for command line and server use."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
