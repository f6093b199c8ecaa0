"""
Resolver configuration.

All options have defaults and may be overridden from the environment via
``ResolverConfig.from_env()``. Explicit keyword arguments always win over
environment values.
"""

import os
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field, ConfigDict


DEFAULT_CACHE_TTL = 24 * 60 * 60  # 24 hours, in seconds

_ENV_VARS = {
    "max_cache_size": "TRAILER_CACHE_MAX_SIZE",
    "cache_ttl": "TRAILER_CACHE_TTL",
    "max_attempts_per_provider": "TRAILER_MAX_ATTEMPTS",
    "backoff_base": "TRAILER_BACKOFF_BASE",
    "request_timeout": "TRAILER_REQUEST_TIMEOUT",
    "enable_logging": "TRAILER_LOGGING_ENABLED",
    "kinocheck_api_key": "KINOCHECK_API_KEY",
    "omdb_api_key": "OMDB_API_KEY",
    "tmdb_api_key": "TMDB_API_KEY",
}


class ResolverConfig(BaseModel):
    """Recognized options for the trailer resolver."""
    max_cache_size: int = Field(100, description="Maximum cache entries", ge=1)
    cache_ttl: float = Field(DEFAULT_CACHE_TTL, description="Cache TTL in seconds", gt=0)
    max_attempts_per_provider: int = Field(3, description="Attempts per network step", ge=1)
    backoff_base: float = Field(1.0, description="Backoff base delay in seconds", ge=0)
    request_timeout: Optional[float] = Field(
        None, description="Per-request timeout in seconds (provider default when unset)", gt=0
    )
    enable_logging: bool = Field(True, description="Emit diagnostic log events")
    kinocheck_api_key: Optional[str] = Field(None, description="KinoCheck API key", repr=False)
    omdb_api_key: Optional[str] = Field(None, description="OMDb API key", repr=False)
    tmdb_api_key: Optional[str] = Field(None, description="TMDB API read token", repr=False)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_env(cls, **overrides: Any) -> "ResolverConfig":
        """
        Build a config from environment variables.

        Empty variables are ignored. Pydantic coerces the strings, so
        ``TRAILER_LOGGING_ENABLED=0`` disables logging.
        """
        values: Dict[str, Any] = {}
        for field_name, env_var in _ENV_VARS.items():
            raw = os.getenv(env_var)
            if raw is not None and raw != "":
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
