"""Configuration management using Pydantic BaseSettings.

A single ``CacheConfig`` is built once per process (``get_config``) and is
frozen afterwards. Values come from ``PAGECACHE_*`` environment variables or
a ``.env`` file.
"""
from enum import Enum
from typing import List
from urllib.parse import urlparse

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheClient(str, Enum):
    """Backend kinds that can be selected as the primary cache store."""

    REDIS = "redis"
    DISK = "disk"
    MEMORY = "memory"


REDIS_URL_SCHEMES = ("redis", "rediss", "unix")


class CacheConfig(BaseSettings):
    """Process-wide cache settings."""

    # Backend selection
    cache_client: CacheClient = Field(CacheClient.REDIS, description="Primary cache backend: redis, disk, memory")

    # Redis backend
    redis_url: str = Field("redis://localhost:6379", description="Redis connection URL")
    redis_socket_timeout: float = Field(5.0, gt=0, description="Redis socket timeout in seconds")
    redis_health_check_interval: float = Field(5.0, gt=0, description="Seconds between Redis liveness pings")

    # Disk backend
    cache_dir: str = Field(".page_cache", description="Directory used by the disk backend")

    # Cache policy
    cache_duration: int = Field(5 * 60 * 1000, gt=0, description="Entry TTL in milliseconds")
    cache_prefix: str = Field("", description="Prefix prepended to every derived key")

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    log_format: str = Field("%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="Log format")

    model_config = SettingsConfigDict(
        env_prefix="PAGECACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator('log_level')
    @classmethod
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Invalid log level: {v}. Valid options: {valid_levels}')
        return v.upper()

    @model_validator(mode='after')
    def validate_redis_url(self):
        if self.cache_client is CacheClient.REDIS:
            scheme = urlparse(self.redis_url).scheme
            if scheme not in REDIS_URL_SCHEMES:
                raise ValueError(
                    f'redis_url must use one of {REDIS_URL_SCHEMES}, got "{self.redis_url}"'
                )
        return self

    def validate_configuration(self) -> List[str]:
        """Return soft warnings about settings that are valid but suspicious."""
        issues = []

        if self.cache_duration < 1000:
            issues.append("PAGECACHE_CACHE_DURATION is below one second, most reads will be stale")

        if self.cache_client is CacheClient.REDIS and not self.cache_prefix:
            issues.append("PAGECACHE_CACHE_PREFIX is empty, keys are not isolated from other users of this Redis")

        if self.cache_client is CacheClient.MEMORY:
            issues.append("Memory backend selected, cached pages are lost when the process exits")

        return issues

    def log_configuration(self) -> None:
        """Log the current configuration (sanitized)."""
        from pagecache.utils.logger import log_info

        log_info("Configuration loaded",
                 cache_client=self.cache_client.value,
                 redis_url=self.redis_url,
                 cache_dir=self.cache_dir,
                 cache_duration=self.cache_duration,
                 cache_prefix=self.cache_prefix,
                 log_level=self.log_level)


# Global configuration instance (lazy loading)
_config = None


def get_config() -> CacheConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = CacheConfig()
    return _config


def reload_config() -> CacheConfig:
    """Reload configuration from environment variables."""
    global _config
    _config = CacheConfig()
    return _config
