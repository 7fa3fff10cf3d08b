"""Unit tests for configuration schema."""

import pytest
from unittest.mock import patch
from pydantic import ValidationError

from pagecache.config import CacheClient, CacheConfig, get_config, reload_config

pytestmark = pytest.mark.unit


class TestCacheConfig:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)  # no stray .env
        config = CacheConfig()

        assert config.cache_client is CacheClient.REDIS
        assert config.redis_url == "redis://localhost:6379"
        assert config.cache_duration == 300_000
        assert config.cache_prefix == ""
        assert config.log_level == "INFO"

    def test_explicit_values(self):
        config = CacheConfig(cache_client="disk", cache_dir="/tmp/pages", cache_duration=1500, cache_prefix="site:")

        assert config.cache_client is CacheClient.DISK
        assert config.cache_dir == "/tmp/pages"
        assert config.cache_duration == 1500
        assert config.cache_prefix == "site:"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PAGECACHE_CACHE_CLIENT", "memory")
        monkeypatch.setenv("PAGECACHE_CACHE_DURATION", "2500")
        monkeypatch.setenv("PAGECACHE_CACHE_PREFIX", "env:")

        config = CacheConfig()

        assert config.cache_client is CacheClient.MEMORY
        assert config.cache_duration == 2500
        assert config.cache_prefix == "env:"

    @pytest.mark.parametrize("duration", [0, -1])
    def test_duration_must_be_positive(self, duration):
        with pytest.raises(ValidationError):
            CacheConfig(cache_duration=duration)

    def test_unknown_client_rejected(self):
        with pytest.raises(ValidationError):
            CacheConfig(cache_client="memcached")

    def test_redis_url_scheme_checked_for_redis(self):
        with pytest.raises(ValidationError):
            CacheConfig(cache_client="redis", redis_url="http://localhost:6379")

        # Ignored when redis is not the primary backend
        config = CacheConfig(cache_client="disk", redis_url="http://localhost:6379")
        assert config.cache_client is CacheClient.DISK

    def test_redis_url_with_credentials(self):
        config = CacheConfig(redis_url="redis://:secret@redis:6379/2")
        assert config.redis_url == "redis://:secret@redis:6379/2"

    def test_log_level_normalized(self):
        assert CacheConfig(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            CacheConfig(log_level="LOUD")

    def test_frozen(self):
        config = CacheConfig()
        with pytest.raises(ValidationError):
            config.cache_duration = 10


class TestValidateConfiguration:
    def test_clean_configuration(self):
        config = CacheConfig(cache_client="disk", cache_duration=60_000)
        assert config.validate_configuration() == []

    def test_warnings(self):
        config = CacheConfig(cache_client="redis", cache_prefix="", cache_duration=10)
        issues = config.validate_configuration()
        assert any("CACHE_DURATION" in issue for issue in issues)
        assert any("CACHE_PREFIX" in issue for issue in issues)

    def test_memory_warning(self):
        issues = CacheConfig(cache_client="memory").validate_configuration()
        assert any("Memory backend" in issue for issue in issues)

    def test_log_configuration_masks_password(self):
        config = CacheConfig(redis_url="redis://:secret@redis:6379")
        with patch("pagecache.utils.logger.logger") as mock_logger:
            mock_logger.isEnabledFor.return_value = True
            config.log_configuration()

        message = mock_logger.log.call_args[0][1]
        assert "secret" not in message
        assert "redis://:<password>@redis:6379" in message


class TestGlobalConfig:
    def test_get_config_is_cached(self, monkeypatch):
        monkeypatch.setattr("pagecache.config._config", None)
        assert get_config() is get_config()

    def test_reload_config_rebuilds(self, monkeypatch):
        monkeypatch.setattr("pagecache.config._config", None)
        first = get_config()
        monkeypatch.setenv("PAGECACHE_CACHE_DURATION", "4321")
        second = reload_config()

        assert second is not first
        assert second.cache_duration == 4321
        assert get_config() is second
