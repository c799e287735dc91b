"""Configuration management using Pydantic BaseSettings.

All settings are read from ``CACHE_*`` environment variables (or a ``.env``
file) and validated on load.
"""
import tempfile
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class CacheSettings(BaseSettings):
    """Cache facade and driver configuration."""

    # Facade
    dir: str = Field(".cache", description="Cache directory used by file drivers and removed on clear")
    driver: str = Field("filesystem", description="Driver name")
    enabled: bool = Field(False, description="Enable cache reads and writes")
    ttl_minutes: int = Field(7, ge=0, le=525600, description="Default TTL in minutes (0 = never expires)")
    route_file: Optional[str] = Field(None, description="Route cache file removed on clear")

    # Drivers
    max_memory_size: int = Field(1000, ge=1, le=1000000, description="Max entries for the array driver")
    shared_dir: str = Field(
        str(Path(tempfile.gettempdir()) / "cachegate-shared"),
        description="Directory backing the apcu driver's shared store",
    )
    memcache_host: str = Field("localhost", description="Memcache server host")
    memcache_port: int = Field(11211, ge=1, le=65535, description="Memcache server port")
    memcached_servers: str = Field("", description="Comma-separated memcached servers (empty = bare client)")
    redis_url: str = Field("redis://localhost:6379/0", description="Redis URL used by the predis driver")
    key_prefix: str = Field("cachegate:", description="Key prefix for network drivers")

    # Logging
    log_level: str = Field("INFO", description="Logging level")

    model_config = {
        "env_prefix": "CACHE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

    @field_validator('driver')
    @classmethod
    def validate_driver(cls, v):
        from cachegate.drivers import DriverName

        name = (v or "").strip().lower() or DriverName.FILESYSTEM.value
        valid = [d.value for d in DriverName]
        if name not in valid:
            raise ValueError(f'Invalid driver: {v}. Valid options: {valid}')
        return name

    @field_validator('log_level')
    @classmethod
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Invalid log level: {v}. Valid options: {valid_levels}')
        return v.upper()

    def get_memcached_servers(self) -> List[str]:
        """Parse the comma-separated memcached server list."""
        return [s.strip() for s in self.memcached_servers.split(",") if s.strip()]

    def validate_configuration(self) -> List[str]:
        """Validate the configuration and return any issues."""
        issues = []

        if not self.dir.strip():
            issues.append("CACHE_DIR must not be empty")

        if self.route_file and Path(self.route_file).is_dir():
            issues.append("CACHE_ROUTE_FILE points to a directory")

        if self.driver == "predis" and not self.redis_url.startswith(("redis://", "rediss://", "unix://")):
            issues.append("CACHE_REDIS_URL must be a valid Redis URL (redis://...)")

        if self.enabled and self.driver == "void":
            issues.append("CACHE_ENABLED=true with the void driver stores nothing")

        return issues

    def log_configuration(self) -> None:
        """Log the current configuration (sanitized)."""
        from cachegate.utils.logger import log_info

        log_info("Cache configuration loaded",
                 cache_dir=self.dir,
                 driver=self.driver,
                 enabled=self.enabled,
                 ttl_minutes=self.ttl_minutes,
                 route_file=self.route_file,
                 redis_url=self.redis_url,
                 log_level=self.log_level)


# Global settings instance (lazy loading)
_settings = None


def get_settings() -> CacheSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = CacheSettings()
    return _settings


def reload_settings() -> CacheSettings:
    """Reload settings from environment variables."""
    global _settings
    _settings = CacheSettings()
    return _settings
