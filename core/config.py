"""
Configuration Management Module

This module handles loading, validating, and providing access to gateway
configuration from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Validates all required settings
- Derives versioned cache partition names from a prefix and a version tag
- Converts comma-separated strings to lists (precache manifest, CORS origins)

Usage:
    from core.config import settings

    print(settings.origin_base_url)
    print(settings.static_cache_name)   # "trading-journal-static-v2"
    print(settings.precache_list)       # ["/", "/favicon.png", "/src/main.tsx"]
"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Gateway Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        app_host: Host address for the FastAPI gateway
        app_port: Port number for the FastAPI gateway
        environment: Current environment (development, production)
        debug: Enable debug mode
        log_level: Logging level
        origin_base_url: Journal origin server every network fetch goes to
        request_timeout: Timeout for a single origin request in seconds
        api_prefix: Path prefix of the dynamic, never-cached API namespace
        cache_prefix: Common prefix of all partition names
        cache_version: Version tag; bumping it retires old partitions on activate
        precache_assets: Comma-separated manifest stored at install time
        runtime_cache_max_entries: Size limit of the runtime partition
        cors_origins: Comma-separated list of allowed CORS origins
    """

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(
        default="0.0.0.0",
        description="FastAPI gateway host address"
    )

    app_port: int = Field(
        default=8000,
        description="FastAPI gateway port"
    )

    environment: str = Field(
        default="development",
        description="Application environment (development, production)"
    )

    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # ============================================
    # Origin Server
    # ============================================

    origin_base_url: str = Field(
        default="http://localhost:5000",
        description="Base URL of the trading journal origin server"
    )

    request_timeout: int = Field(
        default=30,
        description="Origin request timeout in seconds"
    )

    api_prefix: str = Field(
        default="/api/",
        description="Path prefix of network-only API requests"
    )

    # ============================================
    # Offline Cache Configuration
    # ============================================

    cache_prefix: str = Field(
        default="trading-journal",
        description="Prefix shared by all cache partition names"
    )

    cache_version: str = Field(
        default="v2",
        description="Cache version tag; partitions of other versions are deleted on activate"
    )

    precache_assets: str = Field(
        default="/,/favicon.png,/src/main.tsx",
        description="Comma-separated list of resources cached at install time"
    )

    runtime_cache_max_entries: int = Field(
        default=50,
        description="Maximum number of entries kept in the runtime partition"
    )

    # ============================================
    # CORS Configuration
    # ============================================

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    # ============================================
    # Pydantic Settings Configuration
    # ============================================

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    # ============================================
    # Derived Properties
    # ============================================

    @property
    def static_cache_name(self) -> str:
        """
        Name of the partition filled once at install time.

        Example:
            >>> settings.static_cache_name
            'trading-journal-static-v2'
        """
        return f"{self.cache_prefix}-static-{self.cache_version}"

    @property
    def runtime_cache_name(self) -> str:
        """
        Name of the partition filled opportunistically while serving requests.

        Example:
            >>> settings.runtime_cache_name
            'trading-journal-runtime-v2'
        """
        return f"{self.cache_prefix}-runtime-{self.cache_version}"

    @property
    def precache_list(self) -> List[str]:
        """
        Convert the comma-separated precache manifest to a list of paths.

        Example:
            >>> settings.precache_list
            ['/', '/favicon.png', '/src/main.tsx']
        """
        return [p.strip() for p in self.precache_assets.split(",") if p.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Convert comma-separated CORS origins string to a list.

        Example:
            >>> settings.cors_origins_list
            ['http://localhost:3000', 'http://localhost:5173']
        """
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# ============================================
# Global Settings Instance
# ============================================

settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration() -> None:
    """
    Validate critical configuration settings on gateway startup.

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # logging.py imports config.py, so the logger is imported lazily here
    from core.logging import logger

    if not settings.origin_base_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid ORIGIN_BASE_URL: '{settings.origin_base_url}'. "
            f"Must start with http:// or https://"
        )

    if not (settings.api_prefix.startswith("/") and settings.api_prefix.endswith("/")):
        raise ValueError(
            f"Invalid API_PREFIX: '{settings.api_prefix}'. "
            f"Must start and end with '/' (e.g. /api/)"
        )

    if not settings.precache_list:
        raise ValueError("PRECACHE_ASSETS must contain at least one path")

    for path in settings.precache_list:
        if not path.startswith("/"):
            raise ValueError(f"Precache entry '{path}' must be an origin-relative path starting with '/'")

    if settings.runtime_cache_max_entries < 1:
        raise ValueError(
            f"Invalid RUNTIME_CACHE_MAX_ENTRIES: {settings.runtime_cache_max_entries}. Must be at least 1"
        )

    if not (1 <= settings.app_port <= 65535):
        raise ValueError(f"Invalid port number: {settings.app_port}. Must be between 1 and 65535")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if settings.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{settings.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Origin: {settings.origin_base_url}")
    logger.info(f"Cache partitions: {settings.static_cache_name}, {settings.runtime_cache_name}")
    logger.info(f"Precache manifest: {', '.join(settings.precache_list)}")
    logger.info(f"Server: {settings.app_host}:{settings.app_port}")
    logger.info(f"Log level: {settings.log_level.upper()}")
