"""
Configuration settings for the eShopLite storefront API clients.

Uses Pydantic Settings to load environment variables for backend base URLs,
resilience policy tuning, health checks and logging. `Settings.target()`
derives the explicit per-target configuration objects that each client is
built from, so no policy is ever shared between backends.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Dict

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PRODUCTS_TARGET = "products"
STORES_TARGET = "stores"


class RetryConfig(BaseModel):
    """Retry budget and backoff for one target."""

    max_retries: int = Field(3, ge=0)
    backoff_base: float = Field(2.0, ge=0)
    retry_on_not_found: bool = True

    model_config = {"frozen": True}


class BreakerConfig(BaseModel):
    """Circuit breaker thresholds for one target."""

    failure_threshold: int = Field(5, ge=1)
    break_seconds: float = Field(30.0, ge=0)
    count_not_found: bool = False

    model_config = {"frozen": True}


class TargetConfig(BaseModel):
    """
    Everything needed to build the client stack for a single backend service.
    """

    name: str
    base_url: str
    attempt_timeout_seconds: float = Field(30.0, gt=0)
    health_path: str = "/health"
    health_timeout_seconds: float = Field(5.0, gt=0)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    breaker: BreakerConfig = Field(default_factory=BreakerConfig)

    model_config = {"frozen": True}


class Settings(BaseSettings):
    # Backends
    products_api_url: str = Field("http://localhost:7001", alias="PRODUCTS_API_URL")
    stores_api_url: str = Field("http://localhost:7002", alias="STORES_API_URL")
    request_timeout_seconds: float = Field(30.0, alias="REQUEST_TIMEOUT_SECONDS")

    # Resilience
    retry_max_retries: int = Field(3, alias="RETRY_MAX_RETRIES")
    retry_backoff_base: float = Field(2.0, alias="RETRY_BACKOFF_BASE")
    retry_on_not_found: bool = Field(True, alias="RETRY_ON_NOT_FOUND")
    breaker_failure_threshold: int = Field(5, alias="BREAKER_FAILURE_THRESHOLD")
    breaker_break_seconds: float = Field(30.0, alias="BREAKER_BREAK_SECONDS")
    breaker_count_not_found: bool = Field(False, alias="BREAKER_COUNT_NOT_FOUND")

    # Health checks
    health_path: str = Field("/health", alias="HEALTH_PATH")
    health_timeout_seconds: float = Field(5.0, alias="HEALTH_TIMEOUT_SECONDS")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def base_urls(self) -> Dict[str, str]:
        return {
            PRODUCTS_TARGET: self.products_api_url,
            STORES_TARGET: self.stores_api_url,
        }

    def target(self, name: str) -> TargetConfig:
        """
        Build the configuration object for a named backend target.

        Raises
        ------
        ValueError
            If `name` is not a known target.
        """
        urls = self.base_urls()
        if name not in urls:
            raise ValueError(f"Unknown target '{name}'. Available: {', '.join(sorted(urls))}")
        return TargetConfig(
            name=name,
            base_url=urls[name],
            attempt_timeout_seconds=self.request_timeout_seconds,
            health_path=self.health_path,
            health_timeout_seconds=self.health_timeout_seconds,
            retry=RetryConfig(
                max_retries=self.retry_max_retries,
                backoff_base=self.retry_backoff_base,
                retry_on_not_found=self.retry_on_not_found,
            ),
            breaker=BreakerConfig(
                failure_threshold=self.breaker_failure_threshold,
                break_seconds=self.breaker_break_seconds,
                count_not_found=self.breaker_count_not_found,
            ),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = [
    "PRODUCTS_TARGET",
    "STORES_TARGET",
    "BreakerConfig",
    "RetryConfig",
    "Settings",
    "TargetConfig",
    "get_settings",
]
