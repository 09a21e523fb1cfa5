# contentstack_delivery/config/app_config.py
from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from contentstack_delivery.errors import (
    MISSING_API_KEY,
    MISSING_DELIVERY_TOKEN,
    MISSING_ENVIRONMENT,
    MissingArgument,
)
from contentstack_delivery.http.retry import (
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_RETRY_LIMIT,
    DEFAULT_RETRYABLE_STATUS_CODES,
    BackoffStrategy,
    RetryOptions,
)

# Load .env without clobbering variables already set in the process
load_dotenv(find_dotenv(usecwd=True), override=False)

DEFAULT_HOST = "cdn.contentstack.io"
DEFAULT_VERSION = "v3"
REGIONS = ("us", "eu", "azure-na", "azure-eu", "gcp-na")


class StackConfig(BaseSettings):
    """
    Everything needed to talk to one stack. Values come from keyword
    arguments first, then CONTENTSTACK_* environment variables, then .env.
    """

    api_key: Optional[str] = None
    delivery_token: Optional[str] = None
    environment: Optional[str] = None
    branch: Optional[str] = None

    host: str = DEFAULT_HOST
    scheme: str = "https"
    version: str = DEFAULT_VERSION
    region: str = "us"

    timeout: float = 30.0
    max_workers: int = 4
    pool_connections: int = 10
    pool_maxsize: int = 10

    retry_enabled: bool = True
    retry_limit: int = DEFAULT_RETRY_LIMIT
    retry_delay_ms: float = DEFAULT_RETRY_DELAY_MS
    backoff_strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    retryable_status_codes: List[int] = Field(
        default_factory=lambda: list(DEFAULT_RETRYABLE_STATUS_CODES)
    )

    model_config = SettingsConfigDict(
        env_prefix="CONTENTSTACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("region", mode="before")
    @classmethod
    def _check_region(cls, v: Any) -> str:
        region = str(v or "us").strip().lower().replace("_", "-")
        if region not in REGIONS:
            raise ValueError(f"Unknown region {v!r}; expected one of {', '.join(REGIONS)}")
        return region

    @field_validator("timeout")
    @classmethod
    def _check_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("max_workers", "pool_connections", "pool_maxsize")
    @classmethod
    def _check_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @property
    def resolved_host(self) -> str:
        # regional CDNs only apply when the host was left at its default
        if self.region != "us" and self.host == DEFAULT_HOST:
            return f"{self.region}-cdn.contentstack.com"
        return self.host

    @property
    def endpoint(self) -> str:
        return f"{self.scheme}://{self.resolved_host}"

    def validate_credentials(self) -> None:
        if not self.api_key:
            raise MissingArgument(MISSING_API_KEY)
        if not self.delivery_token:
            raise MissingArgument(MISSING_DELIVERY_TOKEN)
        if not self.environment:
            raise MissingArgument(MISSING_ENVIRONMENT)

    def build_retry_options(self) -> RetryOptions:
        return (
            RetryOptions()
            .set_retry_enabled(self.retry_enabled)
            .set_retry_limit(self.retry_limit)
            .set_retry_delay(self.retry_delay_ms)
            .set_backoff_strategy(self.backoff_strategy)
            .set_retryable_status_codes(list(self.retryable_status_codes))
        )


def load_config(path: str) -> StackConfig:
    with open(path, "r", encoding="utf-8") as f:
        data: Dict[str, Any] = json.load(f)
    return StackConfig(**data)


def save_config(config: StackConfig, path: str) -> None:
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.model_dump(mode="json", exclude_none=True), f, indent=2)
