"""Library configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

FailurePolicy = Literal["first_error", "collect_all"]

DEFAULT_MAX_CONCURRENCY = 4
FAILURE_POLICIES: tuple[str, ...] = ("first_error", "collect_all")


class Settings(BaseSettings):
    """Settings loaded from QUEUEPOOL_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="QUEUEPOOL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ----- Application -----
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = False
    # None means: JSON everywhere except development
    log_json: bool | None = None

    # ----- Processor defaults -----
    default_max_concurrency: int = Field(default=DEFAULT_MAX_CONCURRENCY, ge=1)
    rebalance_workers: bool = False
    failure_policy: FailurePolicy = "first_error"

    # ----- Observability -----
    metrics_enabled: bool = True

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def use_json_logs(self) -> bool:
        if self.log_json is None:
            return not self.is_development
        return self.log_json

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Refuse debug output in production."""
        if self.is_production and self.app_debug:
            raise ValueError("QUEUEPOOL_APP_DEBUG must be false in production!")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
