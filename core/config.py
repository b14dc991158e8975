"""
core/config.py -- Centralized service configuration via pydantic-settings.

All environment variable reads for the SSO service happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. token_ttl -> TOKEN_TTL). Type coercion and validation are built in.
      TOKEN_TTL accepts an ISO 8601 duration ("PT1H") or "HH:MM:SS".

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment.

Security notes:
  bcrypt_rounds is the registration work factor. Every doubling of cost
  doubles the attacker's brute-force time, so values below 10 are only
  accepted in debug mode (tests run with 4).

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from datetime import timedelta
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sso.config")


class Settings(BaseSettings):
    """Service settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    storage_url: str = "sqlite:///./storage/sso.db"
    migrations_path: str = "./migrations"
    migrations_table: str = "schema_migrations"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_ttl: timedelta = timedelta(hours=1)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    # Deadline applied to every HTTP request's RequestContext.
    request_timeout_seconds: float = 5.0

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject settings that would make every issued token or request unusable.

        A zero or negative TTL issues tokens that are already expired. A zero
        request timeout cancels every request before it reaches storage.
        A low bcrypt cost outside debug mode is refused outright.
        """
        if self.token_ttl <= timedelta(0):
            raise ValueError("TOKEN_TTL must be positive.")
        if self.request_timeout_seconds <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive.")
        if self.bcrypt_rounds < 10:
            if not self.debug:
                raise ValueError("BCRYPT_ROUNDS below 10 is only allowed with DEBUG=true.")
            logger.warning("WARNING: Using bcrypt cost %d. Do not use this in production.", self.bcrypt_rounds)
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the service Settings singleton.

    All modules should call get_settings() rather than constructing Settings()
    directly. In tests: call get_settings.cache_clear() between test cases if
    you need to inject different environment variables.
    """
    return Settings()
