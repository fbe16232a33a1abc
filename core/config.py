"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Identity Core happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. database_url -> DATABASE_URL). Type coercion and validation are
      built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. A misconfigured process refuses to start
      rather than failing on the first request.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("identitycore.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'identity.db'}"

# bcrypt's accepted cost factor range (log2 rounds).
_MIN_BCRYPT_ROUNDS = 4
_MAX_BCRYPT_ROUNDS = 31


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

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
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    # 12 rounds is the bcrypt library default. Tests drop this to 4.
    bcrypt_rounds: int = 12
    # False: an inactive account gets the same "Invalid credentials" answer as
    # an unknown username or a wrong password. True restores the legacy
    # distinct message, which tells an anonymous caller the account exists.
    disclose_inactive_accounts: bool = False

    # ------------------------------------------------------------------
    # Directory listing
    # ------------------------------------------------------------------

    default_page_size: int = 10
    max_page_size: int = 100

    # ------------------------------------------------------------------
    # HTTP boundary
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject settings that would break hashing or pagination at runtime.

        bcrypt.gensalt() raises on a cost factor outside 4..31, so the check
        moves that failure from the first sign-up to process startup.
        """
        if not _MIN_BCRYPT_ROUNDS <= self.bcrypt_rounds <= _MAX_BCRYPT_ROUNDS:
            raise ValueError(f"BCRYPT_ROUNDS must be between {_MIN_BCRYPT_ROUNDS} and {_MAX_BCRYPT_ROUNDS}.")
        if self.default_page_size < 1:
            raise ValueError("DEFAULT_PAGE_SIZE must be a positive integer.")
        if self.max_page_size < self.default_page_size:
            raise ValueError("MAX_PAGE_SIZE must be greater than or equal to DEFAULT_PAGE_SIZE.")
        if not self.debug and self.bcrypt_rounds < 10:
            logger.warning("WARNING: bcrypt cost factor %d is below 10. Do not use in production.", self.bcrypt_rounds)
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings()
    directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
