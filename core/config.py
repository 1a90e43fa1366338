"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for BikeHub Accounts happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. app_secret -> APP_SECRET). Type coercion and validation are built in.

  Explicit hand-off: the Settings object is read once by the API lifespan and
      its values are passed into TokenCodec / RegistrationService constructors.
      auth/ never calls get_settings() itself.

Security notes:
  APP_SECRET is required. A missing key is a hard startup failure: every
      issued token is signed with it, and a silently generated key would
      invalidate all sessions on restart.

  APP_SECRET shorter than 32 chars is rejected outright. HS256 signing relies
      on key entropy -- a short key weakens every token.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or accounts/.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("bikehub.config")

MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `app_secret` reads from APP_SECRET, `app_port` reads from APP_PORT.
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
    # Empty string is the sentinel for "not configured"; the validator below
    # refuses to start in that case, so callers never see "".
    app_secret: str = ""
    app_port: int = 3001
    database_url: str = "sqlite:///./bikehub_accounts.db"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # 0 = tokens carry no exp claim and stay valid until APP_SECRET rotates.
    token_expire_seconds: int = 0
    # Registration gate for POST /adminaccount/register.
    admin_registration_code: str = "BikeHub2023"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_app_secret(self) -> "Settings":
        """Refuse to start without a usable signing secret."""
        if not self.app_secret:
            raise ValueError("APP_SECRET is required. Set APP_SECRET in your environment or .env file.")
        if len(self.app_secret) < MIN_SECRET_LENGTH:
            raise ValueError(f"APP_SECRET must be at least {MIN_SECRET_LENGTH} characters.")
        if self.token_expire_seconds < 0:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be 0 (no expiry) or a positive number of seconds.")
        if not self.admin_registration_code:
            raise ValueError("ADMIN_REGISTRATION_CODE must not be empty.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    settings = Settings()
    logger.debug("Settings loaded (port=%d, token_expire_seconds=%d)", settings.app_port, settings.token_expire_seconds)
    return settings
