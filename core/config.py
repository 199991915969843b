"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for NegoceHub happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  @model_validator(mode="after"): dev mode (DEBUG=true) generates a random
      SECRET_KEY with a warning; production mode refuses to start without one.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. JWT signing relies
  on key entropy.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, catalog/, or client/.
"""

import logging
import secrets
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("negocehub.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'negocehub.db'}"


class ProvisioningFailurePolicy(str, Enum):
    """What SessionManager.register does when the profile insert fails.

    propagate -- raise; the provider identity stays behind without a profile.
    sign_out  -- sign the new identity out first, then raise.
    """

    propagate = "propagate"
    sign_out = "sign_out"


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
    # Empty string is the sentinel for "not configured".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:8081", "http://localhost:19006"])
    allowed_hosts: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1", "*.localhost"])

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # 100 hours, fixed at issuance. Tokens are never refreshed.
    token_expire_seconds: int = 360000
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Identity provider (client session path)
    # ------------------------------------------------------------------

    supabase_url: str = ""
    supabase_anon_key: str = ""
    profiles_table: str = "users"
    provisioning_failure_policy: ProvisioningFailurePolicy = ProvisioningFailurePolicy.propagate

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart.

        Production mode: refuse to start if SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Issued tokens will not survive a restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
