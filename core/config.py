"""
core/config.py -- Settings for the ratings service, read with pydantic-settings.

Every environment variable the service understands is a field of Settings.
Other modules never read os.environ; they call get_settings(), which builds
Settings on first use and hands out the same cached instance afterwards.

Values come from the process environment first, then from an optional .env
file in the working directory. Field names are the variable names in lower
case (SECRET_KEY -> secret_key); list fields are given as JSON.

Startup policy (validate_secrets):
  DEBUG=true   a missing SECRET_KEY or ADMIN_PASSWORD is generated and logged
  otherwise    a missing SECRET_KEY stops the process
  always       a SECRET_KEY under 32 characters stops the process, since every
               access and refresh token is signed with it

Layer rule: core/ is the kernel. This module may not import from api/, auth/
or ratings/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("ratingsapp.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'ratingsapp.db'}"


class Settings(BaseSettings):
    """Every setting has a default, so tests can build Settings() from a bare
    environment. Only validate_secrets() can refuse to start.
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
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Default super-admin account (principal id 1)
    # ------------------------------------------------------------------

    admin_email: str = "admin@admin.com"
    admin_password: str = ""

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # bcrypt work factor. Tests lower it through BCRYPT_ROUNDS to keep the
    # suite fast; bcrypt itself refuses values below 4.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    token_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    # List values are read from the environment as JSON, e.g.
    # ALLOWED_HOSTS='["ratings.example.com"]'
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Fill in or reject the signing key and the super-admin password.

        A generated SECRET_KEY changes on every restart, which logs out every
        principal; only DEBUG allows it. ADMIN_PASSWORD is used once, when
        principal 1 is first seeded, so a missing one is generated in both
        modes and only printed with DEBUG.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("SECRET_KEY not set; using a generated key. Issued tokens die with this process.")
            else:
                raise ValueError("SECRET_KEY must be set unless DEBUG=true (tokens are signed with it).")
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if not self.admin_password:
            self.admin_password = secrets.token_urlsafe(24)
            if self.debug:
                logger.warning("ADMIN_PASSWORD not set; generated one for %s: %s", self.admin_email, self.admin_password)
            else:
                logger.warning("ADMIN_PASSWORD not set; a freshly seeded %s will not be able to log in.", self.admin_email)
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings.

    auth/tokens.py and api/main.py read it at import time, so tests must set
    the environment before importing them (see tests/conftest.py).
    """
    return Settings()
