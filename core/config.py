"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Predix happen here. No module should call
os.getenv() or os.environ.get() directly -- entry points call get_settings()
and hand the resulting object (or values derived from it) to the components
they construct.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Only the
      entry points (api/main.py lifespan, main.py CLI) call it. Routes, the
      migration runner and the token code receive explicit objects.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Implements the DEBUG-conditional JWT_SECRET policy: dev
      mode generates a key with a warning, production mode refuses to start.

Startup preconditions:
  [S1] JWT_SECRET shorter than 32 chars is rejected outright. HS256 signing
       relies on key entropy.
  [S2] Database credentials are checked by sqlalchemy_url(), which the
       lifespan and the migrate CLI call before anything else. A missing
       credential raises ConfigurationError and the process does not start.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, or db/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from core.exceptions import ConfigurationError

logger = logging.getLogger("predix.config")

_DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "db" / "migrations"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. Database credentials are not
    validated here; see sqlalchemy_url().
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
    service_name: str = "predix"
    port: int = 3000
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    jwt_secret: str = ""

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    # A full URL wins over the discrete fields below.
    database_url: str = ""
    db_host: str = ""
    db_port: int = 5432
    db_name: str = ""
    db_user: str = ""
    db_password: str = ""
    # Passed through to libpq. "disable" for local development databases.
    db_sslmode: str = "prefer"
    migrations_dir: Path = _DEFAULT_MIGRATIONS_DIR

    # ------------------------------------------------------------------
    # Identity provider (Privy)
    # ------------------------------------------------------------------

    privy_app_id: str = ""
    # Optional. Without it the wallet lookup is skipped and wallet is null.
    privy_app_secret: str = ""
    privy_api_url: str = "https://auth.privy.io/api/v1"
    privy_timeout_seconds: float = 10.0

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origin_regex: str = r"^https://.*\.vercel\.app$"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    login_rate_limit: str = "10/minute"
    # Peers trusted to set X-Forwarded-For. The service is only reachable
    # through the platform router, so the forwarded client address is what
    # the login rate limit is keyed on.
    forwarded_allow_ips: str = "*"

    @model_validator(mode="after")
    def validate_jwt_secret(self) -> "Settings":
        """Enforce the JWT_SECRET policy [S1].

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Issued session tokens will not survive a restart.

        Production mode: refuse to start if JWT_SECRET is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.jwt_secret:
            if self.debug:
                self.jwt_secret = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated JWT_SECRET. Session tokens will not survive restarts.")
            else:
                raise ValueError(
                    "JWT_SECRET is required in production mode. "
                    "Set JWT_SECRET in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        return self

    def sqlalchemy_url(self) -> URL | str:
        """Return the SQLAlchemy URL for the application database [S2].

        DATABASE_URL wins when set. Hosted Postgres providers hand out
        postgres:// URLs, which SQLAlchemy does not accept, so bare postgres
        schemes are pinned to the psycopg driver. Otherwise the URL is
        assembled from the DB_* fields, all of which except DB_PORT are
        required.

        Raises:
            ConfigurationError: If any required credential is missing.
        """
        if self.database_url:
            for scheme in ("postgres://", "postgresql://"):
                if self.database_url.startswith(scheme):
                    return "postgresql+psycopg://" + self.database_url[len(scheme) :]
            return self.database_url
        missing = [
            name.upper()
            for name, value in (
                ("db_host", self.db_host),
                ("db_name", self.db_name),
                ("db_user", self.db_user),
                ("db_password", self.db_password),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing database configuration: {', '.join(missing)}")
        return URL.create(
            "postgresql+psycopg",
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    Call it from entry points only and pass the result down.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
