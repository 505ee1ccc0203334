# shared/config.py
import os
from dataclasses import dataclass, field
from datetime import timedelta
from functools import lru_cache
from typing import Tuple

from dotenv import load_dotenv

DEV_SECRET_KEY = "your-secret-key"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./schoolmate.db"
PRODUCTION_ENVS = {"prod", "production"}


def _as_bool(value: str) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def _normalize_database_url(url: str) -> str:
    # Hosted Postgres providers hand out postgres:// URLs; the async engine needs the driver.
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at startup and passed explicitly."""

    environment: str = "development"
    debug: bool = False
    secret_key: str = DEV_SECRET_KEY
    jwt_algorithm: str = "HS256"
    access_token_ttl: timedelta = timedelta(hours=24)
    bcrypt_rounds: int = 12
    database_url: str = DEFAULT_DATABASE_URL
    transaction_timeout_seconds: float = 10.0
    allocation_retry_backoff_seconds: float = 0.05
    cookie_name: str = "auth-token"
    cors_origins: Tuple[str, ...] = field(default_factory=lambda: ("*",))
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in PRODUCTION_ENVS

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            environment=os.getenv("APP_ENV", "development"),
            debug=_as_bool(os.getenv("DEBUG", "")),
            secret_key=os.getenv("SECRET_KEY", DEV_SECRET_KEY),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            access_token_ttl=timedelta(minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
            database_url=_normalize_database_url(os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)),
            transaction_timeout_seconds=float(os.getenv("TRANSACTION_TIMEOUT_SECONDS", "10")),
            allocation_retry_backoff_seconds=float(os.getenv("ALLOCATION_RETRY_BACKOFF_SECONDS", "0.05")),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def ensure_secure(self) -> None:
        """Refuse to start a production process with development-grade secrets."""
        if not self.is_production:
            return
        if not self.secret_key or self.secret_key == DEV_SECRET_KEY:
            raise SystemExit("Refusing to start: SECRET_KEY is unset or a placeholder in production.")
        if self.bcrypt_rounds < 10:
            raise SystemExit("Refusing to start: BCRYPT_ROUNDS must be at least 10 in production.")


@lru_cache()
def get_settings() -> Settings:
    load_dotenv()
    return Settings.from_env()
