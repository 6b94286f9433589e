import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

DB_TYPES = ("postgres", "sqlite", "memory")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _api_prefix(raw: str) -> str:
    # Leave empty ("") if the gateway strips the prefix before forwarding.
    prefix = raw.strip()
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix.rstrip("/")


@dataclass(frozen=True)
class Settings:
    server_env: str = "PRODUCTION"  # DEVELOPMENT | STAGING | PRODUCTION
    host: str = "127.0.0.1"
    port: int = 8080
    context_timeout: float = 30.0  # seconds

    log_level: str = "info"  # trace, debug, info, warn, error, fatal
    log_type: str = "CMD"  # CMD | FILE
    log_path: str = "storage/logs"
    log_max_age: int = 7  # days

    db_type: str = "postgres"
    db_user: str = "app"
    db_pass: str = "app"
    db_name: str = "appdb"
    db_host: str = "localhost"
    db_port: str = "5432"
    db_schema: str = "storefront"
    database_url: Optional[str] = None

    api_prefix: str = ""
    strict_status_codes: bool = False

    def __post_init__(self):
        if self.db_type not in DB_TYPES:
            raise ValueError(
                f"unknown database type {self.db_type!r}. "
                f"Correct DB_TYPE; allowed values are {', '.join(DB_TYPES)}"
            )

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        if self.db_type == "sqlite":
            return f"sqlite:///{self.db_name}.sqlite3"
        # Use psycopg3; search_path makes unqualified tables resolve to our schema
        options = f"-csearch_path={self.db_schema},public"
        return (
            f"postgresql+psycopg://{self.db_user}:{self.db_pass}@{self.db_host}:{self.db_port}/{self.db_name}"
            f"?options={options}"
        )


def load_settings() -> Settings:
    """Build settings from the process environment."""
    return Settings(
        server_env=os.getenv("SERVER_ENV", "PRODUCTION"),
        host=os.getenv("SERVER_HOST", "127.0.0.1"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        context_timeout=float(os.getenv("SERVER_CONTEXT_TIMEOUT", "30")),
        log_level=os.getenv("LOG_LEVEL", "info"),
        log_type=os.getenv("LOG_TYPE", "CMD").upper(),
        log_path=os.getenv("LOG_PATH", "storage/logs"),
        log_max_age=int(os.getenv("LOG_MAX_AGE", "7")),
        db_type=os.getenv("DB_TYPE", "postgres").strip().lower(),
        db_user=os.getenv("DB_USER", "app"),
        db_pass=os.getenv("DB_PASS", "app"),
        db_name=os.getenv("DB_NAME", "appdb"),
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=os.getenv("DB_PORT", "5432"),
        db_schema=os.getenv("DB_SCHEMA", "storefront"),
        database_url=os.getenv("DATABASE_URL") or None,
        api_prefix=_api_prefix(os.getenv("API_PREFIX", "")),
        strict_status_codes=_env_bool("STRICT_STATUS_CODES"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
