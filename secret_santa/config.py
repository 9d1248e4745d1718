"""
config.py
Environment-driven settings for the Secret Santa service.
"""
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List


def normalize_database_url(url: str) -> str:
    """Hosted Postgres hands out postgres:// URLs, but we need postgresql+asyncpg://"""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite+aiosqlite:///./secret_santa.db"
    sql_echo: bool = False
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    admin_default_password: str = "admin123"
    upload_dir: str = "uploads"
    upload_url_prefix: str = "/uploads"
    max_upload_bytes: int = 5 * 1024 * 1024
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=normalize_database_url(os.getenv("DATABASE_URL", cls.database_url)),
            sql_echo=_env_bool("SQL_ECHO", False),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            admin_default_password=os.getenv("ADMIN_DEFAULT_PASSWORD", cls.admin_default_password),
            upload_dir=os.getenv("UPLOAD_DIR", cls.upload_dir),
            upload_url_prefix=os.getenv("UPLOAD_URL_PREFIX", cls.upload_url_prefix).rstrip("/"),
            max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", cls.max_upload_bytes)),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
