# storefront/core/config.py
"""
Application configuration - single source of truth for all settings.

Django's settings module (storefront.settings) is derived from these values.
"""
import os
import tempfile
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class DatabaseSettings:
    """Database connection configuration."""
    engine: str = field(default_factory=lambda: os.getenv("DB_ENGINE", "django.db.backends.sqlite3"))
    name: str = field(default_factory=lambda: os.getenv("DB_NAME", str(PACKAGE_DIR.parent / "storefront.sqlite3")))
    user: str = field(default_factory=lambda: os.getenv("DB_USER", ""))
    password: str = field(default_factory=lambda: os.getenv("DB_PASSWORD", ""))
    host: str = field(default_factory=lambda: os.getenv("DB_HOST", ""))
    port: str = field(default_factory=lambda: os.getenv("DB_PORT", ""))
    conn_max_age: int = field(default_factory=lambda: int(os.getenv("DB_CONN_MAX_AGE", "0")))
    # SQLite test databases live in a file so the API's worker thread and the
    # test thread see the same committed rows.
    test_name: str = field(default_factory=lambda: os.getenv(
        "DB_TEST_NAME", str(Path(tempfile.gettempdir()) / "storefront_test.sqlite3")
    ))

    def as_django(self) -> dict:
        config = {
            "ENGINE": self.engine,
            "NAME": self.name,
            "USER": self.user,
            "PASSWORD": self.password,
            "HOST": self.host,
            "PORT": self.port,
            "CONN_MAX_AGE": self.conn_max_age,
        }
        if self.engine.endswith("sqlite3"):
            config["TEST"] = {"NAME": self.test_name}
        return config


@dataclass
class CacheSettings:
    """Query-result cache configuration."""
    backend: str = field(default_factory=lambda: os.getenv(
        "CACHE_BACKEND", "django.core.cache.backends.locmem.LocMemCache"
    ))
    location: str = field(default_factory=lambda: os.getenv("CACHE_LOCATION", "storefront"))
    timeout: int = field(default_factory=lambda: int(os.getenv("CACHE_TIMEOUT", "300")))
    key_prefix: str = field(default_factory=lambda: os.getenv("CACHE_KEY_PREFIX", "storefront"))

    def as_django(self) -> dict:
        return {
            "BACKEND": self.backend,
            "LOCATION": self.location,
            "TIMEOUT": self.timeout,
            "KEY_PREFIX": self.key_prefix,
        }


@dataclass
class APISettings:
    """HTTP surface configuration."""
    cors_origins: List[str] = field(default_factory=lambda: (
        ["*"] if os.getenv("CORS_ORIGINS", "*") == "*"
        else [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
    ))
    rate_limit: str = field(default_factory=lambda: os.getenv("RATE_LIMIT", "100/minute"))
    default_page_size: int = 20
    max_page_size: int = 100


@dataclass
class PathSettings:
    """Path configuration."""
    base_dir: Path = field(default_factory=lambda: PACKAGE_DIR.parent)
    sample_dataset: Path = field(default_factory=lambda: Path(
        os.getenv("SAMPLE_DATASET") or str(PACKAGE_DIR / "data" / "sample_shop.json")
    ))


@dataclass
class Settings:
    """Main application settings."""
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    api: APISettings = field(default_factory=APISettings)
    paths: PathSettings = field(default_factory=PathSettings)
    secret_key: str = field(default_factory=lambda: os.getenv(
        "DJANGO_SECRET_KEY", "storefront-insecure-development-key"
    ))
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", 8000)))
    time_zone: str = field(default_factory=lambda: os.getenv("TIME_ZONE", "UTC"))
    low_stock_threshold: int = field(default_factory=lambda: int(os.getenv("LOW_STOCK_THRESHOLD", "10")))
    sql_echo: bool = field(default_factory=lambda: _env_bool("SQL_ECHO"))

    def page_size(self, requested: Optional[int]) -> int:
        """Clamp a requested page size to the configured bounds."""
        if not requested:
            return self.api.default_page_size
        return max(1, min(int(requested), self.api.max_page_size))


# Singleton instance
settings = Settings()
