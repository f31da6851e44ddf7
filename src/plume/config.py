"""Application configuration loaded from environment variables or a .env file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

__all__ = ["Settings", "settings"]

STORE_BACKENDS = ("memory", "database")


def load_env_file(path: Path) -> None:
    """Load key-value pairs from ``path`` into ``os.environ`` if present."""
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


# Load environment variables from a .env file in the project root.
load_env_file(Path(__file__).resolve().parents[2] / ".env")


@dataclass
class Settings:
    """Application settings."""

    log_level: str = ""
    store: str = ""
    database_url: str = ""
    database_echo: bool = False

    # Pagination applied by the database store
    paginate_default: int = 5
    paginate_max: int = 10

    host: str = ""
    port: int = 3030

    def __post_init__(self):
        """Load values from environment variables after initialization."""
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.store = os.getenv("PLUME_STORE", "memory").lower()
        self.database_url = os.getenv(
            "DATABASE_URL", "sqlite+aiosqlite:///./messages.db"
        )
        self.database_echo = os.getenv("DATABASE_ECHO", "false").lower() == "true"
        self.paginate_default = int(os.getenv("PAGINATE_DEFAULT", "5"))
        self.paginate_max = int(os.getenv("PAGINATE_MAX", "10"))
        self.host = os.getenv("PLUME_HOST", "0.0.0.0")
        self.port = int(os.getenv("PLUME_PORT", "3030"))

    def validate_store_config(self) -> None:
        """Validate store configuration and raise helpful errors.

        Raises:
            ValueError: If the store backend is unknown, the page sizes are
                inconsistent, or the database URL cannot be used with an
                async engine.
        """
        if self.store not in STORE_BACKENDS:
            raise ValueError(
                f"Unknown store backend {self.store!r}. Set PLUME_STORE to one of: "
                f"{', '.join(STORE_BACKENDS)}."
            )

        if self.paginate_default <= 0 or self.paginate_max <= 0:
            raise ValueError(
                "Invalid pagination settings: PAGINATE_DEFAULT and PAGINATE_MAX "
                "must be positive integers."
            )

        if self.paginate_default > self.paginate_max:
            raise ValueError(
                f"Invalid pagination settings: default page size "
                f"{self.paginate_default} exceeds maximum {self.paginate_max}."
            )

        if self.store == "database":
            if not self.database_url or not self.database_url.strip():
                raise ValueError(
                    "Database URL not configured. Please set the DATABASE_URL "
                    "environment variable or add it to your .env file."
                )
            # The driver part of the URL must name an async driver
            scheme = self.database_url.split("://", 1)[0]
            if "+" not in scheme:
                raise ValueError(
                    f"Database URL scheme {scheme!r} has no async driver. "
                    "Use e.g. 'sqlite+aiosqlite://' or 'postgresql+asyncpg://'."
                )


settings = Settings()

# Configure root logging according to the resolved settings.
logging.basicConfig(level=settings.log_level)
