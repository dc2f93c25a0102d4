"""Runtime configuration read from the environment.

``load_settings`` loads a ``.env`` file from the working directory first,
so values can live there instead of in the shell profile. The app calls it
from its lifespan; tests build ``Settings`` directly.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field


def _split_csv(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


class Settings(BaseModel):
    db_path: str = Field(default_factory=lambda: os.getenv("MPTREE_DB_PATH", "mptree.db"))
    table: str = Field(default_factory=lambda: os.getenv("MPTREE_TABLE", "nodes"))
    log_level: str = Field(default_factory=lambda: os.getenv("MPTREE_LOG_LEVEL", "INFO"))
    busy_timeout: int = Field(
        default_factory=lambda: int(os.getenv("MPTREE_BUSY_TIMEOUT", "5000"))
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: _split_csv(
            os.getenv("MPTREE_CORS_ORIGINS", "http://localhost:5173")
        )
    )
    # Attribute columns created on the table at startup, name -> SQL type.
    columns: dict[str, str] = Field(default_factory=lambda: {"name": "TEXT"})


def load_settings(env_file: str | None = ".env") -> Settings:
    """Load ``.env`` (if present) into the environment, then build Settings."""
    if env_file:
        load_dotenv(env_file)
    return Settings()
