"""
Environment-based configuration.

Every field can be overridden with a ``BANK_``-prefixed environment
variable (``BANK_DATABASE_URL``, ``BANK_PORT``, ...) or a ``.env`` file.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """mini-bank service configuration"""

    # Database
    database_url: str = "sqlite:///./bank.db"
    database_echo: bool = False

    # HTTP
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Security
    bcrypt_rounds: int = 8
    # Money routes are open unless this is switched on
    require_token_for_ledger: bool = False

    model_config = SettingsConfigDict(
        env_prefix="BANK_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
