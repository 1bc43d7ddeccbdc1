"""Lifecycle configuration using Pydantic Settings."""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings loaded from LEDGER_* environment variables."""

    # Database
    database_url: str = Field(
        default="sqlite:///./ledger.db",
        description="Database connection URL",
    )
    sql_echo: bool = Field(default=False, description="Log emitted SQL")

    # Numbering
    document_number_prefix: str = Field(default="INV", description="Prefix of document numbers")
    folio_prefix: str = Field(default="FOLIO", description="Prefix of external folios")

    # Defaults
    default_currency: str = Field(default="USD", max_length=10)

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    class Config:
        env_prefix = "LEDGER_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging from settings."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
