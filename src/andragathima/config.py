"""Configuration management for the Andragathima engine using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DATA_DIR = Path(__file__).parent / "data"


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="ANDRAGATHIMA_",
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Log format (console or json)")

    # Configuration tables
    tables_dir: Path | None = Field(
        default=None,
        description="Directory holding the YAML configuration tables (bundled data if unset)",
    )

    @property
    def data_dir(self) -> Path:
        """Get the directory configuration tables are read from."""
        return self.tables_dir if self.tables_dir is not None else PACKAGE_DATA_DIR


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
