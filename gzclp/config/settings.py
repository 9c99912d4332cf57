import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

HEVY_MAX_PAGE_SIZE = 10


def get_database_url() -> str:
    """Get database URL, using an absolute path for the default SQLite file."""
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "gzclp.db"
    db_url = f"sqlite:///{db_path.resolve()}"
    logger.debug(f"Using local SQLite database: {db_url}")
    return db_url


class Settings(BaseSettings):
    hevy_api_key: str = Field(default="", validation_alias="HEVY_API_KEY")
    hevy_base_url: str = Field(default="https://api.hevyapp.com/v1", validation_alias="HEVY_BASE_URL")
    hevy_timeout_seconds: float = Field(default=30.0, gt=0, validation_alias="HEVY_TIMEOUT_SECONDS")
    hevy_page_size: int = Field(default=HEVY_MAX_PAGE_SIZE, ge=1, validation_alias="HEVY_PAGE_SIZE")
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    log_rotation: str = Field(default="5 MB", validation_alias="LOG_ROTATION")
    log_retention: str = Field(default="14 days", validation_alias="LOG_RETENTION")
    sync_max_pages: int = Field(
        default=5,
        ge=1,
        validation_alias="SYNC_MAX_PAGES",
        description="Workout pages fetched per sync cycle",
    )
    history_max_entries: int = Field(
        default=200,
        ge=1,
        validation_alias="HISTORY_MAX_ENTRIES",
        description="History entries kept per progression key",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("hevy_page_size")
    @classmethod
    def validate_page_size(cls, value: int) -> int:
        """Hevy rejects page sizes above 10."""
        if value > HEVY_MAX_PAGE_SIZE:
            logger.warning(f"HEVY_PAGE_SIZE={value} exceeds the Hevy maximum, using {HEVY_MAX_PAGE_SIZE}")
            return HEVY_MAX_PAGE_SIZE
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
