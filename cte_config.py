"""
Centralized configuration using Pydantic Settings.
Loads from environment variables and .env file.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable support.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    APP_NAME: str = "cte-xml-extractor"
    APP_VERSION: str = "0.3.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_MAX_UPLOAD_SIZE_MB: int = 5
    BATCH_MAX_FILES: int = 50
    DEFAULT_TENANT_ID: str = "default"

    # Security
    ALLOWED_EXTENSIONS: list[str] = [".xml"]

    # Extraction
    MAX_TREE_DEPTH: int = 64
    ACCESS_KEY_PREFIX: str = "CTe"

    @property
    def max_upload_size_bytes(self) -> int:
        """Convert MB to bytes."""
        return self.API_MAX_UPLOAD_SIZE_MB * 1024 * 1024


# Global settings instance
settings = Settings()
