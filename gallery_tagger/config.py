"""
Configuration management for the gallery AI-tagging service.
"""

from typing import Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with validation."""

    # Database Configuration
    database_url: str = Field(default="sqlite+aiosqlite:///./gallery.db")
    database_echo: bool = Field(default=False)

    # Vision Model Defaults (per-user settings override these)
    ai_default_provider: str = Field(default="OpenAI")
    ai_default_model: str = Field(default="gpt-4o-mini")
    ai_default_endpoint: str = Field(default="https://api.openai.com/v1")
    ai_api_key: Optional[str] = Field(default=None, description="Only used by the --tag-file diagnostic")

    # Tagging Configuration
    max_tags: int = Field(default=3, ge=1)
    suggestion_limit: int = Field(default=5, ge=1)
    vocabulary_personal_limit: int = Field(default=50, ge=0)

    # Timeouts
    model_request_timeout: float = Field(default=60.0, gt=0.0)
    job_timeout: float = Field(default=120.0, gt=0.0, description="Upper bound for one tagging job")
    shutdown_timeout: float = Field(default=10.0, gt=0.0)

    # Logging Configuration
    log_level: str = Field(default="INFO")

    # HTTP surface
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)

    @validator("database_url")
    def validate_database_url(cls, v):
        """The service talks to the database through an async driver."""
        scheme = v.split("://", 1)[0]
        if "+" not in scheme:
            raise ValueError(
                "DATABASE_URL must name an async driver, e.g. sqlite+aiosqlite:// or postgresql+asyncpg://"
            )
        return v

    @validator("ai_default_endpoint")
    def validate_endpoint(cls, v):
        """Ensure the default endpoint is properly formatted."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("AI_DEFAULT_ENDPOINT must start with http:// or https://")
        return v.rstrip("/")

    @validator("log_level")
    def validate_log_level(cls, v):
        """Ensure the log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of: {valid_levels}")
        return v.upper()

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
