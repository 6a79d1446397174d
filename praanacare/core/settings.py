"""
PraanaCare Health API - Application Settings

Settings management using Pydantic Settings.
Validates environment variables and provides type-safe configuration.
"""

from typing import List, Optional, Union
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Secrets (JWT secret, OpenAI key) should only ever come from the environment.
    """

    # Application Metadata
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    ENVIRONMENT: str = Field(default="production", description="Environment name (development, production or test)")
    DEBUG: bool = Field(default=False, description="Debug mode")

    # Server Configuration
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=5000, description="Server port")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Log format: json or text")

    # CORS
    CORS_ORIGINS: Union[str, List[str]] = Field(
        default=["http://localhost:5173"],
        description="Allowed CORS origins"
    )

    # Database
    DATABASE_URL: str = Field(
        default="sqlite:///./praanacare.db",
        description="SQLAlchemy database URL"
    )

    # Authentication
    JWT_SECRET: str = Field(default="change_this_secret", description="Token signing secret")
    JWT_ALGORITHM: str = Field(default="HS256", description="Token signing algorithm")
    JWT_EXPIRE_DAYS: int = Field(default=7, ge=1, description="Token lifetime in days")

    # Generative assistant (optional)
    OPENAI_API_KEY: Optional[str] = Field(
        default=None,
        description="OpenAI API key; the assistant falls back to canned replies without it"
    )
    OPENAI_MODEL: str = Field(default="gpt-3.5-turbo", description="Chat completion model")
    OPENAI_MAX_TOKENS: int = Field(default=500, description="Max tokens per assistant reply")
    OPENAI_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")
    OPENAI_TIMEOUT_SECONDS: float = Field(default=20.0, description="Remote call timeout")

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = Field(default=True, description="Enable per-IP rate limiting")
    RATE_LIMIT_PER_MINUTE: int = Field(
        default=100,
        description="API rate limit per minute"
    )

    # Monitoring
    ENABLE_METRICS: bool = Field(default=True, description="Enable Prometheus metrics")
    ENABLE_AUDIT_LOGGING: bool = Field(default=True, description="Enable audit logging")
    AUDIT_LOG_DIR: str = Field(default="logs", description="Directory for audit trail files")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def assistant_configured(self) -> bool:
        return bool(self.OPENAI_API_KEY)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures settings are loaded once and reused across the application.
    """
    return Settings()
