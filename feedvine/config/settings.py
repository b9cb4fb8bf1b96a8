"""
FeedVine Configuration System
=============================

Simple configuration management with environment variables and Pydantic models.
Environment variables override Field defaults with clear precedence.
"""

import os
from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class AIProvider(str, Enum):
    """Available classifier providers."""
    ANTHROPIC = "anthropic"
    GROQ = "groq"
    OPENAI = "openai"


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FetchSettings(BaseModel):
    """Feed retrieval configuration."""
    user_agent: str = Field(default="RSS-Aggregator/1.0", description="User-Agent sent with every feed request")
    accept: str = Field(
        default="application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
        description="Accept header sent with every feed request"
    )
    request_timeout: Optional[int] = Field(
        default=None, ge=1, le=600,
        description="Total seconds allowed per fetch; unset keeps the transport default"
    )

    @field_validator('user_agent')
    @classmethod
    def validate_user_agent(cls, v):
        """User agent must identify the aggregator."""
        if not v or not v.strip():
            raise ValueError("user_agent must not be empty")
        return v.strip()


class DatabaseSettings(BaseModel):
    """Database configuration."""
    path: str = Field(default="data/feedvine.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")


class AISettings(BaseModel):
    """Classifier provider configuration."""
    provider: AIProvider = Field(default=AIProvider.ANTHROPIC, description="Classifier provider")

    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    groq_api_key: Optional[str] = Field(default=None, description="Groq API key")
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")

    anthropic_model: str = Field(default="claude-3-5-haiku-20241022", description="Anthropic model")
    groq_model: str = Field(default="llama-3.1-8b-instant", description="Groq model")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model")

    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="AI temperature setting")
    max_tokens: int = Field(default=20, ge=1, le=200, description="Maximum tokens per classification reply")

    def get_api_key(self, provider: Optional[AIProvider] = None) -> Optional[str]:
        """Get API key for the specified (or configured) provider."""
        provider = provider or self.provider
        if provider == AIProvider.ANTHROPIC:
            return self.anthropic_api_key
        elif provider == AIProvider.GROQ:
            return self.groq_api_key
        elif provider == AIProvider.OPENAI:
            return self.openai_api_key
        return None

    def get_model(self, provider: Optional[AIProvider] = None) -> str:
        """Get model name for the specified (or configured) provider."""
        provider = provider or self.provider
        if provider == AIProvider.GROQ:
            return self.groq_model
        elif provider == AIProvider.OPENAI:
            return self.openai_model
        return self.anthropic_model

    def has_credentials(self) -> bool:
        """Check if an API key is available for the configured provider."""
        return bool(self.get_api_key())


class ServerSettings(BaseModel):
    """HTTP service configuration."""
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")


class MonitoringSettings(BaseModel):
    """External run monitoring."""
    heartbeat_url: Optional[str] = Field(default=None, description="Cron monitor URL pinged after each run")
    heartbeat_timeout: int = Field(default=10, ge=1, le=120, description="Heartbeat request timeout in seconds")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/feedvine.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class FeedVineSettings(BaseSettings):
    """Main application settings."""

    fetch: FetchSettings = Field(default_factory=FetchSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    ai: AISettings = Field(default_factory=AISettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Application metadata
    app_name: str = Field(default="FeedVine", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "FEEDVINE_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration.

        A missing classifier key is not an error: the categorizer degrades to
        ``Uncategorized`` in that case.
        """
        errors = []

        try:
            db_path = Path(self.database.path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Invalid database path: {e}")

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        heartbeat = self.monitoring.heartbeat_url
        if heartbeat and not heartbeat.startswith(("http://", "https://")):
            errors.append("Heartbeat URL must be an http(s) URL")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def is_production_mode(self) -> bool:
        """Check if running in production mode."""
        return not self.debug and os.getenv("ENV", "development").lower() == "production"

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> FeedVineSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        # Precedence: environment variables, then .env values, then Field defaults
        settings = FeedVineSettings()
        settings.validate_configuration()
        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        ) from e


# Global settings instance
_settings: Optional[FeedVineSettings] = None


def get_settings(reload: bool = False) -> FeedVineSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
