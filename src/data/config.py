"""
Review Analysis Configuration Module
====================================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Environment Variables:
    DATABASE_HOST: PostgreSQL host (default: localhost)
    DATABASE_PORT: PostgreSQL port (default: 5432)
    DATABASE_NAME: Database name (default: review_analysis)
    DATABASE_USER: Database user (default: review_app)
    DATABASE_PASSWORD: Database password (required)
    DATABASE_POOL_MIN: Minimum pool connections (default: 2)
    DATABASE_POOL_MAX: Maximum pool connections (default: 10)

    OPENAI_API_KEY: OpenAI key for embeddings and analyses (GPT_API_KEY accepted)
    OPENAI_EMBEDDING_MODEL: Embedding model (default: text-embedding-3-small)
    OPENAI_ANALYSIS_MODEL: Chat model for analyses (default: gpt-4o)
    ANALYSIS_MAX_TOKENS: Max completion tokens per analysis (default: 4000)
    ANALYSIS_TEMPERATURE: Sampling temperature (default: 0.1)

    ANALYSIS_RATE_LIMIT_SECONDS: Delay between analysis calls (default: 15)
    COMPETITOR_CONCURRENCY: Competitors analysed in parallel (default: 2)
    PROCESSING_LOCK_STALE_MINUTES: Age after which a run lock is considered dead (default: 120)
    COMPETITOR_SAMPLE_SIZE: Competitor reviews for head-to-head analysis (default: 50)
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv


# Load environment variables from .env file if present
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get environment variable with optional default and required validation.

    Args:
        key: Environment variable name
        default: Default value if not set
        required: If True, raises ValueError when not set

    Returns:
        Environment variable value or default

    Raises:
        ValueError: If required=True and variable is not set
    """
    value = os.getenv(key, default)
    if required and value is None:
        raise ValueError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_float(key: str, default: float) -> float:
    """Get environment variable as float."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be a float, got: {value}")


def get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


@dataclass
class DatabaseConfig:
    """PostgreSQL database configuration."""

    host: str = field(default_factory=lambda: get_env("DATABASE_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("DATABASE_PORT", 5432))
    name: str = field(default_factory=lambda: get_env("DATABASE_NAME", "review_analysis"))
    user: str = field(default_factory=lambda: get_env("DATABASE_USER", "review_app"))
    password: str = field(default_factory=lambda: get_env("DATABASE_PASSWORD", required=True))

    # Connection pool settings
    pool_min_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MIN", 2))
    pool_max_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MAX", 10))

    connect_timeout: int = field(default_factory=lambda: get_env_int("DATABASE_CONNECT_TIMEOUT", 10))

    # SSL mode: disable, allow, prefer, require, verify-ca, verify-full
    ssl_mode: str = field(default_factory=lambda: get_env("DATABASE_SSL_MODE", "prefer"))

    @property
    def connection_dict(self) -> dict:
        """Connection parameters as dictionary for psycopg2."""
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.name,
            "user": self.user,
            "password": self.password,
            "sslmode": self.ssl_mode,
            "connect_timeout": self.connect_timeout,
        }

    def __post_init__(self):
        """Validate configuration."""
        if not self.password:
            raise ValueError("DATABASE_PASSWORD is required")
        if self.pool_min_size > self.pool_max_size:
            raise ValueError("pool_min_size cannot exceed pool_max_size")


@dataclass
class OpenAIConfig:
    """OpenAI configuration (embeddings + analysis completions)."""

    api_key: Optional[str] = field(
        default_factory=lambda: get_env("OPENAI_API_KEY") or get_env("GPT_API_KEY")
    )
    embedding_model: str = field(
        default_factory=lambda: get_env("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")
    )
    analysis_model: str = field(default_factory=lambda: get_env("OPENAI_ANALYSIS_MODEL", "gpt-4o"))
    max_tokens: int = field(default_factory=lambda: get_env_int("ANALYSIS_MAX_TOKENS", 4000))
    temperature: float = field(default_factory=lambda: get_env_float("ANALYSIS_TEMPERATURE", 0.1))

    def __post_init__(self):
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("temperature must be between 0 and 2")


@dataclass
class OrchestratorConfig:
    """Analysis orchestration settings."""

    # Fixed pause between two analysis-service calls (external rate limit)
    rate_limit_seconds: float = field(
        default_factory=lambda: get_env_float("ANALYSIS_RATE_LIMIT_SECONDS", 15.0)
    )
    competitor_concurrency: int = field(
        default_factory=lambda: get_env_int("COMPETITOR_CONCURRENCY", 2)
    )
    lock_stale_minutes: int = field(
        default_factory=lambda: get_env_int("PROCESSING_LOCK_STALE_MINUTES", 120)
    )
    competitor_sample_size: int = field(
        default_factory=lambda: get_env_int("COMPETITOR_SAMPLE_SIZE", 50)
    )

    def __post_init__(self):
        if self.rate_limit_seconds < 0:
            raise ValueError("rate_limit_seconds cannot be negative")
        if self.competitor_concurrency <= 0:
            raise ValueError("competitor_concurrency must be positive")
        if self.lock_stale_minutes <= 0:
            raise ValueError("lock_stale_minutes must be positive")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE"))

    # Structured logging
    json_logs: bool = field(default_factory=lambda: get_env_bool("LOG_JSON", False))


@dataclass
class Settings:
    """Main application settings container."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    app_name: str = "review-analysis"
    app_version: str = "1.0.0"
    environment: str = field(default_factory=lambda: get_env("ENVIRONMENT", "development"))

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() in ("production", "prod")


def load_settings() -> Settings:
    """
    Load and validate all application settings.

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    return Settings()


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
