# python
# app/core/config.py
"""Configuration settings for the ForTen Mentor API.

Uses Pydantic BaseSettings for environment variable management.
"""
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentEnum(str, Enum):
    development = "development"
    testing = "testing"
    staging = "staging"
    production = "production"


class LogLevelEnum(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormatEnum(str, Enum):
    simple = "simple"
    json = "json"


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="ForTen Mentor API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Database Settings =====
    database_url: str | None = Field(default=None, description="Database connection URL")
    test_database_url: str | None = Field(default=None, description="Test database URL")

    # ===== Authentication (Supabase) =====
    supabase_url: str | None = Field(default=None, description="Supabase project URL")
    supabase_jwt_secret: str | None = Field(
        default=None, description="Secret used by Supabase to sign access tokens"
    )
    supabase_jwt_audience: str = Field(
        default="authenticated", description="Expected audience of Supabase access tokens"
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    backfill_admin_token: str | None = Field(
        default=None, description="Shared token required by the backfill endpoint"
    )

    # ===== AI Service (Gemini) =====
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-2.5-flash", description="Gemini model to use")
    gemini_max_tokens: int = Field(default=1024, description="Maximum tokens for Gemini")
    ai_request_timeout: int = Field(default=20, description="AI request timeout in seconds")
    ai_requests_per_minute: int = Field(
        default=15, description="Maximum concurrent Gemini requests per process"
    )
    ai_max_retry_attempts: int = Field(default=3, description="Retries on rate limit / quota")
    ai_retry_backoff_factor: float = Field(default=1.0, description="Exponential backoff multiplier")
    ai_retry_min_wait: int = Field(default=1, description="Minimum retry wait in seconds")
    ai_retry_max_wait: int = Field(default=10, description="Maximum retry wait in seconds")
    meta_temperature: float = Field(default=0.2, description="Temperature for metadata prompts")
    chat_temperature: float = Field(default=0.7, description="Temperature for mentor replies")

    # ===== Session Metadata Pipeline =====
    transcript_window: int = Field(default=16, ge=1, description="Turns sent to the LLM")
    transcript_content_cap: int = Field(
        default=400, ge=1, description="Characters kept per turn in prompts"
    )
    summary_every_n_messages: int = Field(
        default=6, ge=1, description="Re-summarize every N messages"
    )
    summary_idle_seconds_fast: int = Field(
        default=8, ge=0, description="Idle seconds that trigger a summary on the fast path"
    )
    summary_idle_seconds_backfill: int = Field(
        default=60, ge=0, description="Idle seconds that trigger a summary in backfill"
    )
    summary_min_length: int = Field(default=200, ge=1, description="Minimum summary length")
    summary_max_length: int = Field(default=350, ge=1, description="Maximum summary length")
    title_max_length_meta: int = Field(
        default=20, ge=1, description="Title cap for automatic session metadata"
    )
    title_max_length_session: int = Field(
        default=24, ge=1, description="Title cap for the session-title endpoint"
    )
    risk_caution_sticky: bool = Field(
        default=True, description="Keep a stored caution level when a later run says lower"
    )

    # ===== Rate Limiting =====
    chat_rate_limit_max: int = Field(default=20, ge=1, description="Chat requests per window")
    chat_rate_limit_window_sec: int = Field(default=60, ge=1, description="Chat window seconds")
    summary_rate_limit_max: int = Field(
        default=10, ge=1, description="Session metadata requests per window"
    )
    summary_rate_limit_window_sec: int = Field(
        default=60, ge=1, description="Session metadata window seconds"
    )

    # ===== Backfill =====
    backfill_default_limit: int = Field(default=50, ge=1, description="Sessions per backfill run")
    backfill_max_limit: int = Field(default=500, ge=1, description="Upper bound for limit")
    backfill_schedule_hour: int = Field(
        default=3, ge=0, le=23, description="UTC hour of the scheduled backfill"
    )

    # ===== Background Tasks (Celery) =====
    celery_broker_url: str = Field(
        default="redis://localhost:6379/1", description="Celery broker URL"
    )
    celery_result_backend: str = Field(
        default="redis://localhost:6379/2", description="Celery result backend"
    )

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")
    log_format: LogFormatEnum = Field(default=LogFormatEnum.json, description="Log format")

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_development(self) -> bool:
        return self.environment == EnvironmentEnum.development

    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

    @property
    def is_testing(self) -> bool:
        return self.environment == EnvironmentEnum.testing

    @property
    def has_ai_enabled(self) -> bool:
        return bool(self.gemini_api_key)

    # ===== Validation Methods =====
    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if v and isinstance(v, str):
            lv = v.lower()
            if lv in ["dev", "develop"]:
                return "development"
            if lv in ["prod"]:
                return "production"
            return lv
        return v

    @model_validator(mode="after")
    def validate_pipeline_bounds(self):
        if self.summary_min_length > self.summary_max_length:
            raise ValueError("summary_min_length cannot exceed summary_max_length")
        if self.backfill_default_limit > self.backfill_max_limit:
            raise ValueError("backfill_default_limit cannot exceed backfill_max_limit")
        return self


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings():
        errors = []
        if not settings.database_url:
            errors.append("DATABASE_URL is required")
        if not settings.supabase_jwt_secret:
            errors.append("SUPABASE_JWT_SECRET is required")
        if settings.is_production and not settings.gemini_api_key:
            errors.append("GEMINI_API_KEY is required in production")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status() -> dict:
        return {
            "ai_enabled": settings.has_ai_enabled,
            "backfill_endpoint_enabled": bool(settings.backfill_admin_token),
            "risk_caution_sticky": settings.risk_caution_sticky,
            "environment": settings.environment,
        }


def get_config_summary() -> dict:
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "debug": settings.debug,
        "features": ConfigValidator.get_feature_status(),
        "database_configured": bool(settings.database_url),
        "auth_configured": bool(settings.supabase_jwt_secret),
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LogFormatEnum",
]
