"""Application Configuration"""

from typing import List
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Pleeno Jobs"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    API_PREFIX: str = ""

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600

    # Trigger authentication (X-API-Key shared with the cron caller)
    JOB_API_KEY: str

    # Status job
    JOB_MAX_RETRIES: int = 3
    JOB_RETRY_INITIAL_DELAY: float = 1.0
    JOB_MAX_CONCURRENCY: int = 4
    JOB_AGENCY_TIMEOUT_SECONDS: float = 120.0

    # Job monitoring
    JOB_HEALTH_WARNING_HOURS: float = 24.0
    JOB_HEALTH_ALERT_HOURS: float = 25.0

    # CORS
    ALLOWED_ORIGINS: str = "http://localhost:3000"
    ALLOWED_METHODS: str = "GET,POST,OPTIONS"
    ALLOWED_HEADERS: str = "*"

    # Alerting (Slack webhook and Resend email)
    SLACK_WEBHOOK_URL: str = ""
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "Pleeno Alerts <alerts@resend.dev>"
    ALERT_EMAIL_TO: str = ""
    DASHBOARD_URL: str = "https://app.pleeno.com"

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_JOB_TRIGGER: str = "10/minute"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("ALLOWED_ORIGINS")
    @classmethod
    def parse_origins(cls, v: str) -> List[str]:
        """Parse comma-separated origins into a list"""
        return [origin.strip() for origin in v.split(",")]

    @field_validator("ALLOWED_METHODS")
    @classmethod
    def parse_methods(cls, v: str) -> List[str]:
        """Parse comma-separated methods into a list"""
        return [method.strip() for method in v.split(",")]

    @property
    def alert_recipients(self) -> List[str]:
        """Comma-separated ALERT_EMAIL_TO as a list"""
        return [addr.strip() for addr in self.ALERT_EMAIL_TO.split(",") if addr.strip()]

    @property
    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT.lower() == "production"


# Global settings instance
settings = Settings()
