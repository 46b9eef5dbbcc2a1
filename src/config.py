"""
DesignDesk Configuration Module - Environment-based configuration for all environments
Supports dev, staging, and production configurations
"""

import os
from typing import List, Optional
from functools import lru_cache

# Load .env file if present
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass  # python-dotenv not installed, rely on environment variables


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Application settings loaded from environment variables"""

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "true").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")
    LOG_MAX_SIZE_MB: int = int(os.getenv("LOG_MAX_SIZE_MB", "100"))
    APP_URL: str = os.getenv("APP_URL", "http://localhost:3000")

    # ==========================================================================
    # FastAPI Settings
    # ==========================================================================
    FASTAPI_HOST: str = os.getenv("FASTAPI_HOST", "0.0.0.0")
    FASTAPI_PORT: int = int(os.getenv("FASTAPI_PORT", "8000"))

    # Shared key forwarded by the upstream auth gateway
    MARKETPLACE_API_KEY: Optional[str] = os.getenv("MARKETPLACE_API_KEY") or None

    # ==========================================================================
    # Database Configuration
    # ==========================================================================
    @property
    def DATABASE_URL(self) -> str:
        """Get database URL with fallback for development"""
        url = os.getenv("DATABASE_URL")
        if url:
            return url
        # Default to SQLite for development
        return "sqlite:///./designdesk.db"

    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "20"))

    # ==========================================================================
    # Redis Configuration
    # ==========================================================================
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_PASSWORD: Optional[str] = os.getenv("REDIS_PASSWORD") or None

    @property
    def REDIS_URL(self) -> str:
        """Construct Redis URL from components"""
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # ==========================================================================
    # Task Assignment Settings
    # ==========================================================================
    ASSIGNMENT_TOP_N: int = int(os.getenv("ASSIGNMENT_TOP_N", "5"))
    TASK_DEFAULT_MAX_REVISIONS: int = int(os.getenv("TASK_DEFAULT_MAX_REVISIONS", "2"))

    # ==========================================================================
    # Notification Settings
    # ==========================================================================
    NOTIFICATION_QUEUE_KEY: str = os.getenv("NOTIFICATION_QUEUE_KEY", "notification_queue")
    NOTIFICATION_POLL_INTERVAL: float = float(os.getenv("NOTIFICATION_POLL_INTERVAL", "1.0"))
    NOTIFICATION_BATCH_SIZE: int = int(os.getenv("NOTIFICATION_BATCH_SIZE", "20"))
    NOTIFICATION_MAX_ATTEMPTS: int = int(os.getenv("NOTIFICATION_MAX_ATTEMPTS", "5"))
    NOTIFICATION_RECONCILE_INTERVAL: int = int(os.getenv("NOTIFICATION_RECONCILE_INTERVAL", "300"))
    NOTIFICATION_ORPHAN_MINUTES: int = int(os.getenv("NOTIFICATION_ORPHAN_MINUTES", "10"))
    NOTIFICATION_TIMEOUT: float = float(os.getenv("NOTIFICATION_TIMEOUT", "10"))

    RESEND_API_KEY: Optional[str] = os.getenv("RESEND_API_KEY") or None
    RESEND_API_URL: str = os.getenv("RESEND_API_URL", "https://api.resend.com")
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "DesignDesk <notifications@designdesk.app>")

    TWILIO_ACCOUNT_SID: Optional[str] = os.getenv("TWILIO_ACCOUNT_SID") or None
    TWILIO_AUTH_TOKEN: Optional[str] = os.getenv("TWILIO_AUTH_TOKEN") or None
    TWILIO_API_URL: str = os.getenv("TWILIO_API_URL", "https://api.twilio.com/2010-04-01")
    TWILIO_WHATSAPP_NUMBER: Optional[str] = os.getenv("TWILIO_WHATSAPP_NUMBER") or None

    @property
    def ADMIN_EMAILS(self) -> List[str]:
        return _split_csv(os.getenv("ADMIN_EMAILS"))

    ADMIN_WHATSAPP_NUMBER: Optional[str] = os.getenv("ADMIN_WHATSAPP_NUMBER") or None

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def is_testing(self) -> bool:
        return self.ENVIRONMENT.lower() == "testing"

    def get_log_config(self) -> dict:
        """Get structured logging configuration"""
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "correlation": {
                    "()": "src.middleware.correlation.CorrelationIdFilter"
                }
            },
            "formatters": {
                "default": {
                    "format": "%(asctime)s [%(levelname)s] [corr-id:%(correlation_id)s] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S"
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["correlation"],
                    "stream": "ext://sys.stdout"
                },
                "file": {
                    "class": "logging.handlers.RotatingFileHandler",
                    "formatter": "default",
                    "filters": ["correlation"],
                    "filename": os.path.join(self.LOG_DIR, "designdesk.log"),
                    "maxBytes": self.LOG_MAX_SIZE_MB * 1024 * 1024,
                    "backupCount": 5
                }
            },
            "loggers": {
                "designdesk": {
                    "level": self.LOG_LEVEL,
                    "handlers": ["console", "file"],
                    "propagate": False
                }
            },
            "root": {
                "level": "WARNING",
                "handlers": ["console"]
            }
        }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
