from pydantic_settings import BaseSettings
from typing import List, Any
import json


def parse_list_setting(v: Any) -> List[str]:
    """Parse a list setting from a JSON array or a comma-separated string"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [item.strip() for item in v.split(',') if item.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "FMP Eventos"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str
    API_VERSION: str = "v1"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./eventos.db"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    BCRYPT_ROUNDS: int = 12  # 4 for dev (fast), 12 for prod (secure)

    # ==========================================
    # Email
    # ==========================================
    EMAIL_BACKEND: str = "console"  # "smtp" or "console"
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_FROM: str = "noreply@fmp.uabc.edu.mx"
    EMAIL_FROM_NAME: str = "Sistema de Registro y Constancias - FMP UABC"

    # Administrative inboxes
    ADMIN_NOTIFICATION_EMAIL: str = "eventos.fmp@uabc.edu.mx"
    CODES_NOTIFICATION_EMAIL: str = "codigos.fmp@uabc.edu.mx"

    # ==========================================
    # Event workflow
    # ==========================================
    EVENT_TIMEZONE: str = "America/Tijuana"
    MIN_LEAD_DAYS: int = 21
    # False: create goes straight to en_revision, only rechazado is editable
    EVENT_DRAFTS_ENABLED: bool = True
    ENFORCE_END_AFTER_START: bool = True
    ADMIN_EVENTS_PAGE_SIZE: int = 20
    RECENT_EVENTS_DAYS: int = 30

    # Certificate requests
    CERTIFICATE_SUMMARY_MAX_WORDS: int = 250
    CERTIFICATE_MAX_PHOTOS: int = 10

    # ==========================================
    # Storage Configuration
    # ==========================================
    USE_MINIO: bool = True
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "us-east-1"
    S3_BUCKET_NAME: str = ""
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_PUBLIC_ENDPOINT: str = ""
    STORAGE_URL_EXPIRY: int = 3600  # 1 hour

    @property
    def effective_bucket_name(self) -> str:
        """Configured S3 bucket, or the default bucket name"""
        return self.S3_BUCKET_NAME or "fmp-eventos"

    # ==========================================
    # File Upload
    # ==========================================
    MAX_UPLOAD_SIZE: int = 10485760  # 10MB
    ALLOWED_FILE_TYPES_STR: str = (
        "application/pdf,"
        "application/msword,"
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document,"
        "text/plain,"
        "image/jpeg,"
        "image/png,"
        "image/gif"
    )

    @property
    def ALLOWED_FILE_TYPES(self) -> List[str]:
        """Parse allowed MIME types from comma-separated string"""
        return parse_list_setting(self.ALLOWED_FILE_TYPES_STR)

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_list_setting(self.CORS_ORIGINS_STR)

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/eventos.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Create settings instance
settings = Settings()
