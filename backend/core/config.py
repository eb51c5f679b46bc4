from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # App settings
    APP_NAME: str = "Quillpost API"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Security settings
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    HMAC_VERIFICATION_CODE_SECRET: str
    PASSWORD_HASH_ROUNDS: int = 12
    SESSION_COOKIE_NAME: str = "Authorization"

    # CORS settings
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # API settings
    API_PREFIX: str = "/api/auth"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TTL_DAYS: int = 7

    # SMTP / Email settings
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: Optional[str] = None
    SMTP_FROM_NAME: str = "Quillpost"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    SMTP_TIMEOUT: int = 15
    SMTP_DEBUG: bool = False

    # MongoDB
    MONGO_URI: Optional[str] = None
    MONGO_DB: str = "quillpost"

    class Config:
        env_file = ".env"
        case_sensitive = True
        frozen = True

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

# Create settings instance
settings = Settings()

# Validate required settings
if not settings.SECRET_KEY:
    raise ValueError("SECRET_KEY environment variable is required")

if not settings.HMAC_VERIFICATION_CODE_SECRET:
    raise ValueError("HMAC_VERIFICATION_CODE_SECRET environment variable is required")
