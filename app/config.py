from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DB_HOST: str
    DB_PORT: int
    DB_NAME: str
    DB_USER: str
    DB_PASSWORD: str
    DB_POOL_MIN: int = 5
    DB_POOL_MAX: int = 20

    # JWT (host sessions)
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    SESSION_TTL_HOURS: int = 24

    # SMS (Solapi)
    SOLAPI_API_KEY: str = ""
    SOLAPI_API_SECRET: str = ""
    SOLAPI_SENDER: str = ""
    SOLAPI_BASE_URL: str = "https://api.solapi.com"
    SMS_TIMEOUT: int = 10

    # Links embedded in messages
    PUBLIC_BASE_URL: str = "http://localhost:3000"
    DISPLAY_TIMEZONE: str = "Asia/Seoul"

    # Business rules
    CANCEL_CUTOFF_HOURS: int = 24

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8002

    # API Documentation (Swagger UI / OpenAPI)
    ENABLE_DOCS: bool = True
    API_VERSION: str = "1.0.0"
    PROJECT_NAME: str = "Meetup Platform - Registration API"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
