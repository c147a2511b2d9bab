from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./workhub.db"

    # Redis (empty = stats cache disabled)
    REDIS_URL: str = ""
    STATS_CACHE_TTL_SECONDS: int = 120

    # JWT
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    GUEST_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30

    # Access codes
    ACCESS_CODE_MIN_LENGTH: int = 6
    ACCESS_CODE_LENGTH: int = 8

    # SMTP (empty user/password = log instead of sending)
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    MAIL_FROM: str = "credentials@workhub.local"

    # App
    APP_NAME: str = "WorkHub API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
