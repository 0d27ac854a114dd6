from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "DC Inventory"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: str = "*"

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://dcim:dcim@db:5432/dcim"

    # Racks
    RACK_UNITS: int = 42

    # Security
    RATE_LIMIT_ENUM_WRITE: str = "30/minute"
    AUTH_USER_HEADER: str = "X-Forwarded-User"  # Set by the auth proxy in front of the API

    # HTTPS
    HTTPS_ONLY: bool = False

    # Frontend
    SERVE_FRONTEND_DIR: str = "/app/frontend/dist"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
