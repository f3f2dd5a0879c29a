"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment (dev | test | production)
    ENV: str = "dev"

    VERSION: str = "1.04.00"

    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 12

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Frontend (for links in notifications)
    FRONTEND_URL: str = "http://localhost:3000"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # File uploads
    UPLOAD_DIR: str = "uploads"
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # Hard cap across all file types

    # ITS applicant-data API
    ITS_API_BASE_URL: str = "https://counseling.dbohra.com/test/its-user"
    ITS_PHOTO_API_BASE_URL: str = "http://13.127.158.101:3000/test/its-user-image"
    ITS_API_TIMEOUT_SECONDS: float = 10.0
    ITS_VERIFY_SSL: bool = False  # Demographics host serves an untrusted certificate
    ITS_RATE_LIMIT_CALLS: int = 20
    ITS_RATE_LIMIT_WINDOW_SECONDS: float = 180.0
    ITS_USER_AGENT: str = "Casework-API/1.0"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


settings = Settings()
