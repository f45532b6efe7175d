"""Application configuration from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from employdex.core.exceptions import ConfigurationError

# Secrets that ship in sample env files and old deployments; never valid for signing.
PLACEHOLDER_JWT_SECRETS = {
    "",
    "changeme",
    "change-me",
    "secret",
    "employdex-base-v1-secure-jwt-secret",
    "super-secret-jwt-key-change-in-production",
}
MIN_JWT_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App
    APP_NAME: str = "EmployDEX"
    DEBUG: bool = False
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Database
    DATABASE_URL: str = "sqlite:///./employdex.db"

    # Auth
    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_HOURS: int = 24
    PASSWORD_RESET_EXPIRY_MINUTES: int = 60

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT: str = "10/minute"

    # Uploads
    MAX_CSV_UPLOAD_MB: int = 5
    MAX_QR_IMAGE_MB: int = 2

    # Primary administrator seed
    ADMIN_EMAIL: str = "admin@employdex.local"
    ADMIN_MOBILE: str = "0000000000"
    ADMIN_PASSWORD: str = "Admin@123"
    ADMIN_FIRST_NAME: str = "System"
    ADMIN_LAST_NAME: str = "Administrator"

    def validate_jwt_secret(self) -> None:
        """Refuse to run with a missing, placeholder or short signing secret."""
        secret = self.JWT_SECRET.strip()
        if secret.lower() in PLACEHOLDER_JWT_SECRETS:
            raise ConfigurationError(
                "JWT_SECRET is not set (or uses a known placeholder value)"
            )
        if len(secret) < MIN_JWT_SECRET_LENGTH:
            raise ConfigurationError(
                f"JWT_SECRET must be at least {MIN_JWT_SECRET_LENGTH} characters long"
            )


settings = Settings()
