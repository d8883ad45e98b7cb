"""Application configuration."""

from datetime import UTC, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def resolve_timezone(name: str) -> tzinfo:
    """Resolve a zone name, avoiding a tz database lookup for UTC."""
    if name.upper() == "UTC":
        return UTC
    return ZoneInfo(name)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="Reservation API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")

    # Appointments
    appointment_timezone: str = Field(
        default="UTC",
        alias="APPOINTMENT_TIMEZONE",
        description="Zone used to interpret appointment times sent without an offset",
    )
    appointment_number_prefix: str = Field(default="RSV", alias="APPOINTMENT_NUMBER_PREFIX")
    default_cancel_reason: str = Field(
        default="Canceled at customer request",
        alias="DEFAULT_CANCEL_REASON",
    )

    @field_validator("appointment_timezone")
    @classmethod
    def validate_appointment_timezone(cls, value: str) -> str:
        """Reject zone names the tz database does not know."""
        try:
            resolve_timezone(value)
        except (ZoneInfoNotFoundError, OSError, ValueError) as e:
            raise ValueError(f"unknown time zone: {value}") from e
        return value

    @property
    def appointment_tzinfo(self) -> tzinfo:
        """Zone applied to appointment times sent without an offset."""
        return resolve_timezone(self.appointment_timezone)

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
