from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database - SQLite file by default, PostgreSQL supported
    database_url: str = Field(
        default="sqlite:///./chalet.db",
        alias="DATABASE_URL"
    )

    # Admin API key (X-API-Key header) for blockage/price/booking administration
    admin_api_key: str = Field(
        default="dev-admin-key-change-me-in-production",
        alias="ADMIN_API_KEY"
    )

    # CORS - Frontend URLs (comma-separated)
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        alias="ALLOWED_ORIGINS"
    )

    # ==============================================
    # Holds (proposed bookings)
    # ==============================================
    hold_ttl_minutes: int = Field(default=15, alias="HOLD_TTL_MINUTES")

    # Periodic purge of expired holds (runs inside the FastAPI process)
    hold_purge_enabled: bool = Field(default=True, alias="HOLD_PURGE_ENABLED")
    hold_purge_interval_seconds: int = Field(default=60, alias="HOLD_PURGE_INTERVAL")

    # ==============================================
    # Booking rules
    # ==============================================
    # How far ahead a stay may start
    max_advance_days: int = Field(default=730, alias="MAX_ADVANCE_DAYS")

    # Allow check-in dates in the past (imports, testing)
    allow_past_dates: bool = Field(default=False, alias="ALLOW_PAST_DATES")

    # Guests may change or cancel only while check-in is at least this many days away
    edit_deadline_days: int = Field(default=3, alias="EDIT_DEADLINE_DAYS")

    currency: str = Field(default="CZK", alias="CURRENCY")

    # ==============================================
    # Logging
    # ==============================================
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # ==============================================
    # Rate limiting
    # ==============================================
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_storage_uri: str = Field(default="memory://", alias="RATE_LIMIT_STORAGE_URI")

    @field_validator('admin_api_key')
    @classmethod
    def validate_admin_api_key(cls, v: str) -> str:
        """ADMIN_API_KEY must not be trivially guessable"""
        if not v:
            raise ValueError("ADMIN_API_KEY is required and cannot be empty")
        if len(v) < 16:
            raise ValueError("ADMIN_API_KEY must be at least 16 characters long")
        return v

    @field_validator('hold_ttl_minutes')
    @classmethod
    def validate_hold_ttl(cls, v: int) -> int:
        if v < 1:
            raise ValueError("HOLD_TTL_MINUTES must be at least 1")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def use_json_logs(self) -> bool:
        return self.log_json or self.is_production

    @property
    def cors_origins(self) -> List[str]:
        """
        Parse allowed origins from comma-separated string.
        Returns a list suitable for CORSMiddleware.
        """
        if not self.allowed_origins:
            return ["http://localhost:5173"]

        origins = []
        for origin in self.allowed_origins.split(","):
            origin = origin.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)

        return origins if origins else ["http://localhost:5173"]

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Initialize settings on module load
settings = get_settings()
