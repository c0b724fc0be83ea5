"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (JSONBin ids, bot token, admin secret, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # JSONBin document store
    JSONBIN_API_KEY: Optional[str] = Field(
        default=None,
        description="JSONBin master key (X-Master-Key header)"
    )
    JSONBIN_BASE_URL: str = Field(
        default="https://api.jsonbin.io/v3/b",
        description="JSONBin bins endpoint"
    )
    JSONBIN_TIMEOUT: float = Field(
        default=15.0,
        description="Document store request timeout in seconds"
    )
    JSONBIN_VERSIONING: bool = Field(
        default=True,
        description="Send X-Bin-Versioning: true on writes"
    )

    # Collection documents (one bin per collection)
    BIN_MAIN: str = Field(default="", description="Shop settings bin id")
    BIN_USERS: str = Field(default="", description="Users bin id")
    BIN_PRODUCTS: str = Field(default="", description="Products bin id")
    BIN_CATEGORIES: str = Field(default="", description="Categories bin id")
    BIN_ORDERS: str = Field(default="", description="Orders bin id")
    BIN_TOPUPS: str = Field(default="", description="Top-up requests bin id")
    BIN_BANNERS: str = Field(default="", description="Banners bin id")
    BIN_PAYMENTS: str = Field(default="", description="Payment methods bin id")
    BIN_INPUT_TABLES: str = Field(default="", description="Input field definitions bin id")
    BIN_BANNED: str = Field(default="", description="Banned users bin id")

    # Cache
    CACHE_TTL_SECONDS: float = Field(
        default=30.0,
        description="How long a read document is served from memory"
    )
    CACHE_REFRESH_INTERVAL_SECONDS: float = Field(
        default=30.0,
        description="Background cache refresh interval (0 disables)"
    )
    MAX_WRITE_RETRIES: int = Field(
        default=3,
        description="Read-modify-write attempts before giving up on a version conflict"
    )

    # Telegram
    BOT_TOKEN: Optional[str] = Field(
        default=None,
        description="Bot token used for notifications and init data verification"
    )
    BOT_USERNAME: str = Field(default="", description="Bot username (without @)")
    TELEGRAM_API_BASE: str = Field(
        default="https://api.telegram.org",
        description="Bot API base URL"
    )
    TELEGRAM_TIMEOUT: float = Field(
        default=10.0,
        description="Bot API request timeout in seconds"
    )
    INIT_DATA_MAX_AGE_SECONDS: int = Field(
        default=86400,
        description="Maximum age of Mini App init data"
    )
    BROADCAST_DELAY_SECONDS: float = Field(
        default=0.05,
        description="Pause between broadcast messages"
    )

    # Admin
    ADMIN_TELEGRAM_ID: str = Field(default="", description="Chat id that receives admin notifications")
    ADMIN_PASSWORD: Optional[str] = Field(
        default=None,
        description="Password for the admin API (X-Admin-Password header)"
    )

    # Shop rules
    DEFAULT_CURRENCY: str = Field(default="MMK", description="Currency for new products")
    MAX_FAILED_PURCHASE_ATTEMPTS: int = Field(
        default=5,
        description="Failed purchases per day before an automatic ban"
    )
    OTP_REQUIRED: bool = Field(
        default=True,
        description="Require a bot-delivered confirmation code for purchases"
    )
    OTP_VALIDITY_MINUTES: int = Field(default=5, description="Confirmation code lifetime")

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @field_validator("ADMIN_PASSWORD")
    @classmethod
    def validate_admin_password(cls, v, info: ValidationInfo):
        """Ensure the admin password is set in production."""
        if info.data.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("ADMIN_PASSWORD is required in production environment")
        return v

    @field_validator("BOT_TOKEN")
    @classmethod
    def validate_bot_token(cls, v, info: ValidationInfo):
        """Ensure the bot token is set in production."""
        if info.data.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("BOT_TOKEN is required in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


# Global settings instance
settings = Settings()


def validate_settings(config: Optional[Settings] = None):
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    config = config or settings
    errors = []

    if not config.JSONBIN_BASE_URL:
        errors.append("JSONBIN_BASE_URL is required")

    missing_bins = [
        name for name in (
            "BIN_MAIN", "BIN_USERS", "BIN_PRODUCTS", "BIN_CATEGORIES", "BIN_ORDERS",
            "BIN_TOPUPS", "BIN_BANNERS", "BIN_PAYMENTS", "BIN_INPUT_TABLES", "BIN_BANNED",
        )
        if not getattr(config, name)
    ]

    # Production-specific validations
    if config.is_production:
        if not config.JSONBIN_API_KEY:
            errors.append("JSONBIN_API_KEY is required in production")
        if missing_bins:
            errors.append(f"Bin ids missing: {', '.join(missing_bins)}")
        if not config.ADMIN_TELEGRAM_ID:
            errors.append("ADMIN_TELEGRAM_ID is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
