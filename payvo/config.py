"""
PayVo settings, read by pydantic-settings.

Lookup order for every field: process environment, then .env, then the
default below. Names are matched case-insensitively. SECRET_KEY (JWT
signing) and FIELD_ENCRYPTION_KEY (Fernet, phone numbers at rest) have no
default; startup fails with a ValidationError when either is missing.

Usage:
    from payvo.config import settings
    print(settings.CONFIRMATION_THRESHOLD_PERCENT)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Deployment, security and ledger-policy knobs for the PayVo API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "PayVo API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    # JSON lines for production, key=value console output for local work
    LOG_JSON: bool = True

    # --- Account store ---
    # Synchronous SQLAlchemy URL; the ledger call chain never suspends
    DATABASE_URL: str = "sqlite:///./data/payvo.db"

    # --- Authentication ---
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Field encryption ---
    # Any urlsafe base64 32-byte key, e.g. from Fernet.generate_key()
    FIELD_ENCRYPTION_KEY: str

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    # --- Ledger policy ---
    # Single-counterparty voice transactions above this share of the
    # balance wait for an explicit confirm/cancel
    CONFIRMATION_THRESHOLD_PERCENT: float = 15.0
    # "send money to Alice" with no amount sends this much
    DEFAULT_SEND_AMOUNT_CENTS: int = 2500
    # New accounts start with a random balance in this range ($1000-$1500)
    INITIAL_BALANCE_MIN_CENTS: int = 100_000
    INITIAL_BALANCE_MAX_CENTS: int = 150_000
    # Money requests older than this are pruned by the cleanup job
    REQUEST_RETENTION_DAYS: int = 30
    # Largest amount one operation may move ($1,000,000,000.00)
    MAX_AMOUNT_CENTS: int = 100_000_000_000
    # Give new accounts the ten demo contacts
    SEED_SAMPLE_CONTACTS: bool = True


# Shared instance; tests set the environment before the first import
settings = Settings()
