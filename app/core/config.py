from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# -------------------------------------------------
# Explicitly load .env
# -------------------------------------------------

BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_PATH = BASE_DIR / ".env"

load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseSettings):
    DATABASE_URL: str
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    SQL_ECHO: bool = False
    # Create tables on startup (local development and tests); production runs alembic
    AUTO_CREATE_SCHEMA: bool = False

    CURRENCY: str = "KES"
    BOOKING_CODE_LENGTH: int = Field(default=6, ge=4, le=10)

    # M-Pesa Daraja (STK push). Leave credentials empty to disable deposit initiation.
    MPESA_BASE_URL: str = "https://sandbox.safaricom.co.ke"
    MPESA_CONSUMER_KEY: str = ""
    MPESA_CONSUMER_SECRET: str = ""
    MPESA_SHORTCODE: str = ""
    MPESA_PASSKEY: str = ""
    MPESA_CALLBACK_URL: str = ""
    MPESA_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0, description="Upper bound for each Daraja HTTP call")
    MPESA_ACCOUNT_REF_MAX_LENGTH: int = Field(default=12, description="Daraja AccountReference length limit")

    # Webhook reconciliation
    CALLBACK_MATCH_LIMIT: int = Field(default=5, ge=1, description="Candidates considered when matching by amount")

    # Pending payment sweep (env: PENDING_PAYMENT_SWEEP_INTERVAL_MINUTES, PENDING_PAYMENT_TTL_MINUTES)
    PENDING_PAYMENT_SWEEP_INTERVAL_MINUTES: float = Field(default=0, description="0 disables the sweep")
    PENDING_PAYMENT_TTL_MINUTES: int = Field(default=1440, ge=1, description="Pending payments older than this are expired")

    class Config:
        extra = "ignore"
        env_file = str(ENV_PATH)
        env_file_encoding = "utf-8"


settings = Settings()
