import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    PROJECT_NAME: str = "Guide Booking API"
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./bookings.db")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # -------- AUTH --------
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-me")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    # -------- RAZORPAY --------
    RAZORPAY_KEY_ID: str = os.getenv("RAZORPAY_KEY_ID", "")
    RAZORPAY_KEY_SECRET: str = os.getenv("RAZORPAY_KEY_SECRET", "")
    RAZORPAY_WEBHOOK_SECRET: str = os.getenv("RAZORPAY_WEBHOOK_SECRET", "")
    PAYMENT_CURRENCY: str = os.getenv("PAYMENT_CURRENCY", "INR")
    GATEWAY_TIMEOUT_SECONDS: float = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10"))

    # -------- PRICING --------
    TAX_RATE: float = float(os.getenv("TAX_RATE", "0.18"))
    SERVICE_FEE_RATE: float = float(os.getenv("SERVICE_FEE_RATE", "0.05"))
    DEFAULT_BASE_PRICE: float = float(os.getenv("DEFAULT_BASE_PRICE", "99"))

    # -------- BOOKING RULES --------
    MIN_CANCELLATION_HOURS: int = int(os.getenv("MIN_CANCELLATION_HOURS", "24"))
    MIN_PARTICIPANTS: int = int(os.getenv("MIN_PARTICIPANTS", "1"))
    MAX_PARTICIPANTS: int = int(os.getenv("MAX_PARTICIPANTS", "50"))
    REMINDER_LEAD_HOURS: int = int(os.getenv("REMINDER_LEAD_HOURS", "24"))
    REMINDER_WINDOW_HOURS: int = int(os.getenv("REMINDER_WINDOW_HOURS", "1"))

    # -------- EMAIL --------
    SMTP_HOST: str = os.getenv("SMTP_HOST", "")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_FROM_EMAIL: str = os.getenv("SMTP_FROM_EMAIL", "")
    SMTP_FROM_NAME: str = os.getenv("SMTP_FROM_NAME", "My Guide")
    SMTP_USE_TLS: bool = _as_bool(os.getenv("SMTP_USE_TLS", "true"))
    SMTP_TIMEOUT: float = float(os.getenv("SMTP_TIMEOUT", "10"))


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
