"""Configuration management for the call retry service."""

import os
from dataclasses import dataclass
from datetime import time
from typing import Optional

from dotenv import load_dotenv

from call_retry.errors import ConfigurationError
from call_retry.models import BusinessHoursConfig

# Load environment variables from .env file
load_dotenv()


class Config:
    """Application configuration."""

    # Business hours (customer local time)
    BUSINESS_HOURS_START: str = os.getenv("BUSINESS_HOURS_START", "09:00")
    BUSINESS_HOURS_END: str = os.getenv("BUSINESS_HOURS_END", "19:00")
    # ISO weekdays, 1=Monday ... 7=Sunday
    BUSINESS_DAYS: str = os.getenv("BUSINESS_DAYS", "1,2,3,4,5")

    # Used when a phone number matches no dialing prefix
    DEFAULT_TIMEZONE: str = os.getenv("DEFAULT_TIMEZONE", "Europe/London")
    HOME_COUNTRY_CODE: str = os.getenv("HOME_COUNTRY_CODE", "+44")

    # Retry ceiling, shared by every end-of-call reason
    MAX_CALL_ATTEMPTS: str = os.getenv("MAX_CALL_ATTEMPTS", "3")

    # Twilio Configuration
    TWILIO_ACCOUNT_SID: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    TWILIO_AUTH_TOKEN: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    TWILIO_CALLER_ID: str = os.getenv("TWILIO_CALLER_ID", "")
    TWILIO_PHONE_NUMBER: str = os.getenv("TWILIO_PHONE_NUMBER", "")

    # SMS fallback content
    COMPANY_NAME: str = os.getenv("COMPANY_NAME", "")
    COMPANY_PHONE: str = os.getenv("COMPANY_PHONE", "")
    BOOKING_LINK: str = os.getenv("BOOKING_LINK", "")

    # Persistence / queues
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./call_retry.db")
    REDIS_URL: str = os.getenv("REDIS_URL", "")
    CELERY_BROKER_URL: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    # Idempotency claims expire after this many seconds
    RETRY_CLAIM_TTL_SECONDS: int = int(os.getenv("RETRY_CLAIM_TTL_SECONDS", "86400"))

    # Application Settings
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8000")
    # TwiML endpoint of the voice assistant that answers retry calls
    VOICE_WEBHOOK_URL: str = os.getenv("VOICE_WEBHOOK_URL", f"{BASE_URL}/twilio/voice")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def has_twilio_config(cls) -> bool:
        """Check if Twilio configuration is complete for placing calls."""
        return all([
            cls.TWILIO_ACCOUNT_SID,
            cls.TWILIO_AUTH_TOKEN,
            cls.TWILIO_CALLER_ID
        ])

    @classmethod
    def has_sms_config(cls) -> bool:
        """Check if Twilio configuration is complete for sending SMS."""
        return all([
            cls.TWILIO_ACCOUNT_SID,
            cls.TWILIO_AUTH_TOKEN,
            cls.TWILIO_PHONE_NUMBER
        ])

    @classmethod
    def has_redis(cls) -> bool:
        """Check if a Redis URL is configured for idempotency claims."""
        return bool(cls.REDIS_URL)


# Create a global config instance
config = Config()


@dataclass(frozen=True)
class EngineSettings:
    """Validated, immutable settings for the retry engine."""

    business_hours: BusinessHoursConfig
    default_timezone: str = "Europe/London"
    home_country_code: str = "+44"
    max_attempts: int = 3

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be >= 1")


def parse_wall_clock(value: str, name: str = "time") -> time:
    """Parse an ``HH:MM`` wall-clock string."""
    parts = (value or "").strip().split(":")
    if len(parts) != 2:
        raise ConfigurationError(f"{name} must be HH:MM, got {value!r}")
    try:
        hour, minute = int(parts[0]), int(parts[1])
        return time(hour, minute)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be HH:MM, got {value!r}") from e


def parse_weekdays(value: str) -> frozenset:
    """Parse a comma-separated list of ISO weekday numbers."""
    days = set()
    for chunk in (value or "").split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            days.add(int(chunk))
        except ValueError as e:
            raise ConfigurationError(f"BUSINESS_DAYS contains a non-integer value: {chunk!r}") from e
    return frozenset(days)


def load_engine_settings(source: Optional[Config] = None) -> EngineSettings:
    """
    Build validated engine settings from the environment-backed config.

    Called once at process start. Any malformed value raises
    ConfigurationError so the process refuses to serve.
    """
    source = source or config

    business_hours = BusinessHoursConfig(
        start_time=parse_wall_clock(source.BUSINESS_HOURS_START, "BUSINESS_HOURS_START"),
        end_time=parse_wall_clock(source.BUSINESS_HOURS_END, "BUSINESS_HOURS_END"),
        allowed_weekdays=parse_weekdays(source.BUSINESS_DAYS),
    )

    try:
        max_attempts = int(source.MAX_CALL_ATTEMPTS)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"MAX_CALL_ATTEMPTS must be an integer, got {source.MAX_CALL_ATTEMPTS!r}"
        ) from e

    return EngineSettings(
        business_hours=business_hours,
        default_timezone=source.DEFAULT_TIMEZONE,
        home_country_code=source.HOME_COUNTRY_CODE,
        max_attempts=max_attempts,
    )
