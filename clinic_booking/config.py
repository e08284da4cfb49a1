"""Configuration for the clinic booking service.

Business rules are centralized here - modify as needed without touching code.
Deployment settings come from the environment (a local .env file is honoured).
"""
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

CLINIC = {
    "name": "Orent Clinic",
    "location": "Orent Clinic, Chengannur, Kerala",
    "phone": "934 934 5538",
}

DEPARTMENTS = {
    "Ortho": "Orthopedics",
    "ENT": "ENT",
}

# Fixed for every department, 24h HH:MM
TIME_SLOTS = [
    "10:30", "10:45", "11:15", "11:30", "12:00",
    "12:15", "12:30", "13:00", "13:30", "13:45",
]

SLOT_BOOKING_FEE = "₹50"

BOOKING_RULES = {
    "max_advance_weekdays": 7,
    "weekly_overview_days": 5,
    "min_name_length": 2,
    "min_phone_digits": 10,
}

# Seconds
RESERVATION_TTL = 5 * 60
SESSION_INACTIVITY_TIMEOUT = 30 * 60
SESSION_RESERVATION_TIMEOUT = 30 * 60
SWEEP_INTERVAL = 60

USER_DATE_FORMAT = "%d/%m/%Y"
ISO_DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class Settings:
    """Environment-driven deployment settings."""
    database_url: str
    whatsapp_token: Optional[str]
    whatsapp_phone_number_id: Optional[str]
    whatsapp_verify_token: Optional[str]
    whatsapp_api_version: str
    log_level: str

    @property
    def whatsapp_messages_url(self) -> str:
        return (
            f"https://graph.facebook.com/{self.whatsapp_api_version}/"
            f"{self.whatsapp_phone_number_id}/messages"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load settings from the environment (cached).

    Returns:
        Settings instance
    """
    load_dotenv()
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///clinic.db"),
        whatsapp_token=os.getenv("WHATSAPP_TOKEN"),
        whatsapp_phone_number_id=os.getenv("WHATSAPP_PHONE_NUMBER_ID"),
        whatsapp_verify_token=os.getenv("WHATSAPP_VERIFY_TOKEN"),
        whatsapp_api_version=os.getenv("WHATSAPP_API_VERSION", "v18.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
