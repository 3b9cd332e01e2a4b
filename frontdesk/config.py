"""
Application configuration
Read from environment variables and an optional .env file
"""
from typing import List, Optional
from zoneinfo import ZoneInfo

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Front-desk settings"""

    DEBUG: bool = False  # SQL echo

    # Database
    DATABASE_URL: str = "sqlite:///./frontdesk.db"

    # Hotel defaults
    DEFAULT_CURRENCY: str = "USD"
    HOTEL_TIMEZONE: str = ""  # IANA name; empty = server local zone

    # Orders
    ROOM_CHARGE_ORDER_PREFIX: str = "FDROOM-"

    # Stays
    MAX_STAY_NIGHTS: int = 60

    # Recent events (and failed handler deliveries) kept in memory
    EVENT_HISTORY_SIZE: int = 200

    # Housekeeping task inbox; empty disables checkout cleaning tasks
    HOUSEKEEPING_TASK_EMAIL: str = "housekeeping@frontdesk.local"

    # Roles (comma separated)
    ALLOW_DIRTY_CHECKIN_OVERRIDE_ROLES: str = "ADMIN,MANAGER"
    CUSTOMER_REGISTRATION_ROLES: str = "ADMIN,MANAGER,WAITER"

    model_config = ConfigDict(env_file=".env", case_sensitive=True)

    @staticmethod
    def _split_roles(value: str) -> List[str]:
        return [part.strip().upper() for part in value.split(",") if part.strip()]

    @property
    def dirty_checkin_override_roles(self) -> List[str]:
        return self._split_roles(self.ALLOW_DIRTY_CHECKIN_OVERRIDE_ROLES)

    @property
    def customer_registration_roles(self) -> List[str]:
        return self._split_roles(self.CUSTOMER_REGISTRATION_ROLES)

    @property
    def hotel_tz(self) -> Optional[ZoneInfo]:
        return ZoneInfo(self.HOTEL_TIMEZONE) if self.HOTEL_TIMEZONE else None


# Global settings instance
settings = Settings()
