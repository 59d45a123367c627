from datetime import date, datetime
import pytz

from config import HOTEL_TIMEZONE

# Centralized Timezone Configuration
HOTEL_TZ = pytz.timezone(HOTEL_TIMEZONE)

def get_hotel_now() -> datetime:
    """Returns current time in Hotel Timezone"""
    return datetime.now(HOTEL_TZ)


def get_operational_date() -> date:
    """Returns today's date in Hotel Timezone"""
    return get_hotel_now().date()
