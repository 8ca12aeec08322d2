# salonbook/config.py

import os
import warnings

from dotenv import load_dotenv

from salonbook.scheduling.domain import StaffSchedule, WEEKDAYS, parse_time_of_day
from salonbook.scheduling.status import NoticePolicy, parse_cutoff

load_dotenv()

# SQLite database (file-based)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./salon.db")

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    warnings.warn("SECRET_KEY not set, using an insecure development key", RuntimeWarning, stacklevel=2)
    SECRET_KEY = "change-me-later"
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Step between offered start times
SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "15"))

# 6h, 12h, 24h, 48h or no-limit
CANCELLATION_CUTOFF = os.getenv("CANCELLATION_CUTOFF", "24h")
RESCHEDULE_CUTOFF = os.getenv("RESCHEDULE_CUTOFF", "24h")
ALLOW_CANCELLATION = os.getenv("ALLOW_CANCELLATION", "true").lower() in ("1", "true", "yes")
AUTO_CONFIRM_BOOKINGS = os.getenv("AUTO_CONFIRM_BOOKINGS", "false").lower() in ("1", "true", "yes")

# Fallback hours for staff without their own schedule
BUSINESS_DAYS = os.getenv("BUSINESS_DAYS", "monday,tuesday,wednesday,thursday,friday")
BUSINESS_OPEN = os.getenv("BUSINESS_OPEN", "09:00")
BUSINESS_CLOSE = os.getenv("BUSINESS_CLOSE", "17:00")


def default_business_hours() -> StaffSchedule:
    open_days = {d.strip().lower() for d in BUSINESS_DAYS.split(",") if d.strip()}
    start = parse_time_of_day(BUSINESS_OPEN)
    end = parse_time_of_day(BUSINESS_CLOSE)
    return StaffSchedule(
        weekly={
            day: {"is_working": day in open_days, "start": start, "end": end}
            for day in WEEKDAYS
        }
    )


def notice_policy() -> NoticePolicy:
    return NoticePolicy(
        allow_cancellation=ALLOW_CANCELLATION,
        cancellation_cutoff_hours=parse_cutoff(CANCELLATION_CUTOFF),
        reschedule_cutoff_hours=parse_cutoff(RESCHEDULE_CUTOFF),
        auto_confirm_bookings=AUTO_CONFIRM_BOOKINGS,
    )
