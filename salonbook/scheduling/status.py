# salonbook/scheduling/status.py

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class AppointmentStatus(str, Enum):
    pending = "Pending"
    confirmed = "Confirmed"
    completed = "Completed"
    cancelled = "Cancelled"
    rescheduled = "Rescheduled"
    rejected = "Rejected"
    no_show = "No-show"
    emergency = "Emergency"


# Statuses that no longer hold their time slot
INACTIVE_STATUSES = frozenset({AppointmentStatus.cancelled, AppointmentStatus.rejected})

# No further UI action is offered for these, but transitions stay legal
TERMINAL_STATUSES = frozenset({AppointmentStatus.completed, AppointmentStatus.cancelled})

CUTOFF_HOURS = {
    "6h": 6,
    "12h": 12,
    "24h": 24,
    "48h": 48,
    "no-limit": 0,
}
DEFAULT_CUTOFF_HOURS = 24


def parse_cutoff(value: str) -> int:
    """Translate a cutoff setting such as ``"24h"`` into hours.

    Unknown values fall back to 24 hours, ``"no-limit"`` disables the check.
    """
    return CUTOFF_HOURS.get(value.strip().lower(), DEFAULT_CUTOFF_HOURS)


@dataclass(frozen=True)
class NoticePolicy:
    allow_cancellation: bool = True
    cancellation_cutoff_hours: int = DEFAULT_CUTOFF_HOURS
    reschedule_cutoff_hours: int = DEFAULT_CUTOFF_HOURS
    auto_confirm_bookings: bool = False


def is_active(status: AppointmentStatus) -> bool:
    return status not in INACTIVE_STATUSES


def is_terminal(status: AppointmentStatus) -> bool:
    return status in TERMINAL_STATUSES


def _inside_cutoff(start: datetime, now: datetime, cutoff_hours: int) -> bool:
    if cutoff_hours <= 0:
        return False
    return start - now < timedelta(hours=cutoff_hours)


def check_cancellation(start: datetime, now: datetime, policy: NoticePolicy) -> Optional[str]:
    """Return the reason a cancellation is refused, or None when it is allowed."""
    if not policy.allow_cancellation:
        return "Cancellations are not allowed"
    if _inside_cutoff(start, now, policy.cancellation_cutoff_hours):
        return (
            "Appointments can only be cancelled at least "
            f"{policy.cancellation_cutoff_hours} hours in advance"
        )
    return None


def check_reschedule(new_start: datetime, now: datetime, policy: NoticePolicy) -> Optional[str]:
    """Return the reason a reschedule to ``new_start`` is refused, or None."""
    if _inside_cutoff(new_start, now, policy.reschedule_cutoff_hours):
        return (
            "Appointments can only be rescheduled at least "
            f"{policy.reschedule_cutoff_hours} hours in advance"
        )
    return None


def transition(current: AppointmentStatus, target: AppointmentStatus) -> AppointmentStatus:
    # Admins may move between any two statuses
    if is_terminal(current) and current != target:
        logger.info("Leaving terminal status %s for %s", current.value, target.value)
    return target
