# salonbook/scheduling/availability.py

from datetime import datetime, date as Date, time, timedelta
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from salonbook.scheduling.conflicts import overlaps
from salonbook.scheduling.domain import Interval, StaffSchedule
from salonbook.scheduling.schedule import breaks_for, hours_for

DEFAULT_GRANULARITY_MINUTES = 15


def available_slots(
    day: Date,
    schedule: StaffSchedule,
    required_minutes: int,
    booked: Iterable[Interval] = (),
    granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES,
) -> List[time]:
    """
    Start times on ``day`` where ``required_minutes`` fit inside working hours.

    ``booked`` holds the staff member's active appointment intervals; the
    caller drops cancelled and rejected ones. Candidates that overlap a
    booked interval or a daily break are discarded.
    """
    if required_minutes <= 0:
        raise ValueError("required_minutes must be positive")
    if granularity_minutes <= 0:
        raise ValueError("granularity_minutes must be positive")

    # 1) Working window for the date
    window = hours_for(day, schedule)
    if window is None:
        return []

    work_start = datetime.combine(day, window.start)
    work_end = datetime.combine(day, window.end)
    step = timedelta(minutes=granularity_minutes)
    needed = timedelta(minutes=required_minutes)

    blocked = breaks_for(day, schedule) + list(booked)

    # 2) Walk the grid, keeping slots that end by closing time
    available = []
    current = work_start
    while current + needed <= work_end:
        slot_end = current + needed
        if not any(overlaps(current, slot_end, b.start, b.end) for b in blocked):
            available.append(current.time())
        current += step

    return available


def next_available_date(
    start_date: Date,
    schedule: StaffSchedule,
    required_minutes: int,
    booked: Iterable[Interval] = (),
    granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES,
    max_days: int = 30,
) -> Optional[Date]:
    # Search starts the day after start_date
    booked = list(booked)
    for offset in range(1, max_days + 1):
        day = start_date + timedelta(days=offset)
        if available_slots(day, schedule, required_minutes, booked, granularity_minutes):
            return day
    return None


class Opening(NamedTuple):
    date: Date
    staff_ids: List[int]


def next_opening(
    start_date: Date,
    calendars: Dict[int, Tuple[StaffSchedule, List[Interval]]],
    required_minutes: int,
    granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES,
    max_days: int = 30,
) -> Optional[Opening]:
    """
    First date after ``start_date`` on which any staff member has a free slot.

    ``calendars`` maps staff ids to their schedule and booked intervals. The
    result lists every staff member free that day, so an "any staff" booking
    can pick one of them.
    """
    for offset in range(1, max_days + 1):
        day = start_date + timedelta(days=offset)
        free = [
            staff_id
            for staff_id, (schedule, booked) in sorted(calendars.items())
            if available_slots(day, schedule, required_minutes, booked, granularity_minutes)
        ]
        if free:
            return Opening(day, free)
    return None
