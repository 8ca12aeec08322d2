# salonbook/scheduling/schedule.py

from datetime import datetime, date as Date, time
from typing import List, NamedTuple, Optional

from salonbook.scheduling.domain import ClosedDay, Interval, StaffSchedule, weekday_name


class WorkingWindow(NamedTuple):
    start: time
    end: time


def hours_for(day: Date, schedule: StaffSchedule) -> Optional[WorkingWindow]:
    # Holidays close the date outright
    for holiday in schedule.holidays:
        if holiday.date == day:
            return None

    exception = schedule.exceptions.get(day)
    if exception is not None:
        if isinstance(exception, ClosedDay):
            return None
        return WorkingWindow(exception.start, exception.end)

    hours = schedule.weekly.get(weekday_name(day))
    if hours is None or not hours.is_working:
        return None
    return WorkingWindow(hours.start, hours.end)


def is_date_available(day: Date, schedule: StaffSchedule) -> bool:
    return hours_for(day, schedule) is not None


def breaks_for(day: Date, schedule: StaffSchedule) -> List[Interval]:
    return [
        Interval(datetime.combine(day, b.start), datetime.combine(day, b.end))
        for b in schedule.breaks
    ]
