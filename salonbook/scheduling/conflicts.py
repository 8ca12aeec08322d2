# salonbook/scheduling/conflicts.py

from collections import defaultdict
from typing import Dict, Iterable, List

from salonbook.scheduling.domain import Appointment


def overlaps(start_a, end_a, start_b, end_b) -> bool:
    # Half-open intervals: touching endpoints do not overlap
    return start_a < end_b and start_b < end_a


def find_conflicts(candidate: Appointment, appointments: Iterable[Appointment]) -> List[Appointment]:
    """Every active appointment of the same staff member and date that overlaps ``candidate``.

    The candidate's own record is skipped so edits and reschedules do not
    conflict with themselves.
    """
    conflicts = []
    for existing in appointments:
        if existing.staff_id != candidate.staff_id:
            continue
        if existing.date != candidate.date:
            continue
        if candidate.id is not None and existing.id == candidate.id:
            continue
        # Rejected appointments free their slot just like cancelled ones
        if not existing.is_active:
            continue
        if overlaps(candidate.start, candidate.end, existing.start, existing.end):
            conflicts.append(existing)
    return conflicts


def conflict_map(appointments: Iterable[Appointment]) -> Dict[int, List[int]]:
    """Map each conflicting appointment id to the ids it overlaps with.

    Used to badge an already saved calendar; appointments without conflicts
    are left out.
    """
    by_day = defaultdict(list)
    for appt in appointments:
        if appt.id is None or not appt.is_active:
            continue
        by_day[(appt.staff_id, appt.date)].append(appt)

    badges = {}
    for day_appts in by_day.values():
        day_appts.sort(key=lambda a: a.start)
        for i, first in enumerate(day_appts):
            for second in day_appts[i + 1:]:
                if second.start >= first.end:
                    break
                badges.setdefault(first.id, []).append(second.id)
                badges.setdefault(second.id, []).append(first.id)

    for ids in badges.values():
        ids.sort()
    return badges
