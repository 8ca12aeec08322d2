# salonbook/scheduling/duration.py

from typing import Iterable, List

from salonbook.scheduling.domain import Service


def known_extra_ids(service: Service, selected_extra_ids: Iterable[str]) -> List[str]:
    """Keep only the selected ids that exist on the service, in selection order."""
    available = {extra.id for extra in service.extras}
    kept = []
    for extra_id in selected_extra_ids:
        if extra_id in available and extra_id not in kept:
            kept.append(extra_id)
    return kept


def resolve_duration(service: Service, selected_extra_ids: Iterable[str]) -> int:
    """Minutes occupied by ``service`` plus the selected extras.

    Ids that do not match one of the service's extras are skipped.
    """
    by_id = {extra.id: extra for extra in service.extras}
    total = service.duration_minutes
    for extra_id in known_extra_ids(service, selected_extra_ids):
        total += by_id[extra_id].duration_minutes
    return total


def resolve_price(service: Service, selected_extra_ids: Iterable[str]) -> float:
    by_id = {extra.id: extra for extra in service.extras}
    total = service.price
    for extra_id in known_extra_ids(service, selected_extra_ids):
        total += by_id[extra_id].price
    return round(total, 2)
