"""Occupied minutes and price for a service plus its selected extras."""
from salonbook.scheduling.domain import Service
from salonbook.scheduling.duration import known_extra_ids, resolve_duration, resolve_price


class TestResolveDuration:
    def test_base_duration_without_extras(self, haircut):
        assert resolve_duration(haircut, []) == 30

    def test_extras_are_added(self, haircut):
        assert resolve_duration(haircut, ["wash"]) == 45
        assert resolve_duration(haircut, ["wash", "style"]) == 65

    def test_unknown_extras_contribute_nothing(self, haircut):
        assert resolve_duration(haircut, ["wash", "massage"]) == 45
        assert resolve_duration(haircut, ["massage"]) == 30

    def test_duplicate_selection_counts_once(self, haircut):
        assert resolve_duration(haircut, ["wash", "wash"]) == 45

    def test_service_without_extras(self):
        service = Service(name="Beard trim", duration_minutes=15)

        assert resolve_duration(service, ["wash"]) == 15


class TestKnownExtras:
    def test_keeps_selection_order(self, haircut):
        assert known_extra_ids(haircut, ["style", "ghost", "wash"]) == ["style", "wash"]


class TestResolvePrice:
    def test_price_includes_known_extras(self, haircut):
        assert resolve_price(haircut, ["wash", "style", "ghost"]) == 40.0
