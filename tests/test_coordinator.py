"""Tests for lead distribution and escalation."""

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytest

from lead_distribution.core.models import AdvancedConfig, CheckinWindow, EscalationTarget
from lead_distribution.routing import (
    DistributionCoordinator,
    NO_AVAILABLE_MEMBER,
    NO_MATCHING_QUEUE,
    QueueMatcher,
)
from lead_distribution.routing.coordinator import (
    ESCALATION_DISABLED,
    OUTSIDE_BUSINESS_HOURS,
    ROULETTE,
)

from conftest import NOW, make_queue


@pytest.fixture
def coordinator():
    return DistributionCoordinator()


class TestQueueMatcher:
    """Tests for queue matching."""

    def setup_method(self):
        self.matcher = QueueMatcher()

    def test_suffixed_rule_field_matches(self):
        queue = make_queue(rules=[{"field": "precoMaiorQue", "operator": "greaterThan", "value": 400000}])
        assert self.matcher.match({"id": "L1", "preco": 500000}, [queue]) is queue

    def test_lowest_priority_number_wins(self):
        low = make_queue("low", priority=2)
        high = make_queue("high", priority=1)
        assert self.matcher.match({"id": "L1"}, [low, high]) is high

    def test_priority_ties_keep_input_order(self):
        first = make_queue("first", priority=1)
        second = make_queue("second", priority=1)
        assert self.matcher.match({"id": "L1"}, [first, second]) is first
        assert self.matcher.match({"id": "L1"}, [second, first]) is second

    def test_disabled_queue_is_skipped(self):
        disabled = make_queue("off", priority=1, enabled=False)
        fallback = make_queue("on", priority=5)
        assert self.matcher.match({"id": "L1"}, [disabled, fallback]) is fallback

    def test_first_matching_queue_by_rules(self):
        vip = make_queue("vip", priority=1, rules=[{"field": "tier", "operator": "equals", "value": "vip"}])
        general = make_queue("general", priority=2)
        assert self.matcher.match({"id": "L1", "tier": "VIP"}, [vip, general]) is vip
        assert self.matcher.match({"id": "L2", "tier": "basic"}, [vip, general]) is general


class TestDistribute:
    """Tests for DistributionCoordinator.distribute."""

    def test_round_robin_wraps(self, coordinator):
        queue = make_queue()
        picked = [coordinator.distribute({"id": f"L{i}"}, [queue], NOW).member.id for i in range(4)]
        assert picked == ["m1", "m2", "m3", "m1"]
        assert queue.received_count == 4
        assert queue.next_member_id == "m1"

    def test_inactive_member_never_selected(self, coordinator):
        queue = make_queue()
        queue.members[0].active = False
        queue.members[0].available_now = True
        picked = {coordinator.distribute({"id": f"L{i}"}, [queue], NOW).member.id for i in range(6)}
        assert picked == {"m2", "m3"}

    def test_member_outside_window_not_selected(self, coordinator):
        window = CheckinWindow(enabled=True, days_of_week=[0], start_time="09:00", end_time="12:00")
        queue = make_queue(member_ids=("m1",), checkin_window=window)
        queue.members[0].available_now = True

        result = coordinator.distribute({"id": "L1"}, [queue], NOW.replace(hour=13))
        assert result.member is None
        assert result.held
        assert result.reason == NO_AVAILABLE_MEMBER
        assert result.queue is queue

    def test_no_matching_queue(self, coordinator):
        queue = make_queue(rules=[{"field": "city", "operator": "equals", "value": "Rio"}])
        result = coordinator.distribute({"id": "L1", "city": "Recife"}, [queue], NOW)
        assert result.queue is None
        assert result.member is None
        assert not result.held
        assert result.reason == NO_MATCHING_QUEUE

    def test_held_does_not_advance_rotation(self, coordinator):
        queue = make_queue(checkin_window=CheckinWindow(require_checkin=True))
        queue.next_member_id = "m2"
        result = coordinator.distribute({"id": "L1"}, [queue], NOW)
        assert result.held
        assert queue.next_member_id == "m2"
        assert queue.received_count == 0

    def test_every_available_member_served_once_per_cycle(self, coordinator):
        queue = make_queue(member_ids=("a", "b", "c", "d"))
        counts = Counter(
            coordinator.distribute({"id": f"L{i}"}, [queue], NOW).member.id for i in range(12)
        )
        assert counts == {"a": 3, "b": 3, "c": 3, "d": 3}

    def test_preserve_position_keeps_rotation_orders(self, coordinator):
        queue = make_queue(checkin_window=CheckinWindow(require_checkin=True))
        queue.members[0].available_now = True
        queue.members[2].available_now = True

        coordinator.distribute({"id": "L1"}, [queue], NOW)
        assert [m.rotation_order for m in queue.members] == [1, 2, 3]

    def test_unavailable_members_demoted_when_not_preserving(self, coordinator):
        queue = make_queue(
            checkin_window=CheckinWindow(require_checkin=True),
            advanced_config=AdvancedConfig(preserve_position_when_unavailable=False),
        )
        queue.members[0].available_now = True
        queue.members[2].available_now = True

        result = coordinator.distribute({"id": "L1"}, [queue], NOW)
        assert result.member.id == "m1"
        orders = {m.id: m.rotation_order for m in queue.members}
        assert orders == {"m1": 1, "m3": 2, "m2": 3}

    def test_concurrent_arrivals_share_rotation(self, coordinator):
        queue = make_queue()

        def send(i):
            return coordinator.distribute({"id": f"L{i}"}, [queue], NOW).member.id

        with ThreadPoolExecutor(max_workers=8) as pool:
            picked = list(pool.map(send, range(30)))

        assert Counter(picked) == {"m1": 10, "m2": 10, "m3": 10}
        assert queue.received_count == 30

    def test_clear_pointer_only_for_matching_member(self, coordinator):
        queue = make_queue()
        queue.next_member_id = "m2"
        coordinator.clear_pointer(queue, "m1")
        assert queue.next_member_id == "m2"
        coordinator.clear_pointer(queue, "m2")
        assert queue.next_member_id is None


class TestEscalation:
    """Tests for attendance-timeout escalation."""

    def _queue(self, target, **config):
        return make_queue(advanced_config=AdvancedConfig(escalation_target=target, **config))

    def test_disabled(self, coordinator):
        queue = self._queue(EscalationTarget.NONE)
        result = coordinator.escalate({"id": "L1"}, queue, "m1", NOW)
        assert result.member is None
        assert not result.held
        assert result.reason == ESCALATION_DISABLED

    def test_next_member_skips_timed_out(self, coordinator):
        queue = self._queue(EscalationTarget.NEXT_QUEUE)
        queue.next_member_id = "m1"
        result = coordinator.escalate({"id": "L1"}, queue, "m1", NOW)
        assert result.member.id == "m2"
        assert queue.next_member_id == "m2"

    def test_single_member_cannot_escalate_to_itself(self, coordinator):
        queue = make_queue(
            member_ids=("m1",),
            advanced_config=AdvancedConfig(escalation_target=EscalationTarget.NEXT_QUEUE),
        )
        result = coordinator.escalate({"id": "L1"}, queue, "m1", NOW)
        assert result.held
        assert result.reason == NO_AVAILABLE_MEMBER

    def test_roulette_holds_lead(self, coordinator):
        queue = self._queue(EscalationTarget.ROULETTE)
        result = coordinator.escalate({"id": "L1"}, queue, "m1", NOW)
        assert result.held
        assert result.reason == ROULETTE

    def test_outside_business_hours(self, coordinator):
        queue = self._queue(
            EscalationTarget.NEXT_QUEUE, business_hours_start="08:00", business_hours_end="09:00"
        )
        result = coordinator.escalate({"id": "L1"}, queue, "m1", NOW)
        assert result.held
        assert result.reason == OUTSIDE_BUSINESS_HOURS

    def test_escalation_due_at(self, coordinator):
        assigned = datetime(2024, 1, 1, 10, 0)
        next_queue = self._queue(
            EscalationTarget.NEXT_QUEUE, attendance_timeout_minutes=10, rotation_pause_minutes=5
        )
        roulette = self._queue(EscalationTarget.ROULETTE, attendance_timeout_minutes=10)
        disabled = self._queue(EscalationTarget.NONE, attendance_timeout_minutes=10)

        assert coordinator.escalation_due_at(next_queue, assigned) == assigned + timedelta(minutes=15)
        assert coordinator.escalation_due_at(roulette, assigned) == assigned + timedelta(minutes=10)
        assert coordinator.escalation_due_at(disabled, assigned) is None
