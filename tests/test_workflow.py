import itertools
from datetime import date

import pytest

from arrival_dispatch.errors import PreconditionError, ValidationError
from arrival_dispatch.schema import ArrivalStatus, DispatchSettings, TitleStatus
from arrival_dispatch.views import pending_deliveries, pending_pickups
from arrival_dispatch.workflow import (
    DISPLAY_PRIORITY,
    PROGRESSION_RANK,
    WorkflowEngine,
    can_mark_delivered,
    can_mark_ready,
    can_roll_back,
    estimated_ready_date,
    gate_failures,
    is_overdue,
    pickup_alert,
    pickup_overdue,
    timeline_steps,
)


def test_progression_rank_follows_operational_order():
    ordered = sorted(PROGRESSION_RANK, key=PROGRESSION_RANK.get)
    assert [s.value for s in ordered] == [
        "Pending", "Paid", "Picked Up", "Delivered", "Fixing", "Ready to Sell",
    ]


def test_display_priority_surfaces_shop_work_first():
    ordered = sorted(DISPLAY_PRIORITY, key=DISPLAY_PRIORITY.get)
    assert [s.value for s in ordered] == [
        "Delivered", "Fixing", "Picked Up", "Paid", "Pending", "Ready to Sell",
    ]
    assert DISPLAY_PRIORITY != PROGRESSION_RANK


def test_any_status_can_be_assigned_directly(workflow):
    record = workflow.set_status("a6", "Ready to Sell")
    assert record.status == ArrivalStatus.ready
    record = workflow.set_status("a6", ArrivalStatus.paid)
    assert record.status == ArrivalStatus.paid


def test_unknown_status_is_rejected(workflow):
    with pytest.raises(ValidationError):
        workflow.set_status("a6", "Sold")


def test_status_changes_never_touch_timeline(workflow, store):
    before = {r.id: r.timeline.model_dump() for r in store.list()}
    statuses = itertools.cycle(list(ArrivalStatus)[::-1])
    for _ in range(5):
        for record in store.list():
            workflow.set_status(record.id, next(statuses))
    after = {r.id: r.timeline.model_dump() for r in store.list()}
    assert after == before


def test_status_change_notifies(workflow, notifier):
    workflow.set_status("a1", "Paid")
    assert notifier.descriptions == ["2024 Tesla Model 3 moved to Paid"]


def test_setting_same_status_is_silent(workflow, notifier):
    workflow.set_status("a1", "Ready to Sell")
    assert notifier.events == []


def test_is_overdue():
    assert is_overdue("2020-01-01") is True
    assert is_overdue("2020-01-01", today=date(2020, 1, 2)) is True
    assert is_overdue("2020-01-01", today=date(2020, 1, 1)) is False
    assert is_overdue("") is False
    assert is_overdue(None) is False
    assert is_overdue(date(2026, 2, 19), today=date(2026, 2, 20)) is True


def test_pickup_overdue_requires_no_delivery(store, today):
    assert pickup_overdue(store.get("a4"), today) is True
    assert pickup_overdue(store.get("a2"), today) is False
    assert pickup_overdue(store.get("a5"), today) is False


def test_pickup_alert_respects_alert_days(store, today):
    record = store.get("a4")  # pickup 2026-02-14, six days before today
    assert pickup_alert(record, DispatchSettings(overdue_alert_days=2), today) is True
    assert pickup_alert(record, DispatchSettings(overdue_alert_days=7), today) is False


def test_compliance_gates(store):
    strict = DispatchSettings()
    relaxed = DispatchSettings(require_keys_for_delivery=False, require_title_for_ready=False)
    no_keys = store.get("a6")
    assert can_mark_delivered(no_keys, strict) is False
    assert can_mark_delivered(no_keys, relaxed) is True
    assert can_mark_ready(no_keys, strict) is False
    assert can_mark_ready(no_keys, relaxed) is True
    assert can_mark_ready(store.get("a2"), strict) is True
    assert gate_failures(no_keys, "Delivered", strict) == {
        "has_keys": "Keys are required before marking as Delivered"
    }
    assert gate_failures(no_keys, "Paid", strict) == {}


def test_gates_are_advisory_by_default(workflow):
    assert workflow.available_actions("a6") == {"mark_delivered": False, "mark_ready": False}
    assert workflow.set_status("a6", "Delivered").status == ArrivalStatus.delivered


def test_status_options_hide_gated_statuses(workflow, store):
    options = [s.value for s in workflow.status_options("a6")]
    assert options == ["Pending", "Paid", "Picked Up", "Fixing"]
    assert len(workflow.status_options("a2")) == 6


def test_status_options_keep_current_status(workflow):
    workflow.set_status("a12", "Ready to Sell")
    assert "Ready to Sell" in [s.value for s in workflow.status_options("a12")]
    assert "Delivered" not in [s.value for s in workflow.status_options("a12")]


def test_gates_can_be_enforced(store):
    engine = WorkflowEngine(store, enforce_gates=True)
    with pytest.raises(PreconditionError):
        engine.set_status("a12", "Ready to Sell")
    assert store.get("a12").status == ArrivalStatus.pending
    assert engine.set_status("a12", "Ready to Sell", enforce=False).status == ArrivalStatus.ready


def test_cycle_title(workflow):
    seen = [workflow.cycle_title("a2").has_title for _ in range(3)]
    assert seen == [TitleStatus.tbo, TitleStatus.no, TitleStatus.yes]


def test_toggle_keys(workflow):
    assert workflow.toggle_keys("a6").has_keys is True
    assert workflow.toggle_keys("a6").has_keys is False


def test_reassign_destination(workflow):
    assert workflow.reassign_destination("a5", "Paint Shop").destination == "Paint Shop"
    with pytest.raises(ValidationError):
        workflow.reassign_destination("a5", "Somewhere")


def test_timeline_steps(store):
    steps = timeline_steps(store.get("a4"))
    assert [s.passed for s in steps] == [True, True, True, False, False, False]
    assert steps[2].field == "timeline.pickup"
    assert steps[2].day == date(2026, 2, 14)


def test_can_roll_back(store):
    record = store.get("a3")  # Fixing
    assert can_roll_back(record, "Delivered") is True
    assert can_roll_back(record, "Ready to Sell") is False


def test_estimated_ready_date(store):
    settings = DispatchSettings(standard_prep_time=3)
    assert estimated_ready_date(store.get("a2"), settings) == date(2026, 1, 23)
    assert estimated_ready_date(store.get("a3"), settings) == date(2026, 2, 13)
    assert estimated_ready_date(store.get("a1"), settings) == date(2026, 1, 15)
    assert estimated_ready_date(store.get("a5"), settings) is None
    assert estimated_ready_date(store.get("a2"), DispatchSettings(auto_calculate_eta=False)) is None


def test_pickup_to_delivery_scenario(empty_store):
    engine = WorkflowEngine(empty_store)
    record = empty_store.create()
    engine.set_status(record.id, "Paid")
    assert [r.id for r in pending_pickups(empty_store.list()).items] == [record.id]
    engine.set_status(record.id, "Picked Up")
    assert pending_pickups(empty_store.list()).total == 0
    assert [r.id for r in pending_deliveries(empty_store.list()).items] == [record.id]
