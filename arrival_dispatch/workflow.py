"""
Derived state and operator actions for arrivals.

Status is a plain validated value: any status can be assigned from any
other. Two rank tables sit beside it and answer different questions:
PROGRESSION_RANK says how far along a vehicle is, DISPLAY_PRIORITY says
how early it should appear on the dispatch board.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Union

from pydantic import BaseModel

from .errors import PreconditionError, ValidationError
from .notifications import Notifier
from .schema import DESTINATIONS, ArrivalRecord, ArrivalStatus, DispatchSettings, TitleStatus
from .store import ArrivalStore

logger = logging.getLogger(__name__)

PROGRESSION_RANK: Dict[ArrivalStatus, int] = {
    ArrivalStatus.pending: 0,
    ArrivalStatus.paid: 1,
    ArrivalStatus.picked_up: 2,
    ArrivalStatus.delivered: 3,
    ArrivalStatus.fixing: 4,
    ArrivalStatus.ready: 5,
}

DISPLAY_PRIORITY: Dict[ArrivalStatus, int] = {
    ArrivalStatus.delivered: 0,
    ArrivalStatus.fixing: 1,
    ArrivalStatus.picked_up: 2,
    ArrivalStatus.paid: 3,
    ArrivalStatus.pending: 4,
    ArrivalStatus.ready: 5,
}

TITLE_CYCLE: Dict[TitleStatus, TitleStatus] = {
    TitleStatus.yes: TitleStatus.tbo,
    TitleStatus.tbo: TitleStatus.no,
    TitleStatus.no: TitleStatus.yes,
}

TIMELINE_STEPS = [
    ("Pending / Purchased", "timeline.purchase", 0),
    ("Paid", "timeline.paid", 1),
    ("Picked Up", "timeline.pickup", 2),
    ("Delivered at Shop", "timeline.delivery", 3),
    ("Fixing / Service", "timeline.fixing", 4),
    ("Ready to Sell", "timeline.ready", 5),
]


class TimelineStep(BaseModel):
    label: str
    field: str
    rank: int
    day: Optional[date] = None
    passed: bool = False


def progression_rank(status: Union[ArrivalStatus, str]) -> int:
    return PROGRESSION_RANK[ArrivalStatus(status)]


def display_priority(status: Union[ArrivalStatus, str]) -> int:
    return DISPLAY_PRIORITY[ArrivalStatus(status)]


def _as_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    value = value.strip()
    if not value:
        return None
    return date.fromisoformat(value[:10])


def is_overdue(value: Union[date, datetime, str, None], today: Optional[date] = None) -> bool:
    day = _as_date(value)
    if day is None:
        return False
    return day < (today or date.today())


def pickup_overdue(record: ArrivalRecord, today: Optional[date] = None) -> bool:
    return is_overdue(record.timeline.pickup, today) and record.timeline.delivery is None


def pickup_alert(
    record: ArrivalRecord, settings: DispatchSettings, today: Optional[date] = None
) -> bool:
    # Alert once the pickup has slipped by at least overdue_alert_days.
    if not pickup_overdue(record, today):
        return False
    late_by = ((today or date.today()) - record.timeline.pickup).days
    return late_by >= settings.overdue_alert_days


def can_mark_delivered(record: ArrivalRecord, settings: DispatchSettings) -> bool:
    return record.has_keys or not settings.require_keys_for_delivery


def can_mark_ready(record: ArrivalRecord, settings: DispatchSettings) -> bool:
    return record.has_title == TitleStatus.yes or not settings.require_title_for_ready


def gate_failures(
    record: ArrivalRecord, status: Union[ArrivalStatus, str], settings: DispatchSettings
) -> Dict[str, str]:
    status = ArrivalStatus(status)
    failures: Dict[str, str] = {}
    if status == ArrivalStatus.delivered and not can_mark_delivered(record, settings):
        failures["has_keys"] = "Keys are required before marking as Delivered"
    if status == ArrivalStatus.ready and not can_mark_ready(record, settings):
        failures["has_title"] = "A title is required before marking as Ready to Sell"
    return failures


def can_roll_back(record: ArrivalRecord, status: Union[ArrivalStatus, str]) -> bool:
    return progression_rank(status) < progression_rank(record.status)


def timeline_steps(record: ArrivalRecord) -> List[TimelineStep]:
    current = progression_rank(record.status)
    steps = []
    for label, field, rank in TIMELINE_STEPS:
        steps.append(
            TimelineStep(
                label=label,
                field=field,
                rank=rank,
                day=getattr(record.timeline, field.split(".", 1)[1]),
                passed=current >= rank,
            )
        )
    return steps


def estimated_ready_date(record: ArrivalRecord, settings: DispatchSettings) -> Optional[date]:
    if record.timeline.ready:
        return record.timeline.ready
    if not settings.auto_calculate_eta:
        return None
    start = record.timeline.fixing or record.timeline.delivery
    if start is None:
        return None
    return start + timedelta(days=settings.standard_prep_time)


class WorkflowEngine:
    """Operator actions on arrivals held in an ArrivalStore.

    Compliance gates are advisory unless enforce_gates is set: the board
    greys out the action, but a direct status write still goes through.
    """

    def __init__(
        self,
        store: ArrivalStore,
        notifier: Optional[Notifier] = None,
        enforce_gates: bool = False,
    ):
        self.store = store
        self.notifier = notifier
        self.enforce_gates = enforce_gates

    @property
    def settings(self) -> DispatchSettings:
        return self.store.current_settings

    def _notify(self, title: str, description: str) -> None:
        logger.info(description)
        if self.notifier:
            self.notifier.send("Dispatch", title, description)

    def available_actions(self, arrival_id: str) -> Dict[str, bool]:
        record = self.store.get(arrival_id)
        return {
            "mark_delivered": can_mark_delivered(record, self.settings),
            "mark_ready": can_mark_ready(record, self.settings),
        }

    def status_options(self, arrival_id: str) -> List[ArrivalStatus]:
        record = self.store.get(arrival_id)
        return [
            status
            for status in ArrivalStatus
            if status == record.status or not gate_failures(record, status, self.settings)
        ]

    def set_status(
        self,
        arrival_id: str,
        status: Union[ArrivalStatus, str],
        enforce: Optional[bool] = None,
    ) -> ArrivalRecord:
        try:
            status = ArrivalStatus(status)
        except ValueError:
            raise ValidationError({"status": f"Unknown status: {status}"}) from None
        record = self.store.get(arrival_id)
        enforce = self.enforce_gates if enforce is None else enforce
        if enforce:
            failures = gate_failures(record, status, self.settings)
            if failures:
                raise PreconditionError(next(iter(failures.values())))
        if record.status == status:
            return record
        updated = self.store.update(arrival_id, {"status": status})
        self._notify("Status Updated", f"{updated.title} moved to {status.value}")
        return updated

    def cycle_title(self, arrival_id: str) -> ArrivalRecord:
        record = self.store.get(arrival_id)
        return self.store.update(arrival_id, {"has_title": TITLE_CYCLE[record.has_title]})

    def toggle_keys(self, arrival_id: str) -> ArrivalRecord:
        record = self.store.get(arrival_id)
        return self.store.update(arrival_id, {"has_keys": not record.has_keys})

    def reassign_destination(self, arrival_id: str, destination: str) -> ArrivalRecord:
        if destination not in DESTINATIONS:
            raise ValidationError({"destination": f"Unknown destination: {destination}"})
        updated = self.store.update(arrival_id, {"destination": destination})
        self._notify("Destination Updated", f"{updated.title} reassigned to {destination}")
        return updated
