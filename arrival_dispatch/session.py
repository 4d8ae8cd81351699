from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Union

from .config import NOTIFIER_PROVIDER, SettingsStore, configure_logging
from .inventory import InventoryPublisher, MockInventoryPublisher, load_ready_assets
from .notifications import Notifier, get_notifier
from .registry import ReferenceRegistry
from .sales import cancel_sale, contract_draft, mark_sold
from .schema import ContractDraft, InventoryVehicle
from .store import ArrivalStore, load_arrivals
from .views import DispatchBoard
from .workflow import WorkflowEngine

_SESSIONS: Dict[str, "DispatchSession"] = {}


class DispatchSession:
    """The stores owned by one operator session, wired together."""

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        settings_path: Optional[Path] = None,
        arrivals_path: Optional[Path] = None,
        inventory_path: Optional[Path] = None,
        publisher: Optional[InventoryPublisher] = None,
        seed: bool = True,
    ):
        self.notifier = notifier or get_notifier(NOTIFIER_PROVIDER)
        self.settings = SettingsStore(settings_path, notifier=self.notifier)
        self.settings.load()
        self.registry = ReferenceRegistry(notifier=self.notifier)
        records = load_arrivals(arrivals_path) if seed else []
        self.arrivals = ArrivalStore(records, settings=self.settings, registry=self.registry)
        self.workflow = WorkflowEngine(self.arrivals, notifier=self.notifier)
        self.board = DispatchBoard()
        self.publisher = publisher or MockInventoryPublisher()
        assets = load_ready_assets(inventory_path) if seed else []
        self.ready_assets: Dict[str, InventoryVehicle] = {v.id: v for v in assets}
        self.contracts: List[ContractDraft] = []

    def sell_asset(
        self,
        vehicle_id: str,
        buyer_name: str,
        buyer_email: str,
        buyer_phone: str,
        sale_price: Union[float, str],
        today: Optional[date] = None,
    ) -> InventoryVehicle:
        vehicle = mark_sold(
            self.ready_assets[vehicle_id],
            buyer_name,
            buyer_email,
            buyer_phone,
            sale_price,
            today=today,
            notifier=self.notifier,
        )
        self.ready_assets[vehicle_id] = vehicle
        return vehicle

    def cancel_asset_sale(self, vehicle_id: str) -> InventoryVehicle:
        vehicle = cancel_sale(self.ready_assets[vehicle_id], notifier=self.notifier)
        self.ready_assets[vehicle_id] = vehicle
        return vehicle

    def draft_contract(self, vehicle_id: str) -> ContractDraft:
        existing = [c.contract_number for c in self.contracts]
        draft = contract_draft(self.ready_assets[vehicle_id], existing, notifier=self.notifier)
        self.contracts.append(draft)
        return draft


def get_session(session_id: str, **kwargs) -> DispatchSession:
    if session_id not in _SESSIONS:
        configure_logging()
        _SESSIONS[session_id] = DispatchSession(**kwargs)
    return _SESSIONS[session_id]


def clear_session(session_id: str) -> None:
    _SESSIONS.pop(session_id, None)
