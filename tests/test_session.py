from pathlib import Path

import pytest

from arrival_dispatch.errors import PreconditionError, ValidationError
from arrival_dispatch.inventory import MockInventoryPublisher
from arrival_dispatch.notifications import InMemoryNotifier
from arrival_dispatch.schema import ArrivalStatus, VehicleStatus
from arrival_dispatch.session import DispatchSession

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@pytest.fixture
def session(tmp_path):
    return DispatchSession(
        notifier=InMemoryNotifier(),
        settings_path=tmp_path / "settings.json",
        arrivals_path=DATA_DIR / "mock_arrivals.json",
        inventory_path=DATA_DIR / "mock_inventory.json",
        publisher=MockInventoryPublisher(tmp_path / "published.jsonl"),
    )


def test_session_loads_ready_assets(session):
    assert sorted(session.ready_assets) == ["r1", "r2", "r3"]
    assert session.contracts == []


def test_sale_then_contract(session, today):
    sold = session.sell_asset("r1", "Jane Doe", "jane@example.com", "555-0100", "45000", today=today)
    assert session.ready_assets["r1"] is sold
    assert sold.status == VehicleStatus.sold
    first = session.draft_contract("r1")
    second = session.draft_contract("r2")
    assert first.contract_number == "OR-2026-00001"
    assert second.contract_number == "OR-2026-00002"
    assert [c.vehicle_id for c in session.contracts] == ["r1", "r2"]


def test_rejected_sale_leaves_asset_untouched(session):
    with pytest.raises(ValidationError):
        session.sell_asset("r1", "Jane Doe", "", "555-0100", 45000)
    assert session.ready_assets["r1"].status == VehicleStatus.ready


def test_cancel_sale_blocks_contract(session):
    session.cancel_asset_sale("r2")
    assert session.ready_assets["r2"].status == VehicleStatus.ready
    with pytest.raises(PreconditionError):
        session.draft_contract("r2")
    assert session.contracts == []


def test_ready_asset_becomes_arrival(session):
    record = session.arrivals.create_from_ready_asset(session.ready_assets["r3"])
    assert record.status == ArrivalStatus.pending
    assert (record.make, record.model) == ("Toyota", "Corolla")
    assert record.destination == "Detailing Shop"
    assert len(session.arrivals) == 13
