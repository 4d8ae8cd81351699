import json
from datetime import date
from pathlib import Path

import pytest

from arrival_dispatch.errors import PreconditionError, ValidationError
from arrival_dispatch.inventory import (
    MockInventoryPublisher,
    find_ready_asset,
    load_ready_assets,
    promote_arrival,
    read_published,
    vehicle_from_arrival,
)
from arrival_dispatch.sales import (
    can_generate_contract,
    cancel_sale,
    contract_draft,
    generate_contract_number,
    mark_sold,
    validate_sale,
)
from arrival_dispatch.schema import VehicleStatus

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@pytest.fixture
def inventory():
    return {v.id: v for v in load_ready_assets(DATA_DIR / "mock_inventory.json")}


def test_load_ready_assets(inventory):
    assert set(inventory) == {"r1", "r2", "r3"}
    assert inventory["r2"].status == VehicleStatus.sold
    assert inventory["r3"].status == VehicleStatus.working
    assert find_ready_asset("r1", DATA_DIR / "mock_inventory.json").model == "Accord"
    assert find_ready_asset("missing", DATA_DIR / "mock_inventory.json") is None


def test_mark_sold(inventory, today, notifier):
    vehicle = inventory["r1"]
    sold = mark_sold(vehicle, "Jane Doe", "jane@example.com", "555-0100", 45000, today=today, notifier=notifier)
    assert sold.status == VehicleStatus.sold
    assert sold.sale_date == today
    assert sold.sold_date == today
    assert (sold.buyer_name, sold.sale_price) == ("Jane Doe", 45000)
    assert vehicle.status == VehicleStatus.ready
    assert notifier.descriptions == ["2022 Honda Accord marked as sold."]


def test_mark_sold_requires_all_buyer_fields(inventory):
    vehicle = inventory["r1"]
    with pytest.raises(ValidationError) as exc:
        mark_sold(vehicle, "Jane Doe", "jane@example.com", "555-0100", 0)
    assert exc.value.errors == {"sale_price": "Amount must be > 0"}
    assert vehicle.status == VehicleStatus.ready
    assert vehicle.buyer_name is None


def test_mark_sold_accepts_price_typed_into_a_form(inventory, today):
    sold = mark_sold(inventory["r1"], "Jane Doe", "jane@example.com", "555-0100", "45,000", today=today)
    assert sold.sale_price == 45000.0


@pytest.mark.parametrize("price", ["abc", "", float("nan"), float("inf"), -5, True])
def test_mark_sold_rejects_unusable_price(inventory, price):
    with pytest.raises(ValidationError) as exc:
        mark_sold(inventory["r1"], "Jane Doe", "jane@example.com", "555-0100", price)
    assert exc.value.errors == {"sale_price": "Amount must be > 0"}
    assert inventory["r1"].sale_price is None


def test_validate_sale_reports_every_missing_field():
    assert validate_sale("", " ", "", None) == {
        "buyer_name": "Buyer name required",
        "buyer_email": "Email required",
        "buyer_phone": "Phone required",
        "sale_price": "Amount must be > 0",
    }


def test_cancel_sale_clears_buyer(inventory, notifier):
    reverted = cancel_sale(inventory["r2"], notifier=notifier)
    assert reverted.status == VehicleStatus.ready
    assert reverted.buyer_name is None
    assert reverted.sale_price is None
    assert reverted.sold_date is None
    assert notifier.descriptions == ["Vehicle status reset to Ready."]


def test_contract_number_counts_same_year():
    assert generate_contract_number([], 2026) == "OR-2026-00001"
    assert generate_contract_number(["OR-2026-00001", "OR-2025-00007"], 2026) == "OR-2026-00002"


def test_contract_draft_for_sold_vehicle(inventory):
    assert can_generate_contract(inventory["r2"]) is True
    draft = contract_draft(inventory["r2"], ["OR-2026-00001"])
    assert draft.contract_number == "OR-2026-00002"
    assert draft.vehicle == "2023 Tesla Model Y"
    assert draft.buyer_name == "Sam Rivera"
    assert draft.sale_date == date(2026, 1, 25)


def test_contract_requires_sale(inventory, notifier):
    assert can_generate_contract(inventory["r1"]) is False
    with pytest.raises(PreconditionError):
        contract_draft(inventory["r1"], notifier=notifier)
    assert notifier.events[0].type == "warning"


def test_vehicle_from_arrival(store, today):
    vehicle = vehicle_from_arrival(store.get("a1"), today)
    assert vehicle.id == "a1"
    assert vehicle.status == VehicleStatus.ready
    assert vehicle.fuel_type == "EV"
    assert vehicle.body_style == "Sedan"
    assert vehicle.location == "Main Showroom"
    assert vehicle.listed_date == today


def test_promote_arrival_publishes_once(store, tmp_path, today, notifier):
    path = tmp_path / "published.jsonl"
    publisher = MockInventoryPublisher(path)
    promote_arrival(store.get("a1"), publisher, today, notifier=notifier)
    promote_arrival(store.get("a1"), publisher, today)
    published = read_published(path=path)
    assert len(published) == 1
    assert published[0]["vehicle"]["vin"] == "5YJ3E1EA"
    assert json.loads(path.read_text().splitlines()[0])["vehicle"]["status"] == "Ready"
    assert notifier.events[0].title == "Asset Published"


def test_promote_requires_ready_to_sell(store, tmp_path):
    publisher = MockInventoryPublisher(tmp_path / "published.jsonl")
    with pytest.raises(PreconditionError):
        promote_arrival(store.get("a3"), publisher)
    assert read_published(path=tmp_path / "published.jsonl") == []
