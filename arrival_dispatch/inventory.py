from __future__ import annotations

from abc import ABC, abstractmethod
import json
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from .config import DATA_DIR
from .errors import PreconditionError
from .notifications import Notifier
from .schema import ArrivalRecord, ArrivalStatus, FuelType, InventoryVehicle, VehicleStatus

INVENTORY_PATH = DATA_DIR / "mock_inventory.json"
PUBLISH_LOG_PATH = DATA_DIR / "published_inventory.jsonl"

PUBLISHED_FUEL_TYPES = {
    FuelType.gas: "Gas",
    FuelType.hybrid: "Hybrid",
    FuelType.electric: "EV",
    FuelType.diesel: "Other",
}


def load_ready_assets(path: Optional[Path] = None) -> List[InventoryVehicle]:
    path = path or INVENTORY_PATH
    if not path.exists():
        return []
    data = json.loads(path.read_text())
    return [InventoryVehicle.model_validate(item) for item in data]


def find_ready_asset(vehicle_id: str, path: Optional[Path] = None) -> Optional[InventoryVehicle]:
    for vehicle in load_ready_assets(path):
        if vehicle.id == vehicle_id:
            return vehicle
    return None


class InventoryPublisher(ABC):
    @abstractmethod
    def publish(self, vehicle: InventoryVehicle) -> None:
        raise NotImplementedError


class MockInventoryPublisher(InventoryPublisher):
    def __init__(self, path: Optional[Path] = None):
        self.path = path or PUBLISH_LOG_PATH

    def publish(self, vehicle: InventoryVehicle) -> None:
        payload = {
            "vehicle": vehicle.model_dump(mode="json"),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        # De-dupe: if the last published vehicle is identical, skip write
        if self.path.exists():
            lines = self.path.read_text().strip().splitlines()
            if lines and lines[-1].strip():
                last = json.loads(lines[-1])
                if last.get("vehicle") == payload["vehicle"]:
                    return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a") as fh:
            fh.write(json.dumps(payload) + "\n")


def read_published(limit: int = 20, path: Optional[Path] = None) -> List[Dict]:
    path = path or PUBLISH_LOG_PATH
    if not path.exists():
        return []
    lines = path.read_text().strip().splitlines()
    if not lines or not lines[0].strip():
        return []
    return [json.loads(line) for line in lines[-limit:]]


def vehicle_from_arrival(record: ArrivalRecord, today: Optional[date] = None) -> InventoryVehicle:
    return InventoryVehicle(
        id=record.id,
        vin=record.vin,
        year=record.year,
        make=record.make,
        model=record.model,
        trim=record.trim,
        color=record.color,
        body_style=record.category.value,
        fuel_type=PUBLISHED_FUEL_TYPES[record.fuel_type],
        price=record.price,
        status=VehicleStatus.ready,
        location=record.destination,
        images=list(record.images),
        listed_date=today or date.today(),
    )


def promote_arrival(
    record: ArrivalRecord,
    publisher: InventoryPublisher,
    today: Optional[date] = None,
    notifier: Optional[Notifier] = None,
) -> InventoryVehicle:
    if record.status != ArrivalStatus.ready:
        raise PreconditionError("Only arrivals that are Ready to Sell can be published.")
    vehicle = vehicle_from_arrival(record, today)
    publisher.publish(vehicle)
    if notifier:
        notifier.send(
            "Inventory",
            "Asset Published",
            f"{vehicle.title} published to inventory.",
            type="success",
        )
    return vehicle
