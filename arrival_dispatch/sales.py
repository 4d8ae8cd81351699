from __future__ import annotations

import logging
import math
from datetime import date
from typing import Dict, Iterable, Optional, Union

from .errors import PreconditionError, ValidationError
from .notifications import Notifier
from .schema import ContractDraft, InventoryVehicle, VehicleStatus

logger = logging.getLogger(__name__)

CONTRACT_PREFIX = "OR"

SALE_FIELDS = (
    "buyer_name",
    "buyer_email",
    "buyer_phone",
    "sale_price",
    "sale_date",
    "sold_date",
)


def _parse_price(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace(",", "").strip()
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(price) or math.isinf(price):
        return None
    return price


def validate_sale(
    buyer_name: str, buyer_email: str, buyer_phone: str, sale_price: Union[float, str, None]
) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if not (buyer_name or "").strip():
        errors["buyer_name"] = "Buyer name required"
    if not (buyer_email or "").strip():
        errors["buyer_email"] = "Email required"
    if not (buyer_phone or "").strip():
        errors["buyer_phone"] = "Phone required"
    price = _parse_price(sale_price)
    if price is None or price <= 0:
        errors["sale_price"] = "Amount must be > 0"
    return errors


def mark_sold(
    vehicle: InventoryVehicle,
    buyer_name: str,
    buyer_email: str,
    buyer_phone: str,
    sale_price: Union[float, str],
    today: Optional[date] = None,
    notifier: Optional[Notifier] = None,
) -> InventoryVehicle:
    errors = validate_sale(buyer_name, buyer_email, buyer_phone, sale_price)
    if errors:
        raise ValidationError(errors)
    today = today or date.today()
    sold = vehicle.model_copy(
        update={
            "status": VehicleStatus.sold,
            "buyer_name": buyer_name.strip(),
            "buyer_email": buyer_email.strip(),
            "buyer_phone": buyer_phone.strip(),
            "sale_price": _parse_price(sale_price),
            "sale_date": today,
            "sold_date": today,
        }
    )
    logger.info("Vehicle %s sold for %s", vehicle.id, sale_price)
    if notifier:
        notifier.send("Sales", "Sale Completed", f"{vehicle.title} marked as sold.", type="success")
    return sold


def cancel_sale(vehicle: InventoryVehicle, notifier: Optional[Notifier] = None) -> InventoryVehicle:
    update = {field: None for field in SALE_FIELDS}
    update["status"] = VehicleStatus.ready
    reverted = vehicle.model_copy(update=update)
    if notifier:
        notifier.send("Sales", "Sale Cancelled", "Vehicle status reset to Ready.")
    return reverted


def can_generate_contract(vehicle: InventoryVehicle) -> bool:
    return vehicle.status == VehicleStatus.sold


def generate_contract_number(existing: Iterable[str], year: Optional[int] = None) -> str:
    year = year or date.today().year
    this_year = [number for number in existing if str(year) in number]
    return f"{CONTRACT_PREFIX}-{year}-{len(this_year) + 1:05d}"


def contract_draft(
    vehicle: InventoryVehicle,
    existing_numbers: Iterable[str] = (),
    notifier: Optional[Notifier] = None,
) -> ContractDraft:
    if not can_generate_contract(vehicle):
        if notifier:
            notifier.send("Contracts", "Cannot Generate", "Vehicle must be sold first.", type="warning")
        raise PreconditionError("Vehicle must be sold first.")
    year = (vehicle.sale_date or date.today()).year
    return ContractDraft(
        contract_number=generate_contract_number(existing_numbers, year),
        vehicle_id=vehicle.id,
        vehicle=vehicle.title,
        vin=vehicle.vin,
        buyer_name=vehicle.buyer_name,
        buyer_email=vehicle.buyer_email,
        buyer_phone=vehicle.buyer_phone,
        sale_price=vehicle.sale_price,
        sale_date=vehicle.sale_date,
    )
