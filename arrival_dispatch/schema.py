from __future__ import annotations

import datetime
from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

DESTINATIONS = [
    "Main Showroom",
    "East Warehouse",
    "In Transit",
    "Detailing Shop",
    "Paint Shop",
    "Auction Yard",
]

TBD_DRIVER = "TBD"
ALL = "All"


class ArrivalStatus(str, Enum):
    pending = "Pending"
    paid = "Paid"
    picked_up = "Picked Up"
    delivered = "Delivered"
    fixing = "Fixing"
    ready = "Ready to Sell"


class VehicleCategory(str, Enum):
    minivan = "Minivan"
    hatchback = "Hatchback"
    convertible = "Convertible"
    wagon = "Wagon"
    suv = "SUV / Crossover"
    truck = "Truck"
    sedan = "Sedan"
    coupe = "Coupe"


class FuelType(str, Enum):
    gas = "GAS"
    hybrid = "HYB"
    electric = "ELEC"
    diesel = "DIESEL"


class TitleStatus(str, Enum):
    yes = "YES"
    no = "NO"
    tbo = "TBO"


class TitleType(str, Enum):
    clean = "Clean"
    salvage = "Salvage"
    rebuild = "Rebuild"


class DocumentType(str, Enum):
    invoice = "Invoice"
    title = "Title"
    shipping = "Shipping"
    customs = "Customs"
    other = "Other"


class VehicleStatus(str, Enum):
    new = "New"
    working = "Working on it"
    ready = "Ready"
    sold = "Sold"


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class Seller(BaseModel):
    name: str = ""
    phone: str = ""
    address: str = ""


class Transporter(BaseModel):
    driver: str = ""
    phone: str = ""
    address: str = ""


class Timeline(BaseModel):
    purchase: Optional[date] = None
    paid: Optional[date] = None
    pickup: Optional[date] = None
    delivery: Optional[date] = None
    fixing: Optional[date] = None
    ready: Optional[date] = None

    @field_validator("*", mode="before")
    @classmethod
    def _empty_dates(cls, value):
        return _blank_to_none(value)


class ArrivalDocument(BaseModel):
    id: str
    name: str
    type: DocumentType = DocumentType.other
    date: Optional[datetime.date] = None
    uri: str = ""


class ArrivalRecord(BaseModel):
    id: str
    vin: str = ""
    lot_number: str = ""
    year: Optional[int] = None
    make: str = ""
    model: str = ""
    trim: str = ""
    color: str = ""
    category: VehicleCategory = VehicleCategory.suv
    fuel_type: FuelType = FuelType.gas
    has_title: TitleStatus = TitleStatus.no
    title_type: TitleType = TitleType.clean
    has_keys: bool = False
    price: float = Field(default=0, ge=0)
    destination: str = DESTINATIONS[0]
    status: ArrivalStatus = ArrivalStatus.pending
    seller: Seller = Field(default_factory=Seller)
    transporter: Transporter = Field(default_factory=Transporter)
    timeline: Timeline = Field(default_factory=Timeline)
    images: List[str] = Field(default_factory=list)
    documents: List[ArrivalDocument] = Field(default_factory=list)
    notes: str = ""

    @field_validator("year", mode="before")
    @classmethod
    def _empty_year(cls, value):
        return _blank_to_none(value)

    @field_validator("destination")
    @classmethod
    def _known_destination(cls, value: str) -> str:
        if value not in DESTINATIONS:
            raise ValueError(f"Unknown destination: {value}")
        return value

    @property
    def title(self) -> str:
        parts = [str(self.year or "Year"), self.make or "Make", self.model or "Model"]
        return " ".join(parts)


class InventoryVehicle(BaseModel):
    id: str
    vin: str = ""
    year: Optional[int] = None
    make: str = ""
    model: str = ""
    trim: str = ""
    color: str = ""
    body_style: str = ""
    fuel_type: str = ""
    price: float = Field(default=0, ge=0)
    status: VehicleStatus = VehicleStatus.new
    location: str = ""
    images: List[str] = Field(default_factory=list)
    listed_date: Optional[date] = None
    buyer_name: Optional[str] = None
    buyer_email: Optional[str] = None
    buyer_phone: Optional[str] = None
    sale_price: Optional[float] = None
    sale_date: Optional[date] = None
    sold_date: Optional[date] = None

    @property
    def title(self) -> str:
        return f"{self.year or ''} {self.make} {self.model}".strip()


class ContractDraft(BaseModel):
    contract_number: str
    vehicle_id: str
    vehicle: str
    vin: str
    buyer_name: str
    buyer_email: str
    buyer_phone: str
    sale_price: float
    sale_date: Optional[date] = None


class DispatchSettings(BaseModel):
    auto_calculate_eta: bool = True
    overdue_alert_days: int = Field(default=2, ge=0)
    default_destination: str = DESTINATIONS[0]
    require_keys_for_delivery: bool = True
    require_title_for_ready: bool = True
    standard_prep_time: int = Field(default=3, ge=0)

    @field_validator("default_destination")
    @classmethod
    def _known_destination(cls, value: str) -> str:
        if value not in DESTINATIONS:
            raise ValueError(f"Unknown destination: {value}")
        return value


class NotificationEvent(BaseModel):
    source: str
    title: str
    description: str
    type: str = "info"
