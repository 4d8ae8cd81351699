from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from pydantic import BaseModel

from .errors import DuplicateNameError, UnknownMakeError, ValidationError
from .notifications import Notifier
from .schema import TBD_DRIVER, ArrivalRecord

logger = logging.getLogger(__name__)

DEFAULT_MAKES = [
    "Honda", "Toyota", "Tesla", "Ford", "GMC", "BMW", "Mercedes-Benz", "Chevrolet",
    "Audi", "Lexus", "Nissan", "Jeep", "Infiniti", "Mitsubishi", "Datsun",
]

DEFAULT_MODELS_BY_MAKE: Dict[str, List[str]] = {
    "Honda": ["Accord", "Civic", "CR-V", "Pilot", "Odyssey"],
    "Toyota": ["Camry", "Corolla", "RAV4", "Highlander", "Tacoma", "Sienna"],
    "Tesla": ["Model 3", "Model Y", "Model S", "Model X", "Cybertruck"],
    "Ford": ["F-150", "Mustang", "Explorer", "Escape", "Bronco"],
    "GMC": ["Sierra", "Yukon", "Terrain", "Acadia"],
    "BMW": ["3 Series", "5 Series", "X3", "X5", "M3"],
    "Mercedes-Benz": ["C-Class", "E-Class", "GLC", "GLE", "S-Class"],
    "Chevrolet": ["Silverado", "Equinox", "Malibu", "Tahoe", "Corvette"],
    "Audi": ["A4", "A6", "Q5", "Q7", "e-tron"],
    "Lexus": ["RX", "ES", "NX", "GX", "IS"],
    "Nissan": ["Altima", "Rogue", "Sentra", "Pathfinder", "Frontier"],
    "Jeep": ["Wrangler", "Grand Cherokee", "Cherokee", "Compass"],
    "Infiniti": ["Q50", "QX60", "QX80", "QX50"],
    "Mitsubishi": ["Outlander", "Eclipse Cross", "Mirage", "Lancer"],
    "Datsun": ["240Z", "510", "280ZX", "B210"],
}

DEFAULT_COLORS = [
    "Black", "White", "Silver", "Grey", "Blue", "Red", "Green", "Yellow", "Orange",
    "Brown", "Beige", "Purple", "Gold", "Bronze", "Copper", "Burgundy", "Other",
]

DEFAULT_TRANSPORTERS = [
    "Quick Tow LLC",
    "Reliable Auto Shippers",
    "Canadian Logistics Group",
    "East Coast Towing",
]


class CatalogKind(str, Enum):
    make = "make"
    model = "model"
    color = "color"
    transporter = "transporter"


class DeleteConfirmation(BaseModel):
    kind: CatalogKind
    target_name: str
    parent_make: Optional[str] = None
    warning: str


def _clean(name: str, field: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError({field: "Name is required"})
    return cleaned


def _find(names: Iterable[str], name: str) -> Optional[str]:
    folded = (name or "").strip().casefold()
    for existing in names:
        if existing.casefold() == folded:
            return existing
    return None


def _contains(names: Iterable[str], name: str) -> bool:
    return _find(names, name) is not None


def _matches(name: str, term: str) -> bool:
    return term.lower() in name.lower()


class ReferenceRegistry:
    """Makes, models per make, colors and transport companies.

    The four catalogs are independent of each other and of the arrival
    store; deleting an entry never touches arrivals that still carry the
    old string.
    """

    def __init__(
        self,
        makes: Optional[Iterable[str]] = None,
        models_by_make: Optional[Dict[str, Iterable[str]]] = None,
        colors: Optional[Iterable[str]] = None,
        transporters: Optional[Iterable[str]] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.makes: List[str] = sorted(DEFAULT_MAKES if makes is None else makes)
        source = DEFAULT_MODELS_BY_MAKE if models_by_make is None else models_by_make
        self.models_by_make: Dict[str, List[str]] = {
            make: sorted(source.get(make, [])) for make in self.makes
        }
        self.colors: List[str] = sorted(DEFAULT_COLORS if colors is None else colors)
        self.transporters: List[str] = sorted(
            DEFAULT_TRANSPORTERS if transporters is None else transporters
        )
        self.notifier = notifier

    @classmethod
    def empty(cls, notifier: Optional[Notifier] = None) -> "ReferenceRegistry":
        return cls(makes=[], models_by_make={}, colors=[], transporters=[], notifier=notifier)

    def _notify(self, title: str, description: str) -> None:
        logger.info(description)
        if self.notifier:
            self.notifier.send("Registry", title, description, type="success")

    def list_makes(self) -> List[str]:
        return list(self.makes)

    def models_for(self, make: str) -> List[str]:
        return list(self.models_by_make.get(make, []))

    def list_colors(self) -> List[str]:
        return list(self.colors)

    def list_transporters(self) -> List[str]:
        return list(self.transporters)

    def add_make(self, name: str) -> str:
        name = _clean(name, "make")
        if _contains(self.makes, name):
            raise DuplicateNameError("This make already exists.")
        self.makes = sorted(self.makes + [name])
        self.models_by_make[name] = []
        self._notify("Manufacturer Added", f"Added new manufacturer: {name}")
        return name

    def add_model(self, make: str, name: str) -> str:
        name = _clean(name, "model")
        parent = _find(self.makes, make)
        if parent is None:
            raise UnknownMakeError(f"Unknown manufacturer: {make}")
        existing = self.models_by_make[parent]
        if _contains(existing, name):
            raise DuplicateNameError("This model already exists for this make.")
        self.models_by_make[parent] = sorted(existing + [name])
        self._notify("Model Added", f"Added {name} to {parent}")
        return name

    def add_color(self, name: str) -> str:
        name = _clean(name, "color")
        if _contains(self.colors, name):
            raise DuplicateNameError("This color already exists.")
        self.colors = sorted(self.colors + [name])
        self._notify("Color Added", f"Added new color: {name}")
        return name

    def add_transporter(self, name: str) -> str:
        name = _clean(name, "transporter")
        if _contains(self.transporters, name):
            raise DuplicateNameError("This transporter already exists.")
        self.transporters = sorted(self.transporters + [name])
        self._notify("Transporter Added", f"Registered new transport company: {name}")
        return name

    def delete_make(self, name: str) -> bool:
        existing = _find(self.makes, name)
        if existing is None:
            return False
        self.makes.remove(existing)
        self.models_by_make.pop(existing, None)
        self._notify("Manufacturer Deleted", f"Deleted manufacturer: {existing}")
        return True

    def delete_model(self, make: str, name: str) -> bool:
        parent = _find(self.makes, make)
        if parent is None:
            raise UnknownMakeError(f"Unknown manufacturer: {make}")
        existing = _find(self.models_by_make[parent], name)
        if existing is None:
            return False
        self.models_by_make[parent].remove(existing)
        self._notify("Model Deleted", f"Deleted model: {existing}")
        return True

    def delete_color(self, name: str) -> bool:
        existing = _find(self.colors, name)
        if existing is None:
            return False
        self.colors.remove(existing)
        self._notify("Color Deleted", f"Deleted color: {existing}")
        return True

    def delete_transporter(self, name: str) -> bool:
        existing = _find(self.transporters, name)
        if existing is None:
            return False
        self.transporters.remove(existing)
        self._notify("Transporter Deleted", f"Deleted transport company: {existing}")
        return True

    def request_delete(
        self, kind: Union[CatalogKind, str], name: str, parent_make: Optional[str] = None
    ) -> DeleteConfirmation:
        kind = CatalogKind(kind)
        if kind == CatalogKind.model and not parent_make:
            raise ValidationError({"parent_make": "A manufacturer is required to delete a model"})
        if kind == CatalogKind.make:
            warning = f"Deleting {name} will also remove all associated models."
        elif kind == CatalogKind.model:
            warning = f"{name} will be removed from {parent_make}."
        else:
            warning = f"{name} will be removed from the {kind.value} registry."
        return DeleteConfirmation(kind=kind, target_name=name, parent_make=parent_make, warning=warning)

    def confirm_delete(self, confirmation: DeleteConfirmation) -> bool:
        kind = confirmation.kind
        if kind == CatalogKind.make:
            return self.delete_make(confirmation.target_name)
        if kind == CatalogKind.model:
            return self.delete_model(confirmation.parent_make, confirmation.target_name)
        if kind == CatalogKind.color:
            return self.delete_color(confirmation.target_name)
        return self.delete_transporter(confirmation.target_name)

    def search_makes(self, term: str = "") -> List[str]:
        return [
            make
            for make in self.makes
            if _matches(make, term)
            or any(_matches(model, term) for model in self.models_by_make.get(make, []))
        ]

    def search_colors(self, term: str = "") -> List[str]:
        return [c for c in self.colors if _matches(c, term)]

    def search_transporters(self, term: str = "") -> List[str]:
        return [t for t in self.transporters if _matches(t, term)]

    def stale_references(self, record: ArrivalRecord) -> Dict[str, str]:
        stale: Dict[str, str] = {}
        if record.make and record.make not in self.makes:
            stale["make"] = record.make
        if record.model and record.model not in self.models_by_make.get(record.make, []):
            stale["model"] = record.model
        if record.color and record.color not in self.colors:
            stale["color"] = record.color
        driver = record.transporter.driver
        if driver and driver != TBD_DRIVER and driver not in self.transporters:
            stale["transporter.driver"] = driver
        return stale
