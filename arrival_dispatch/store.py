from __future__ import annotations

import base64
import json
import logging
import mimetypes
import uuid
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .config import DATA_DIR, SettingsStore
from .errors import UnknownArrivalError, ValidationError
from .registry import ReferenceRegistry
from .schema import (
    DESTINATIONS,
    TBD_DRIVER,
    ArrivalDocument,
    ArrivalRecord,
    DispatchSettings,
    DocumentType,
    FuelType,
    InventoryVehicle,
    VehicleCategory,
)

ARRIVALS_PATH = DATA_DIR / "mock_arrivals.json"

INVENTORY_FUEL_TYPES = {
    "Gas": FuelType.gas,
    "Hybrid": FuelType.hybrid,
    "EV": FuelType.electric,
}

logger = logging.getLogger(__name__)


def load_arrivals(path: Optional[Path] = None) -> List[ArrivalRecord]:
    path = path or ARRIVALS_PATH
    if not path.exists():
        return []
    data = json.loads(path.read_text())
    return [ArrivalRecord.model_validate(item) for item in data]


def new_arrival_id() -> str:
    return f"v-new-{uuid.uuid4().hex[:9]}"


def new_document_id() -> str:
    return uuid.uuid4().hex[:9]


def encode_data_uri(source: Union[str, Path, bytes], mime_type: Optional[str] = None) -> str:
    if isinstance(source, bytes):
        payload = source
        mime_type = mime_type or "application/octet-stream"
    else:
        path = Path(source)
        payload = path.read_bytes()
        mime_type = mime_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"


def _set_path(data: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    target = data
    for part in parts[:-1]:
        if not isinstance(target.get(part), dict):
            raise ValidationError({path: "Unknown field"})
        target = target[part]
    if parts[-1] not in target:
        raise ValidationError({path: "Unknown field"})
    # A dict patch for a nested object merges into it key by key.
    if isinstance(value, dict) and isinstance(target[parts[-1]], dict):
        for key, item in value.items():
            _set_path(data, f"{path}.{key}", item)
        return
    target[parts[-1]] = value


class PendingIngest:
    """A file read that has been requested but not merged yet.

    resolve() appends to whatever list the record holds at that moment,
    so several outstanding ingests into one record all land.
    """

    def __init__(
        self,
        store: "ArrivalStore",
        arrival_id: str,
        source: Union[str, Path, bytes],
        doc_type: Optional[DocumentType] = None,
        name: Optional[str] = None,
        mime_type: Optional[str] = None,
    ):
        self.store = store
        self.arrival_id = arrival_id
        self.source = source
        self.doc_type = doc_type
        self.name = name
        self.mime_type = mime_type
        self.resolved = False

    @property
    def is_document(self) -> bool:
        return self.doc_type is not None

    def resolve(self, today: Optional[date] = None) -> ArrivalRecord:
        if self.resolved:
            raise ValidationError({"ingest": "Already resolved"})
        uri = encode_data_uri(self.source, self.mime_type)
        if self.is_document:
            name = self.name
            if name is None:
                name = Path(self.source).name if not isinstance(self.source, bytes) else "document"
            doc = ArrivalDocument(
                id=new_document_id(),
                name=name,
                type=self.doc_type,
                date=today or date.today(),
                uri=uri,
            )
            record = self.store.add_document(self.arrival_id, doc)
        else:
            record = self.store.upsert_media(self.arrival_id, uri)
        self.resolved = True
        return record


class ArrivalStore:
    """Working set of arrivals, kept in insertion order."""

    def __init__(
        self,
        records: Optional[List[ArrivalRecord]] = None,
        settings: Union[SettingsStore, DispatchSettings, None] = None,
        registry: Optional[ReferenceRegistry] = None,
    ):
        self._records: Dict[str, ArrivalRecord] = {}
        self.settings = settings
        self.registry = registry
        for record in records or []:
            self._insert(record)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ArrivalRecord]:
        return iter(self.list())

    def __contains__(self, arrival_id: str) -> bool:
        return arrival_id in self._records

    @property
    def current_settings(self) -> DispatchSettings:
        if isinstance(self.settings, SettingsStore):
            return self.settings.current
        return self.settings or DispatchSettings()

    def _insert(self, record: ArrivalRecord) -> ArrivalRecord:
        if record.id in self._records:
            raise ValidationError({"id": f"Duplicate arrival id: {record.id}"})
        self._records[record.id] = record
        return record

    def _validate(self, data: Dict[str, Any]) -> ArrivalRecord:
        try:
            return ArrivalRecord.model_validate(data)
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(exc) from exc

    def _fresh_id(self) -> str:
        arrival_id = new_arrival_id()
        while arrival_id in self._records:
            arrival_id = new_arrival_id()
        return arrival_id

    def get(self, arrival_id: str) -> ArrivalRecord:
        try:
            return self._records[arrival_id]
        except KeyError:
            raise UnknownArrivalError(f"Arrival not found: {arrival_id}") from None

    def list(self) -> List[ArrivalRecord]:
        return list(self._records.values())

    def create(self, draft: Optional[Dict[str, Any]] = None) -> ArrivalRecord:
        data: Dict[str, Any] = {"destination": self.current_settings.default_destination}
        data.update(draft or {})
        data["id"] = self._fresh_id()
        record = self._insert(self._validate(data))
        logger.info("Created arrival %s", record.id)
        return record

    def create_from_ready_asset(self, vehicle: InventoryVehicle) -> ArrivalRecord:
        draft: Dict[str, Any] = {
            "vin": vehicle.vin,
            "year": vehicle.year,
            "make": vehicle.make,
            "model": vehicle.model,
            "trim": vehicle.trim,
            "color": vehicle.color,
            "price": vehicle.price,
            "images": list(vehicle.images),
        }
        if vehicle.body_style in {c.value for c in VehicleCategory}:
            draft["category"] = vehicle.body_style
        if vehicle.fuel_type in INVENTORY_FUEL_TYPES:
            draft["fuel_type"] = INVENTORY_FUEL_TYPES[vehicle.fuel_type]
        if vehicle.location in DESTINATIONS:
            draft["destination"] = vehicle.location
        return self.create(draft)

    def update(self, arrival_id: str, patch: Dict[str, Any]) -> ArrivalRecord:
        current = self.get(arrival_id)
        if "id" in patch and patch["id"] != arrival_id:
            raise ValidationError({"id": "Arrival id cannot be changed"})
        data = current.model_dump()
        for path, value in patch.items():
            _set_path(data, path, value)
        record = self._validate(data)
        self._records[arrival_id] = record
        return record

    def save(self, record: ArrivalRecord) -> ArrivalRecord:
        record = self._validate(record.model_dump())
        self._records[record.id] = record
        return record

    def upsert_media(self, arrival_id: str, image: str) -> ArrivalRecord:
        current = self.get(arrival_id)
        return self.update(arrival_id, {"images": current.images + [image]})

    def remove_media(self, arrival_id: str, index: int) -> ArrivalRecord:
        images = list(self.get(arrival_id).images)
        if not 0 <= index < len(images):
            raise ValidationError({"images": f"No image at position {index}"})
        del images[index]
        return self.update(arrival_id, {"images": images})

    def add_document(
        self, arrival_id: str, doc: Union[ArrivalDocument, Dict[str, Any]]
    ) -> ArrivalRecord:
        if isinstance(doc, ArrivalDocument):
            doc = doc.model_dump()
        else:
            doc = {"id": new_document_id(), **doc}
        current = self.get(arrival_id)
        if any(existing.id == doc["id"] for existing in current.documents):
            raise ValidationError({"documents": f"Duplicate document id: {doc['id']}"})
        documents = [d.model_dump() for d in current.documents] + [doc]
        return self.update(arrival_id, {"documents": documents})

    def remove_document(self, arrival_id: str, doc_id: str) -> ArrivalRecord:
        current = self.get(arrival_id)
        documents = [d.model_dump() for d in current.documents if d.id != doc_id]
        return self.update(arrival_id, {"documents": documents})

    def begin_media_ingest(
        self, arrival_id: str, source: Union[str, Path, bytes], mime_type: Optional[str] = None
    ) -> PendingIngest:
        self.get(arrival_id)
        return PendingIngest(self, arrival_id, source, mime_type=mime_type)

    def begin_document_ingest(
        self,
        arrival_id: str,
        source: Union[str, Path, bytes],
        doc_type: Union[DocumentType, str] = DocumentType.other,
        name: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> PendingIngest:
        self.get(arrival_id)
        return PendingIngest(
            self, arrival_id, source, doc_type=DocumentType(doc_type), name=name, mime_type=mime_type
        )

    def field_choices(self, make: str = "") -> Dict[str, List[str]]:
        registry = self.registry or ReferenceRegistry()
        return {
            "make": registry.list_makes(),
            "model": registry.models_for(make),
            "color": registry.list_colors(),
            "transporter.driver": [TBD_DRIVER] + registry.list_transporters(),
            "destination": list(DESTINATIONS),
            "category": [c.value for c in VehicleCategory],
            "fuel_type": [f.value for f in FuelType],
        }
