from __future__ import annotations

from abc import ABC, abstractmethod
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from .config import DATA_DIR
from .schema import NotificationEvent

EVENT_LOG_PATH = DATA_DIR / "dispatch_events.jsonl"

logger = logging.getLogger(__name__)


class Notifier(ABC):
    @abstractmethod
    def notify(self, event: NotificationEvent) -> None:
        raise NotImplementedError

    def send(self, source: str, title: str, description: str, type: str = "info") -> None:
        self.notify(NotificationEvent(source=source, title=title, description=description, type=type))


class MockNotifier(Notifier):
    def __init__(self, path: Optional[Path] = None):
        self.path = path or EVENT_LOG_PATH

    def notify(self, event: NotificationEvent) -> None:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **event.model_dump(),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a") as fh:
            fh.write(json.dumps(payload) + "\n")
        logger.info("%s: %s", event.title, event.description)


class InMemoryNotifier(Notifier):
    def __init__(self):
        self.events: List[NotificationEvent] = []

    def notify(self, event: NotificationEvent) -> None:
        self.events.append(event)
        logger.debug("%s: %s", event.title, event.description)

    @property
    def descriptions(self) -> List[str]:
        return [event.description for event in self.events]


def read_events(limit: int = 20, path: Optional[Path] = None) -> List[Dict]:
    path = path or EVENT_LOG_PATH
    if not path.exists():
        return []
    lines = path.read_text().strip().splitlines()
    if not lines or not lines[0].strip():
        return []
    return [json.loads(line) for line in lines[-limit:]]


def clear_events(path: Optional[Path] = None) -> None:
    path = path or EVENT_LOG_PATH
    if path.exists():
        path.write_text("")


def get_notifier(provider: str) -> Notifier:
    if provider == "mock":
        return MockNotifier()
    if provider == "memory":
        return InMemoryNotifier()
    raise ValueError(f"Unsupported notifier provider: {provider}")
