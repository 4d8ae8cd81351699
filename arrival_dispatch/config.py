from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Union

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .schema import DispatchSettings

if TYPE_CHECKING:
    from .notifications import Notifier

load_dotenv()

DATA_DIR = Path(os.getenv("DISPATCH_DATA_DIR", Path(__file__).resolve().parent.parent / "data"))
SETTINGS_DIR = DATA_DIR / "settings"
SETTINGS_PATH = Path(os.getenv("DISPATCH_SETTINGS_PATH", DATA_DIR / "dispatch_settings.json"))
NOTIFIER_PROVIDER = os.getenv("DISPATCH_NOTIFIER", "mock")
LOG_LEVEL = os.getenv("DISPATCH_LOG_LEVEL", "INFO")

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("arrival_dispatch").setLevel((level or LOG_LEVEL).upper())


def list_settings_profiles() -> List[str]:
    if not SETTINGS_DIR.exists():
        return []
    return sorted(p.stem for p in SETTINGS_DIR.glob("*.json"))


def load_dispatch_settings(profile: str) -> DispatchSettings:
    path = SETTINGS_DIR / f"{profile}.json"
    if not path.exists():
        raise FileNotFoundError(f"Dispatch settings profile not found: {path}")
    data = json.loads(path.read_text())
    return DispatchSettings.model_validate(data)


class SettingsStore:
    """Holds the single active DispatchSettings record.

    Read once at startup and replaced wholesale on save. There is no
    history: saving overwrites the file and tells the notifier.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        notifier: Optional["Notifier"] = None,
        save_delay: float = 0.0,
    ):
        self.path = Path(path) if path else SETTINGS_PATH
        self.notifier = notifier
        self.save_delay = save_delay
        self._current: Optional[DispatchSettings] = None

    def load(self) -> DispatchSettings:
        if self.path.exists():
            data = json.loads(self.path.read_text())
            self._current = DispatchSettings.model_validate(data)
        else:
            logger.info("No dispatch settings at %s, using defaults", self.path)
            self._current = DispatchSettings()
        return self._current

    @property
    def current(self) -> DispatchSettings:
        if self._current is None:
            return self.load()
        return self._current

    def save(self, settings: Union[DispatchSettings, Dict]) -> DispatchSettings:
        if isinstance(settings, DispatchSettings):
            settings = settings.model_dump()
        try:
            updated = DispatchSettings.model_validate(settings)
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(exc) from exc

        if self.save_delay:
            time.sleep(self.save_delay)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(updated.model_dump(), indent=2))
        self._current = updated
        if self.notifier:
            self.notifier.send(
                "Dispatch",
                "Settings Saved",
                "Dispatch operational configuration updated.",
                type="success",
            )
        return updated
