"""Device identity persisted in a local JSON file."""

import json
import logging
import random
import string
from pathlib import Path

from syncflow.domain.models.identity import Identity
from syncflow.domain.models.presence_record import DeviceClass

logger = logging.getLogger(__name__)

DEVICE_ID_PREFIX = "device_"
_BASE36 = string.digits + string.ascii_lowercase

DEVICE_NAMES: dict[DeviceClass, tuple[str, ...]] = {
    DeviceClass.MOBILE: ("My phone", "Mobile device", "Handset"),
    DeviceClass.LAPTOP: ("My laptop", "MacBook", "Notebook"),
    DeviceClass.DESKTOP: ("My desktop", "Computer", "PC"),
}


def generate_device_id(rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    return DEVICE_ID_PREFIX + "".join(rng.choice(_BASE36) for _ in range(9))


def pick_device_name(device_class: DeviceClass, rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    names = DEVICE_NAMES.get(device_class, DEVICE_NAMES[DeviceClass.DESKTOP])
    return rng.choice(names)


class LocalProfileStore:
    """Generates the device id and name once and keeps returning them.

    A missing or unreadable file is replaced with a freshly generated profile.
    """

    def __init__(
        self, path: str | Path, device_class: DeviceClass, rng: random.Random | None = None
    ) -> None:
        self._path = Path(path)
        self._device_class = device_class
        self._rng = rng or random.Random()
        self._cached: Identity | None = None

    def device_identity(self) -> Identity:
        if self._cached is None:
            self._cached = self._load() or self._create()
        return self._cached

    def _load(self) -> Identity | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return Identity(id=data["deviceId"], display_name=data["deviceName"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable device profile {self._path}: {e}")
            return None

    def _create(self) -> Identity:
        identity = Identity(
            id=generate_device_id(self._rng),
            display_name=pick_device_name(self._device_class, self._rng),
        )
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps({"deviceId": identity.id, "deviceName": identity.display_name}),
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning(f"Could not persist device profile to {self._path}: {e}")
        logger.info(f"Generated device identity {identity.id} ({identity.display_name})")
        return identity
