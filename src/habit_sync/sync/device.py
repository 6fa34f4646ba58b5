"""Account identity.

Before sign-in the remote namespace is scoped by a stable per-device id,
persisted to disk on first access. Signing in switches the scope to the
account id.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from uuid import uuid4

logger = logging.getLogger(__name__)

DEVICE_ID_PREFIX = "device_"


def get_device_id(data_dir: Path) -> str:
    """Return the persistent device id for this data directory.

    Reads ``{data_dir}/device_id``. If the file is missing or empty, a new
    ``device_<uuid4>`` id is generated and written there.
    """
    id_path = data_dir / "device_id"

    if id_path.exists():
        try:
            existing = id_path.read_text(encoding="utf-8").strip()
            if existing:
                return existing
        except OSError:
            logger.warning("Could not read %s, generating a new device id", id_path)

    new_id = f"{DEVICE_ID_PREFIX}{uuid4()}"

    data_dir.mkdir(parents=True, exist_ok=True)
    id_path.write_text(new_id, encoding="utf-8")

    return new_id


class AccountIdentity(ABC):
    """Identifier scoping the remote document namespace."""

    @abstractmethod
    def current_id(self) -> str:
        """Account id when authenticated, else the device id."""
        ...

    @abstractmethod
    def is_authenticated(self) -> bool: ...

    @abstractmethod
    def sign_in(self, account_id: str) -> None:
        """Switch the scope to an account."""
        ...

    @abstractmethod
    def sign_out(self) -> None:
        """Switch the scope back to the device."""
        ...


class DeviceAccountIdentity(AccountIdentity):
    """Identity backed by a device id file plus an optional signed-in account."""

    def __init__(self, data_dir: Path, account_id: str | None = None) -> None:
        self._data_dir = data_dir
        self._device_id: str | None = None
        self._account_id = account_id or None

    @property
    def device_id(self) -> str:
        if self._device_id is None:
            self._device_id = get_device_id(self._data_dir)
        return self._device_id

    @property
    def account_id(self) -> str | None:
        return self._account_id

    def current_id(self) -> str:
        return self._account_id or self.device_id

    def is_authenticated(self) -> bool:
        return self._account_id is not None

    def sign_in(self, account_id: str) -> None:
        if not account_id:
            raise ValueError("account_id must not be empty")
        self._account_id = account_id
        logger.info("Signed in as %s", account_id)

    def sign_out(self) -> None:
        self._account_id = None
        logger.info("Signed out, using device id %s", self.device_id)
