"""Configuration for habit-sync.

Configuration is stored in ~/.habitsync/config.toml (or $HABITSYNC_DIR).
The local database lives next to it in habits.db.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Account ids: alphanumeric, hyphens, underscores, dots, @ (for emails)
_ACCOUNT_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_\-\.@]+$")
_ACCOUNT_ID_MAX_LEN = 128

# Anything that could break out of a TOML basic string
_UNSAFE_TOML_CHARS = re.compile(r'["\\\n\r]')


def get_habitsync_dir() -> Path:
    """Get the habit-sync data directory.

    Priority:
    1. HABITSYNC_DIR environment variable
    2. ~/.habitsync/
    """
    env_dir = os.environ.get("HABITSYNC_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".habitsync"


def validate_account_id(value: str) -> str:
    """Return a stripped account id, or raise ValueError if it is not usable."""
    cleaned = value.strip()
    if not cleaned or len(cleaned) > _ACCOUNT_ID_MAX_LEN:
        raise ValueError(f"Account id must be 1-{_ACCOUNT_ID_MAX_LEN} characters")
    if not _ACCOUNT_ID_PATTERN.match(cleaned):
        raise ValueError(f"Invalid account id: {value!r}")
    return cleaned


def _safe_string(value: str, name: str) -> str:
    if _UNSAFE_TOML_CHARS.search(value):
        raise ValueError(f"Invalid characters in {name}")
    return value


def _clamp_float(raw: Any, default: float, low: float, high: float) -> float:
    try:
        return max(low, min(float(raw), high))
    except (ValueError, TypeError):
        return default


DEFAULT_SERVER_URL = "http://127.0.0.1:8765"


@dataclass(frozen=True)
class RemoteConfig:
    """Where the habit document server lives."""

    server_url: str = DEFAULT_SERVER_URL
    api_key: str = ""
    timeout: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.server_url)

    def to_dict(self) -> dict[str, Any]:
        return {
            "server_url": self.server_url,
            "api_key": self.api_key,
            "timeout": self.timeout,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteConfig:
        return cls(
            server_url=str(data.get("server_url", DEFAULT_SERVER_URL)).strip(),
            api_key=str(data.get("api_key", "")).strip(),
            timeout=_clamp_float(data.get("timeout", 10.0), 10.0, 0.5, 300.0),
        )


@dataclass(frozen=True)
class ConnectivityConfig:
    """Health probe settings."""

    probe_interval: float = 30.0
    probe_timeout: float = 5.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "probe_interval": self.probe_interval,
            "probe_timeout": self.probe_timeout,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConnectivityConfig:
        return cls(
            probe_interval=_clamp_float(data.get("probe_interval", 30.0), 30.0, 1.0, 3600.0),
            probe_timeout=_clamp_float(data.get("probe_timeout", 5.0), 5.0, 0.5, 60.0),
        )


@dataclass
class HabitSyncConfig:
    """habit-sync configuration.

    Storage location: ~/.habitsync/config.toml
    Database location: ~/.habitsync/habits.db
    """

    data_dir: Path = field(default_factory=get_habitsync_dir)

    # Signed-in account, empty while using the device identity
    account_id: str = ""

    remote: RemoteConfig = field(default_factory=RemoteConfig)
    connectivity: ConnectivityConfig = field(default_factory=ConnectivityConfig)

    version: str = "1.0"

    @classmethod
    def load(cls, config_path: Path | None = None) -> HabitSyncConfig:
        """Load configuration from file, or create the default if it doesn't exist."""
        if config_path is None:
            data_dir = get_habitsync_dir()
            config_path = data_dir / "config.toml"
        else:
            data_dir = config_path.parent

        if not config_path.exists():
            config = cls(data_dir=data_dir)
            config.save()
            logger.info("Created default config at %s", config_path)
            return config

        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        account_id = str(data.get("account_id", ""))
        if account_id:
            try:
                account_id = validate_account_id(account_id)
            except ValueError:
                logger.warning("Ignoring invalid account_id in %s", config_path)
                account_id = ""

        return cls(
            data_dir=data_dir,
            account_id=account_id,
            remote=RemoteConfig.from_dict(data.get("remote", {})),
            connectivity=ConnectivityConfig.from_dict(data.get("connectivity", {})),
            version=str(data.get("version", "1.0")),
        )

    def save(self) -> None:
        """Save configuration to TOML file (atomic write via temp+rename)."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

        if self.account_id:
            validate_account_id(self.account_id)
        server_url = _safe_string(self.remote.server_url, "server_url")
        api_key = _safe_string(self.remote.api_key, "api_key")

        lines = [
            "# habit-sync configuration",
            "",
            f'version = "{_safe_string(self.version, "version")}"',
            f'account_id = "{self.account_id}"',
            "",
            "# Habit document server",
            "[remote]",
            f'server_url = "{server_url}"',
            f'api_key = "{api_key}"',
            f"timeout = {self.remote.timeout}",
            "",
            "# Connectivity probing",
            "[connectivity]",
            f"probe_interval = {self.connectivity.probe_interval}",
            f"probe_timeout = {self.connectivity.probe_timeout}",
        ]

        content = "\n".join(lines) + "\n"
        fd, tmp_path = tempfile.mkstemp(dir=str(self.data_dir), suffix=".toml.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            Path(tmp_path).replace(self.config_path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.toml"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "habits.db"
