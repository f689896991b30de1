"""
Configuration for the sync engine.

Values come from constructor defaults, environment variables, or the
``expense_sync`` section of a settings.yaml file:

```yaml
expense_sync:
  api_url: "http://localhost:5000/api"
  owner_id: "user123"
  local_path: "~/.expense_sync"
  request_timeout: 10
  probe_interval: 15
```
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

DEFAULT_API_URL = "http://localhost:5000/api"
DEFAULT_OWNER_ID = "user123"
DEFAULT_LOCAL_PATH = Path.home() / ".expense_sync"
DEFAULT_SLOT_NAME = "expenses"


@dataclass
class SyncConfig:
    """Settings shared by the local store, remote client and engine.

    Attributes:
        api_url: Base URL of the remote expense service
        owner_id: Owner whose expenses this client manages
        local_path: Directory holding the local slot
        slot_name: Name of the local slot (file stem)
        request_timeout: Total timeout per HTTP request (seconds)
        probe_interval: Seconds between connectivity probes
        probe_timeout: Timeout for a single connectivity probe (seconds)
    """

    api_url: str = DEFAULT_API_URL
    owner_id: str = DEFAULT_OWNER_ID
    local_path: Path = DEFAULT_LOCAL_PATH
    slot_name: str = DEFAULT_SLOT_NAME
    request_timeout: float = 10.0
    probe_interval: float = 15.0
    probe_timeout: float = 3.0

    def __post_init__(self) -> None:
        self.local_path = Path(self.local_path).expanduser()
        self.api_url = self.api_url.rstrip("/")
        if not self.api_url:
            raise ConfigError("api_url must not be empty")
        if not self.owner_id:
            raise ConfigError("owner_id must not be empty")
        if self.request_timeout <= 0 or self.probe_timeout <= 0 or self.probe_interval <= 0:
            raise ConfigError("timeouts and probe_interval must be positive")

    @property
    def slot_path(self) -> Path:
        """Path of the JSON file backing the local slot."""
        return self.local_path / f"{self.slot_name}.json"

    @classmethod
    def from_env(cls) -> SyncConfig:
        """Create config from environment variables.

        Optional env vars:
            EXPENSE_SYNC_API_URL: Remote service base URL
            EXPENSE_SYNC_OWNER_ID: Owner id
            EXPENSE_SYNC_LOCAL_PATH: Directory for the local slot
            EXPENSE_SYNC_REQUEST_TIMEOUT: HTTP timeout in seconds
            EXPENSE_SYNC_PROBE_INTERVAL: Seconds between connectivity probes
        """
        values: dict[str, Any] = {}
        env_map = {
            "EXPENSE_SYNC_API_URL": "api_url",
            "EXPENSE_SYNC_OWNER_ID": "owner_id",
            "EXPENSE_SYNC_LOCAL_PATH": "local_path",
            "EXPENSE_SYNC_REQUEST_TIMEOUT": "request_timeout",
            "EXPENSE_SYNC_PROBE_INTERVAL": "probe_interval",
        }
        for env_name, field_name in env_map.items():
            raw = os.environ.get(env_name)
            if raw:
                values[field_name] = raw
        return cls._build(values, source="environment")

    @classmethod
    def from_file(cls, path: Path | None = None) -> SyncConfig:
        """Load config from a settings.yaml file.

        A missing file yields the defaults.

        Raises:
            ConfigError: If the file cannot be parsed
        """
        path = path or DEFAULT_LOCAL_PATH / "settings.yaml"
        if not path.exists():
            return cls()
        try:
            with open(path, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read settings: {e}", str(path)) from e
        if not isinstance(raw, dict):
            raise ConfigError("Settings file must contain a mapping", str(path))
        section = raw.get("expense_sync", {}) or {}
        if not isinstance(section, dict):
            raise ConfigError("'expense_sync' section must be a mapping", str(path))
        return cls._build(section, source=str(path))

    @classmethod
    def _build(cls, values: dict[str, Any], source: str) -> SyncConfig:
        known = {f.name: f for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in values.items():
            if key not in known:
                continue
            if key in ("request_timeout", "probe_interval", "probe_timeout"):
                try:
                    value = float(value)
                except (TypeError, ValueError):
                    raise ConfigError(f"{key} must be a number, got {value!r}", source) from None
            elif key == "local_path":
                value = Path(str(value))
            else:
                value = str(value)
            kwargs[key] = value
        return cls(**kwargs)
