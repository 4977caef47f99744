"""Small key-value store backed by a JSON file.

Plays the role browser local storage plays for the editor plugin: string
values under namespaced keys. With no path the store lives in memory only.
Reads are best-effort; a missing or unreadable file behaves like an empty
store.
"""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class ConfigStore:
    """String key-value storage persisted as one JSON object."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path else None
        self._memory: dict[str, str] = {}

    def _read(self) -> dict[str, str]:
        if self.path is None:
            return dict(self._memory)
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("ignoring unreadable config store %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("ignoring config store %s: top level is not an object", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        if self.path is None:
            self._memory = dict(data)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2))

    def get(self, key: str) -> str | None:
        """Return the value stored under key, or None."""
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def __repr__(self) -> str:
        location = str(self.path) if self.path else "memory"
        return f"ConfigStore({location})"
