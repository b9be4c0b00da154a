# infrastructure/storage/key_value_storage.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from domain.ports.storage_port import KeyValueStoragePort

logger = logging.getLogger(__name__)


class MemoryKeyValueStorage(KeyValueStoragePort):
    """Process-local storage; lives as long as the object does."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileKeyValueStorage(KeyValueStoragePort):
    """
    Storage backed by a single JSON object on disk, so values survive restarts
    the way localStorage survives page reloads. An unreadable file is treated
    as empty and rewritten on the next ``set``.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding='utf-8') or '{}')
        except (OSError, ValueError) as e:
            logger.warning(f'Ignoring unreadable storage file {self.path}: {e}')
            return {}
        if not isinstance(data, dict):
            logger.warning(f'{self.path} does not contain a JSON object - ignored')
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + '.tmp')
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding='utf-8')
        tmp.replace(self.path)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)
