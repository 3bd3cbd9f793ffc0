"""
Durable session storage.

Holds the few values that must survive a host reload (which wipes every
in-memory object) but must not survive a host restart. The record is keyed
by the host's own process id: a restarted host has a new pid and therefore
starts with an empty store.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from .file_sync_utils import read_json, write_json_atomic
from .logging_utils import get_module_logger
from .paths import ProductPaths

PID_KEY = "companion_pid"


class SessionStore:

    def __init__(self, path: Path):
        self.path = Path(path)
        self.logger = get_module_logger("SessionStore")

    @classmethod
    def for_host(cls, paths: ProductPaths, host_pid: Optional[int] = None) -> "SessionStore":
        return cls(paths.session_store_path(host_pid if host_pid is not None else os.getpid()))

    def _load(self) -> Dict[str, Any]:
        return read_json(self.path) or {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        write_json_atomic(self.path, data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            write_json_atomic(self.path, data)

    # ------------------------------------------------------------------
    # Companion pid

    def get_pid(self) -> Optional[int]:
        value = self.get(PID_KEY)
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            self.logger.warning("Discarding malformed companion pid %r", value)
            self.delete(PID_KEY)
            return None

    def set_pid(self, pid: int) -> None:
        self.set(PID_KEY, int(pid))

    def clear_pid(self) -> None:
        self.delete(PID_KEY)
