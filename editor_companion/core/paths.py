"""Path derivation for the bridge's temporary and durable files."""

from __future__ import annotations

import hashlib
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

# Environment
RESOURCE_PATH_ENV = "EDITOR_COMPANION_RESOURCE_PATH"
TEMP_ROOT_ENV = "EDITOR_COMPANION_TEMP_DIR"

# Layout inside the resource directory
BOOTSTRAP_SCRIPT_RELPATH = Path("scripts") / "companion_init.py"
CONFIG_FILENAME = "companion.txt"

# Host-side working area, relative to the project's asset root
HOST_TEMP_RELPATH = Path("companion") / "Temp"

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]+")


def sanitize_name(name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", name.strip()).strip("._")
    return cleaned or "project"


def temp_root() -> Path:
    override = os.environ.get(TEMP_ROOT_ENV)
    if override:
        return Path(override).expanduser()
    return Path(tempfile.gettempdir())


def work_dir_for(
    product_name: str,
    project_root: Union[str, Path],
    root: Optional[Path] = None,
) -> Path:
    """Deterministic per-project working directory.

    Two projects sharing a product name still get distinct directories
    because the project root is hashed into the name.
    """
    digest = hashlib.sha1(str(Path(project_root)).encode("utf-8")).hexdigest()[:10]
    return (root or temp_root()) / f"{sanitize_name(product_name)}_{digest}"


def host_temp_dir(asset_root: Union[str, Path]) -> Path:
    return Path(asset_root) / HOST_TEMP_RELPATH


@dataclass(frozen=True)
class ProductPaths:
    """Every filesystem location the bridge derives for one host project."""

    work_dir: Path

    @classmethod
    def for_project(
        cls,
        product_name: str,
        project_root: Union[str, Path],
        root: Optional[Path] = None,
    ) -> "ProductPaths":
        return cls(work_dir=work_dir_for(product_name, project_root, root))

    def capture_dir(self, kind: str) -> Path:
        return self.work_dir / "capture" / kind

    def marker_path(self, kind: str) -> Path:
        # Markers sit beside the capture directories so clearing a stale
        # capture never removes the marker of a live one.
        return self.work_dir / f".{kind}.lock"

    def session_store_path(self, host_pid: int) -> Path:
        return self.work_dir / f"session-{host_pid}.json"

    def ensure(self) -> None:
        self.work_dir.mkdir(parents=True, exist_ok=True)


__all__ = [
    "RESOURCE_PATH_ENV",
    "TEMP_ROOT_ENV",
    "BOOTSTRAP_SCRIPT_RELPATH",
    "CONFIG_FILENAME",
    "HOST_TEMP_RELPATH",
    "ProductPaths",
    "sanitize_name",
    "temp_root",
    "work_dir_for",
    "host_temp_dir",
]
