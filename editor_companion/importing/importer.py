"""
Asset import requests coming from the companion.

Requests arrive inside a companion callback, where the host must not touch
its asset state, so each one is deferred to the completion queue. Every
request is checked against the project's asset root before anything on disk
is touched.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ..core.deferred_queue import DeferredCompletionQueue, DeferredTask
from ..core.errors import ImportRejectedError
from ..core.host import EditorHost
from ..core.logging_utils import get_module_logger

logger = get_module_logger("AssetImporter")

SOURCE_PATH_KEY = "component_path"


@dataclass(frozen=True)
class ImportRequest:
    asset_data: Dict[str, Any]
    dst_directory: str
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ImportRequest":
        if "asset_data" not in data or "dst_directory" not in data:
            raise ValueError("import request needs 'asset_data' and 'dst_directory'")
        asset_data = data["asset_data"]
        if not isinstance(asset_data, Mapping):
            raise ValueError("'asset_data' must be a mapping")
        return cls(
            asset_data=dict(asset_data),
            dst_directory=str(data["dst_directory"]),
            options=dict(data.get("options") or {}),
        )

    @property
    def source_path(self) -> Path:
        source = self.asset_data.get(SOURCE_PATH_KEY)
        if not source:
            raise ValueError(f"asset_data has no '{SOURCE_PATH_KEY}'")
        return Path(source)


class AssetImporter:

    def __init__(self, editor: EditorHost, queue: DeferredCompletionQueue):
        self.editor = editor
        self.queue = queue

    def resolve_destination(self, request: ImportRequest) -> Path:
        """Return the target file, rejecting anything outside the asset root."""
        asset_root = Path(self.editor.asset_root).resolve()
        dst_dir = Path(request.dst_directory)
        if not dst_dir.is_absolute():
            dst_dir = asset_root / dst_dir
        destination = (dst_dir / request.source_path.name).resolve()

        if destination == asset_root or asset_root not in destination.parents:
            raise ImportRejectedError(
                f"destination {destination} is outside the asset root {asset_root}"
            )
        return destination

    def enqueue(self, request: ImportRequest) -> DeferredTask:
        return self.queue.defer(f"import:{request.source_path.name}", self.import_asset, request)

    def enqueue_mapping(self, data: Mapping[str, Any]) -> DeferredTask:
        return self.enqueue(ImportRequest.from_mapping(data))

    def import_asset(self, request: ImportRequest) -> Optional[Path]:
        """Copy the asset into the project.

        Returns the destination, or None when the user declined to overwrite
        an existing file (that file is left untouched).
        """
        destination = self.resolve_destination(request)
        source = request.source_path
        if not source.is_file():
            raise FileNotFoundError(f"asset source not found: {source}")

        if destination.exists() and not self.editor.confirm_overwrite(destination):
            logger.info("Skipping import of %s: user kept existing file", destination)
            return None

        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
        logger.info("Imported %s -> %s", source, destination)

        self.editor.refresh_assets(request.options)
        return destination
