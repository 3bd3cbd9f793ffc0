"""
Durable "is recording" marker.

The marker file's existence is the recording flag; its contents carry the
little state a reload would otherwise destroy (the recorder's original
output path and the publish request that started the capture).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.file_sync_utils import read_json, write_json_atomic
from ..core.logging_utils import get_module_logger

logger = get_module_logger("RecordingMarker")


@dataclass(frozen=True)
class MarkerRecord:
    kind: str
    saved_output_path: Optional[str]
    override_path: str
    extension: str = ""
    request: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MarkerRecord":
        return cls(
            kind=str(data.get("kind", "")),
            saved_output_path=data.get("saved_output_path"),
            override_path=str(data.get("override_path", "")),
            extension=str(data.get("extension", "")),
            request=dict(data.get("request") or {}),
        )


class RecordingMarker:

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def write(self, record: MarkerRecord) -> None:
        write_json_atomic(self.path, asdict(record))
        logger.debug("Marker set: %s", self.path)

    def read(self) -> Optional[MarkerRecord]:
        """Return the stored record.

        A marker that exists but cannot be parsed still means "recording";
        callers get an empty record so recovery can proceed without the
        saved path.
        """
        if not self.path.exists():
            return None
        data = read_json(self.path)
        if data is None:
            logger.warning("Recording marker %s is unreadable", self.path)
            return MarkerRecord(kind="", saved_output_path=None, override_path="")
        return MarkerRecord.from_dict(data)

    def clear(self) -> None:
        try:
            self.path.unlink()
            logger.debug("Marker cleared: %s", self.path)
        except FileNotFoundError:
            pass
