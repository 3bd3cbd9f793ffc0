"""Publish requests and the payload handed to the companion."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from ..core.errors import PackageExportError
from ..core.host import EditorHost
from ..core.logging_utils import get_module_logger
from .settings import RecorderKind

logger = get_module_logger("Publish")

PUBLISH_SERVICE = "publish_callback"

# Recorders implied by an asset type when the request does not list them.
# An image sequence also carries a reviewable movie when one is configured.
ASSET_TYPE_RECORDERS: Dict[str, Tuple[RecorderKind, ...]] = {
    "image_sequence": (RecorderKind.IMAGE_SEQUENCE, RecorderKind.MOVIE),
    "movie": (RecorderKind.MOVIE,),
    "reviewable": (RecorderKind.MOVIE,),
    "package": (),
}


@dataclass(frozen=True)
class PublishRequest:
    asset_type: str
    recorder_kinds: Tuple[RecorderKind, ...] = ()
    export_package: bool = False
    options: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PublishRequest":
        asset_type = str(data.get("asset_type", "")).strip().lower()
        options = dict(data.get("options") or {})

        if "recorders" in options:
            kinds = tuple(RecorderKind(value) for value in options["recorders"])
        else:
            kinds = ASSET_TYPE_RECORDERS.get(asset_type, ())

        export_package = bool(options.get("package", asset_type == "package"))
        return cls(asset_type=asset_type, recorder_kinds=kinds,
                   export_package=export_package, options=options)

    def to_record(self) -> Dict[str, Any]:
        return {
            "asset_type": self.asset_type,
            "recorder_kinds": [kind.value for kind in self.recorder_kinds],
            "export_package": self.export_package,
            "options": dict(self.options),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "PublishRequest":
        return cls(
            asset_type=str(record.get("asset_type", "")),
            recorder_kinds=tuple(RecorderKind(v) for v in record.get("recorder_kinds", ())),
            export_package=bool(record.get("export_package", False)),
            options=dict(record.get("options") or {}),
        )


def compose_payload(fragments: Iterable[Mapping[str, str]]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for fragment in fragments:
        payload.update(fragment)
    return payload


def export_package_result(editor: EditorHost, destination: Path) -> Dict[str, Any]:
    """Export a package, reporting failure in the payload instead of raising."""
    try:
        package_path = editor.export_package(destination)
    except PackageExportError as e:
        logger.error("Package export skipped: %s", e)
        return {"success": False, "error_msg": str(e)}
    logger.info("Exported package %s", package_path)
    return {"success": True, "package_filepath": str(package_path)}


def finalize_payload(
    payload: Mapping[str, Any],
    editor: EditorHost,
    export_destination: Optional[Path],
) -> Dict[str, Any]:
    result = dict(payload)
    if export_destination is not None:
        result.update(export_package_result(editor, export_destination))
    return result


__all__ = [
    "PUBLISH_SERVICE",
    "PublishRequest",
    "compose_payload",
    "export_package_result",
    "finalize_payload",
]
