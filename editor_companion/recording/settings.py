"""Recorder kinds and the typed recorder interface exposed by the host."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Protocol

from ..core.logging_utils import get_module_logger

logger = get_module_logger("RecorderSettings")


class RecorderKind(Enum):
    IMAGE_SEQUENCE = "image_sequence"
    MOVIE = "movie"

    @property
    def filename(self) -> str:
        # "<Frame>" is expanded by the recorder into the frame number.
        return "frame.<Frame>" if self is RecorderKind.IMAGE_SEQUENCE else "reviewable"

    @property
    def payload_prefix(self) -> str:
        return "image" if self is RecorderKind.IMAGE_SEQUENCE else "movie"

    @property
    def path_key(self) -> str:
        return f"{self.payload_prefix}_path"

    @property
    def ext_key(self) -> str:
        return f"{self.payload_prefix}_ext"


class RecorderSettings(Protocol):
    """One configured recorder. ``output_file`` is writable."""

    output_file: str

    @property
    def extension(self) -> str: ...


class ControllerSettings(Protocol):
    """Global recorder controller settings (frame range and rate)."""

    frame_rate: float
    frame_rate_preset: Optional[str]

    def set_frame_interval(self, start: int, end: int) -> None: ...

    def apply(self) -> None:
        """Push the global settings to every recorder."""
        ...


class RecorderHost(Protocol):
    """Typed access to the host's recorders and their active settings."""

    def get_active_recorder_settings(self, kind: RecorderKind) -> Optional[RecorderSettings]: ...

    def start_recording(self) -> bool: ...

    def get_controller_settings(self) -> Optional[ControllerSettings]: ...


# Standard playback rates offered by recorder controllers.
FRAME_RATE_PRESETS: Dict[str, float] = {
    "FR_23": 24000 / 1001,
    "FR_24": 24.0,
    "FR_25": 25.0,
    "FR_29": 30000 / 1001,
    "FR_30": 30.0,
    "FR_50": 50.0,
    "FR_59": 60000 / 1001,
    "FR_60": 60.0,
}
FRAME_RATE_TOLERANCE = 0.01


def match_frame_rate_preset(fps: float, tolerance: float = FRAME_RATE_TOLERANCE) -> Optional[str]:
    for name, value in FRAME_RATE_PRESETS.items():
        if abs(fps - value) < tolerance:
            return name
    return None


def apply_frame_settings(
    controller: Optional[ControllerSettings],
    start: int,
    end: int,
    fps: float,
) -> bool:
    """Record frames ``start``..``end`` at ``fps``.

    A rate matching a standard preset selects the preset; any other rate is
    set as a custom value. Returns False when no controller is available.
    """
    if controller is None:
        logger.warning("No recorder controller available, frame settings not applied")
        return False
    if end < start:
        raise ValueError(f"frame interval end ({end}) precedes start ({start})")
    if fps <= 0:
        raise ValueError(f"frame rate must be positive, got {fps}")

    controller.set_frame_interval(start, end)

    preset = match_frame_rate_preset(fps)
    controller.frame_rate_preset = preset
    if preset is None:
        controller.frame_rate = fps
    else:
        controller.frame_rate = FRAME_RATE_PRESETS[preset]

    controller.apply()
    logger.info("Applied frames %d-%d at %.3f fps (preset=%s)", start, end, fps, preset)
    return True


__all__ = [
    "RecorderKind",
    "RecorderSettings",
    "ControllerSettings",
    "RecorderHost",
    "FRAME_RATE_PRESETS",
    "match_frame_rate_preset",
    "apply_frame_settings",
]
