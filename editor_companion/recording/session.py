"""
Per-kind recording session.

    IDLE -> ARMED -> CAPTURING -> AWAITING_COMPLETION -> IDLE

Whether a capture is in progress is answered by the durable marker, never by
``state``: after a reload the object is rebuilt in IDLE and only the marker
tells it a capture is still running.
"""

import shutil
from enum import Enum
from typing import Dict, Optional

from ..core.errors import SessionBusyError
from ..core.logging_utils import get_module_logger
from ..core.paths import ProductPaths
from .marker import MarkerRecord, RecordingMarker
from .publish import PublishRequest
from .settings import RecorderHost, RecorderKind, RecorderSettings


class SessionState(Enum):
    IDLE = "idle"
    ARMED = "armed"
    CAPTURING = "capturing"
    AWAITING_COMPLETION = "awaiting_completion"


class RecordingSession:

    def __init__(self, kind: RecorderKind, recorders: RecorderHost, paths: ProductPaths):
        self.kind = kind
        self.recorders = recorders
        self.paths = paths
        self.logger = get_module_logger(f"RecordingSession.{kind.value}")

        self.marker = RecordingMarker(paths.marker_path(kind.value))
        self.state = SessionState.IDLE
        # None means the output path has not been overridden in this
        # incarnation (always the case right after a reload).
        self.saved_output_path: Optional[str] = None
        self._record: Optional[MarkerRecord] = None

    @property
    def is_recording(self) -> bool:
        return self.marker.exists()

    @property
    def temp_output_path(self) -> str:
        # Joined by hand: "<Frame>" is not a valid path component on every
        # platform, so pathlib must not normalize it.
        return f"{self.paths.capture_dir(self.kind.value).as_posix()}/{self.kind.filename}"

    def _settings(self) -> Optional[RecorderSettings]:
        return self.recorders.get_active_recorder_settings(self.kind)

    def record(self) -> Optional[MarkerRecord]:
        if self._record is None:
            self._record = self.marker.read()
        return self._record

    # ------------------------------------------------------------------
    # Transitions

    def arm(self, request: PublishRequest) -> bool:
        """Override the recorder output and set the marker.

        Returns False (and changes nothing) when the recorder is not
        configured. Raises SessionBusyError if a capture of this kind is
        already marked active.
        """
        if self.is_recording:
            raise SessionBusyError(f"{self.kind.value} recording already in progress")

        settings = self._settings()
        if settings is None:
            self.logger.warning("No %s recorder configured, nothing to capture", self.kind.value)
            return False

        # Nothing on the recorder changes until the marker holds the original
        # path; a failure before that leaves the recorder untouched.
        self._remove_stale_capture()

        original = settings.output_file
        record = MarkerRecord(
            kind=self.kind.value,
            saved_output_path=original,
            override_path=self.temp_output_path,
            extension=settings.extension,
            request=request.to_record(),
        )
        self.marker.write(record)

        try:
            settings.output_file = self.temp_output_path
        except Exception:
            self.marker.clear()
            raise

        self.saved_output_path = original
        self._record = record
        self.state = SessionState.ARMED
        self.logger.info("Armed %s capture -> %s", self.kind.value, self.temp_output_path)
        return True

    def _remove_stale_capture(self) -> None:
        capture_dir = self.paths.capture_dir(self.kind.value)
        if capture_dir.is_dir():
            self.logger.info("Removing stale capture directory %s", capture_dir)
            shutil.rmtree(capture_dir)
        elif capture_dir.exists():
            self.logger.info("Removing stale file at capture path %s", capture_dir)
            capture_dir.unlink()

    def recover(self) -> bool:
        """Re-establish the output override after a reload.

        The original path comes from the marker; the recorder's current path
        may already be the override and must not be saved as the original.
        Re-applying the override is idempotent. Returns True if recovery ran.
        """
        if self.saved_output_path is not None or not self.is_recording:
            return False

        record = self.record()
        self.saved_output_path = record.saved_output_path if record else None
        override = (record.override_path if record else "") or self.temp_output_path

        settings = self._settings()
        if settings is None:
            self.logger.error("Recorder for %s vanished during a capture", self.kind.value)
        else:
            settings.output_file = override

        self.state = SessionState.CAPTURING
        self.logger.info("Recovered %s capture after reload", self.kind.value)
        return True

    def on_play_started(self) -> None:
        if self.state in (SessionState.ARMED, SessionState.IDLE) and self.is_recording:
            self.state = SessionState.CAPTURING

    def begin_completion(self) -> Dict[str, str]:
        """Enter AWAITING_COMPLETION and describe what was captured."""
        self.state = SessionState.AWAITING_COMPLETION
        record = self.record()
        settings = self._settings()

        extension = settings.extension if settings is not None else ""
        if not extension and record is not None:
            extension = record.extension
        path = (record.override_path if record else "") or self.temp_output_path
        return {self.kind.path_key: path, self.kind.ext_key: extension}

    def restore_output_path(self) -> bool:
        if self.saved_output_path is None:
            self.logger.warning("No saved %s output path to restore", self.kind.value)
            return False

        settings = self._settings()
        if settings is None:
            self.logger.error("Cannot restore %s output path: recorder not found", self.kind.value)
            self.saved_output_path = None
            return False

        settings.output_file = self.saved_output_path
        self.saved_output_path = None
        return True

    def finish(self) -> None:
        self.marker.clear()
        self._record = None
        self.state = SessionState.IDLE
        self.logger.info("%s capture complete", self.kind.value)

    def abort(self) -> None:
        """Undo an arm whose capture never started."""
        self.restore_output_path()
        self.finish()
