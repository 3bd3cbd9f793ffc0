"""
Recording Session Manager.

Arms one RecordingSession per requested recorder kind, survives host reloads
mid-capture, and when the host returns to edit mode hands a single publish
payload covering every active recorder to the companion.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..core.deferred_queue import DeferredCompletionQueue
from ..core.errors import SessionBusyError
from ..core.host import EditorHost, PlayModeState
from ..core.logging_utils import get_module_logger
from ..core.paths import ProductPaths
from ..core.supervisor import CompanionSupervisor
from .publish import PUBLISH_SERVICE, PublishRequest, compose_payload, finalize_payload
from .session import RecordingSession
from .settings import RecorderHost, RecorderKind, apply_frame_settings


class RecordingSessionManager:

    def __init__(
        self,
        editor: EditorHost,
        recorders: RecorderHost,
        supervisor: CompanionSupervisor,
        queue: DeferredCompletionQueue,
        paths: ProductPaths,
        kinds: Iterable[RecorderKind] = tuple(RecorderKind),
    ):
        self.editor = editor
        self.recorders = recorders
        self.supervisor = supervisor
        self.queue = queue
        self.paths = paths
        self.logger = get_module_logger("RecordingSessionManager")

        self.sessions: Dict[RecorderKind, RecordingSession] = {
            kind: RecordingSession(kind, recorders, paths) for kind in kinds
        }
        self._request: Optional[PublishRequest] = None
        self._subscribed = False

    # ------------------------------------------------------------------
    # Queries

    def active_sessions(self) -> List[RecordingSession]:
        return [session for session in self.sessions.values() if session.is_recording]

    def is_recording(self, kind: Optional[RecorderKind] = None) -> bool:
        if kind is None:
            return bool(self.active_sessions())
        session = self.sessions.get(kind)
        return session is not None and session.is_recording

    # ------------------------------------------------------------------
    # Subscription

    def _subscribe(self) -> None:
        if not self._subscribed:
            self.editor.subscribe_play_mode(self.on_play_mode_changed)
            self._subscribed = True

    def _unsubscribe(self) -> None:
        if self._subscribed:
            self.editor.unsubscribe_play_mode(self.on_play_mode_changed)
            self._subscribed = False

    # ------------------------------------------------------------------
    # Entry points

    def publish(self, request: PublishRequest) -> bool:
        """Start the captures ``request`` needs.

        Returns True if a capture started (or, for a package-only request, if
        the publish was handed off). Raises SessionBusyError if any requested
        kind is already recording.
        """
        busy = [kind.value for kind in request.recorder_kinds
                if kind in self.sessions and self.sessions[kind].is_recording]
        if busy:
            self.logger.warning("Rejecting publish request, already recording: %s", busy)
            raise SessionBusyError(f"recording already in progress: {', '.join(busy)}")

        if not request.recorder_kinds:
            if request.export_package:
                self._hand_off({}, request)
                return True
            self.logger.warning("Publish request for '%s' needs no recorder", request.asset_type)
            return False

        armed = []
        try:
            for kind in request.recorder_kinds:
                session = self.sessions.get(kind)
                if session is not None and session.arm(request):
                    armed.append(session)
        except Exception:
            self.logger.error("Arming failed, releasing %d armed session(s)", len(armed))
            for session in armed:
                session.abort()
            raise

        if not armed:
            self.logger.warning("No recorder could be armed for '%s'", request.asset_type)
            return False

        self._request = request
        self._subscribe()

        if not self.recorders.start_recording():
            self.logger.error("Recorder failed to start, releasing %d session(s)", len(armed))
            self._unsubscribe()
            for session in armed:
                session.abort()
            self._request = None
            return False

        self.logger.info(
            "Recording started for %s", ", ".join(s.kind.value for s in armed)
        )
        return True

    def on_reload(self) -> bool:
        """First entry point after a host reload.

        Re-derives the output overrides from the durable markers and
        reinstalls the play-mode subscription, which the reload dropped.
        """
        recovered = False
        for session in self.active_sessions():
            session.recover()
            recovered = True
            if self._request is None:
                record = session.record()
                if record is not None and record.request:
                    self._request = PublishRequest.from_record(record.request)

        if recovered:
            self._subscribe()
        return recovered

    def on_play_mode_changed(self, state: PlayModeState) -> None:
        active = self.active_sessions()
        if not active:
            return

        for session in active:
            session.recover()

        if state == PlayModeState.ENTERED_PLAY_MODE:
            for session in active:
                session.on_play_started()
        elif state == PlayModeState.ENTERED_EDIT_MODE:
            self._complete(active)

    def apply_settings(self, start: int, end: int, fps: float) -> bool:
        return apply_frame_settings(self.recorders.get_controller_settings(), start, end, fps)

    # ------------------------------------------------------------------
    # Completion

    def _complete(self, sessions: List[RecordingSession]) -> None:
        request = self._request
        if request is None:
            for session in sessions:
                record = session.record()
                if record is not None and record.request:
                    request = PublishRequest.from_record(record.request)
                    break

        payload = compose_payload(session.begin_completion() for session in sessions)
        self._unsubscribe()
        for session in sessions:
            session.restore_output_path()
        for session in sessions:
            session.finish()
        self._request = None

        self._hand_off(payload, request)

    def _hand_off(self, payload: Dict[str, str], request: Optional[PublishRequest]) -> None:
        export_destination: Optional[Path] = None
        if request is not None and request.export_package:
            export_destination = self.paths.work_dir / "package"

        self.queue.defer(
            PUBLISH_SERVICE,
            self._finalize_publish,
            dict(payload),
            export_destination,
        )

    async def _finalize_publish(self, payload: Dict[str, str], export_destination: Optional[Path]) -> None:
        final = finalize_payload(payload, self.editor, export_destination)
        self.logger.info("Publishing %s", sorted(final))
        await self.supervisor.call_service(PUBLISH_SERVICE, final)
