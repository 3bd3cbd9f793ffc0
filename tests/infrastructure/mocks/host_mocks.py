"""Fake editor, recorders and connection channel for tests.

None of these touch a real editor or spawn processes; the fake channel hands
out synthetic pids and lets tests decide when (or whether) a companion
registers.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from editor_companion.core.channel.base import ConnectionChannel
from editor_companion.core.errors import PackageExportError
from editor_companion.core.host import PlayModeState
from editor_companion.recording.settings import RecorderKind


@dataclass
class MockProcessHandle:
    pid: int


class MockChannel(ConnectionChannel):
    """In-memory channel.

    ``connect_on_spawn`` lists, per spawn, whether that companion registers.
    Once the list is used up, ``default_connect`` applies.
    """

    def __init__(
        self,
        connect_on_spawn: Optional[List[bool]] = None,
        default_connect: bool = True,
        first_pid: int = 5000,
    ):
        self.connect_on_spawn = list(connect_on_spawn or [])
        self.default_connect = default_connect
        self.next_pid = first_pid
        self.spawned: List[Tuple[Path, int]] = []
        self.connected: set[str] = set()
        self.async_calls: List[Tuple[str, str, Tuple[Any, ...]]] = []
        self.sync_calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.closed = 0
        self.polls = 0
        self.sync_result: Any = True

    async def spawn(self, script_path: Path) -> MockProcessHandle:
        pid = self.next_pid
        self.next_pid += 1
        self.spawned.append((Path(script_path), pid))
        should_connect = self.connect_on_spawn.pop(0) if self.connect_on_spawn else self.default_connect
        if should_connect:
            asyncio.get_running_loop().call_soon(self.connected.add, "companion")
        return MockProcessHandle(pid=pid)

    def is_connected(self, name: str) -> bool:
        self.polls += 1
        return name in self.connected

    def call_async(self, name: str, service: str, *args: Any) -> None:
        self.async_calls.append((name, service, args))

    async def call_sync(self, name: str, *args: Any, timeout: Optional[float] = None) -> Any:
        self.sync_calls.append((name, args))
        return self.sync_result

    async def close(self) -> None:
        self.closed += 1
        self.connected.clear()


class MockLiveness:
    """Stands in for the psutil process-table lookup."""

    def __init__(self, alive: Optional[set[int]] = None, raises: bool = False):
        self.alive = set(alive or ())
        self.raises = raises
        self.checked: List[Optional[int]] = []
        self.terminated: List[Optional[int]] = []

    def __call__(self, pid: Optional[int]) -> bool:
        self.checked.append(pid)
        if self.raises:
            raise PermissionError("process table unavailable")
        return pid in self.alive

    def terminate(self, pid: Optional[int]) -> bool:
        self.terminated.append(pid)
        self.alive.discard(pid)
        return True


@dataclass
class MockRecorderSettings:
    output_file: str
    extension: str


@dataclass
class MockControllerSettings:
    frame_rate: float = 30.0
    frame_rate_preset: Optional[str] = "FR_30"
    interval: Optional[Tuple[int, int]] = None
    applied: int = 0

    def set_frame_interval(self, start: int, end: int) -> None:
        self.interval = (start, end)

    def apply(self) -> None:
        self.applied += 1


class MockRecorderHost:
    """Host recorders that survive a simulated reload.

    Real recorder settings belong to the host, so tests reuse the same
    instance across a reload while rebuilding every bridge object.
    """

    def __init__(
        self,
        image: Optional[MockRecorderSettings] = None,
        movie: Optional[MockRecorderSettings] = None,
        controller: Optional[MockControllerSettings] = None,
        start_ok: bool = True,
    ):
        self.settings: Dict[RecorderKind, Optional[MockRecorderSettings]] = {
            RecorderKind.IMAGE_SEQUENCE: image,
            RecorderKind.MOVIE: movie,
        }
        self.controller = controller
        self.start_ok = start_ok
        self.start_count = 0

    def get_active_recorder_settings(self, kind: RecorderKind) -> Optional[MockRecorderSettings]:
        return self.settings.get(kind)

    def start_recording(self) -> bool:
        self.start_count += 1
        return self.start_ok

    def get_controller_settings(self) -> Optional[MockControllerSettings]:
        return self.controller


@dataclass
class MockEditor:
    root: Path
    product_name: str = "Demo Project"
    confirm_answer: bool = False
    package_error: Optional[str] = None
    play_mode_callbacks: List[Callable[[PlayModeState], None]] = field(default_factory=list)
    quit_callbacks: List[Callable[[], None]] = field(default_factory=list)
    refreshed: List[Mapping[str, Any]] = field(default_factory=list)
    confirmations: List[Path] = field(default_factory=list)
    exports: List[Path] = field(default_factory=list)

    @property
    def project_root(self) -> Path:
        return self.root

    @property
    def asset_root(self) -> Path:
        return self.root / "Assets"

    def subscribe_play_mode(self, callback) -> None:
        self.play_mode_callbacks.append(callback)

    def unsubscribe_play_mode(self, callback) -> None:
        self.play_mode_callbacks.remove(callback)

    def subscribe_quit(self, callback) -> None:
        self.quit_callbacks.append(callback)

    def unsubscribe_quit(self, callback) -> None:
        self.quit_callbacks.remove(callback)

    def refresh_assets(self, options: Optional[Mapping[str, Any]] = None) -> None:
        self.refreshed.append(dict(options or {}))

    def confirm_overwrite(self, path: Path) -> bool:
        self.confirmations.append(path)
        return self.confirm_answer

    def export_package(self, destination: Path) -> Path:
        if self.package_error:
            raise PackageExportError(self.package_error)
        destination.mkdir(parents=True, exist_ok=True)
        package = destination / "scene.package"
        package.write_bytes(b"package")
        self.exports.append(package)
        return package

    def emit_play_mode(self, state: PlayModeState) -> None:
        for callback in list(self.play_mode_callbacks):
            callback(state)

    def reload(self) -> None:
        """Drop every subscription, as a host reload does."""
        self.play_mode_callbacks.clear()
        self.quit_callbacks.clear()

    def quit(self) -> None:
        for callback in list(self.quit_callbacks):
            callback()
