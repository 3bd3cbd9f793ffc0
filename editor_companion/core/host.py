"""Interfaces the embedding editor must provide."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Protocol


class PlayModeState(Enum):
    EXITING_EDIT_MODE = "exiting_edit_mode"
    ENTERED_PLAY_MODE = "entered_play_mode"
    EXITING_PLAY_MODE = "exiting_play_mode"
    ENTERED_EDIT_MODE = "entered_edit_mode"


PlayModeCallback = Callable[[PlayModeState], None]


class EditorHost(Protocol):
    """The editor process hosting the bridge.

    Subscriptions registered here are lost on a reload, exactly like the
    rest of the bridge's in-memory state.
    """

    @property
    def product_name(self) -> str: ...

    @property
    def project_root(self) -> Path: ...

    @property
    def asset_root(self) -> Path: ...

    def subscribe_play_mode(self, callback: PlayModeCallback) -> None: ...

    def unsubscribe_play_mode(self, callback: PlayModeCallback) -> None: ...

    def subscribe_quit(self, callback: Callable[[], None]) -> None: ...

    def unsubscribe_quit(self, callback: Callable[[], None]) -> None: ...

    def refresh_assets(self, options: Optional[Mapping[str, Any]] = None) -> None: ...

    def confirm_overwrite(self, path: Path) -> bool: ...

    def export_package(self, destination: Path) -> Path:
        """Export the active scene into the ``destination`` directory.

        Returns the written package file. Raises PackageExportError when
        there is no active scene or controller to export.
        """
        ...


__all__ = ["EditorHost", "PlayModeCallback", "PlayModeState"]
