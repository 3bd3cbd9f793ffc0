"""Unit test fixtures.

Every fixture here is isolated under ``tmp_path``: the work directory that
would normally live in the system temp dir, the fake project, and the
companion resource directory with its bootstrap script.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from editor_companion.core.config_manager import CompanionConfig
from editor_companion.core.deferred_queue import DeferredCompletionQueue
from editor_companion.core.paths import BOOTSTRAP_SCRIPT_RELPATH, ProductPaths
from editor_companion.core.session_store import SessionStore
from editor_companion.core.supervisor import CompanionSupervisor
from editor_companion.recording.manager import RecordingSessionManager
from tests.infrastructure.mocks.host_mocks import (
    MockChannel,
    MockEditor,
    MockLiveness,
    MockRecorderHost,
    MockRecorderSettings,
)


# =============================================================================
# Filesystem
# =============================================================================

@pytest.fixture
def resource_dir(tmp_path: Path) -> Path:
    resource = tmp_path / "resource"
    script = resource / BOOTSTRAP_SCRIPT_RELPATH
    script.parent.mkdir(parents=True)
    script.write_text("# companion bootstrap\n")
    return resource


@pytest.fixture
def editor(tmp_path: Path) -> MockEditor:
    project = tmp_path / "project"
    (project / "Assets").mkdir(parents=True)
    return MockEditor(root=project)


@pytest.fixture
def paths(tmp_path: Path, editor: MockEditor) -> ProductPaths:
    product_paths = ProductPaths.for_project(
        editor.product_name, editor.project_root, root=tmp_path / "tmp"
    )
    product_paths.ensure()
    return product_paths


@pytest.fixture
def store(paths: ProductPaths) -> SessionStore:
    return SessionStore.for_host(paths, host_pid=4242)


# =============================================================================
# Companion
# =============================================================================

@pytest.fixture
def config(resource_dir: Path) -> CompanionConfig:
    return CompanionConfig(
        resource_path=resource_dir,
        connect_timeout=0.05,
        poll_interval=0.005,
    )


@pytest.fixture
def channel() -> MockChannel:
    return MockChannel()


@pytest.fixture
def liveness() -> MockLiveness:
    return MockLiveness()


@pytest.fixture
def supervisor(channel, store, config, liveness) -> CompanionSupervisor:
    return CompanionSupervisor(
        channel, store, config,
        liveness_check=liveness,
        terminator=liveness.terminate,
    )


# =============================================================================
# Recording
# =============================================================================

@pytest.fixture
def recorders() -> MockRecorderHost:
    return MockRecorderHost(
        image=MockRecorderSettings(output_file="Recordings/frames/<Frame>", extension="png"),
        movie=MockRecorderSettings(output_file="Recordings/movie", extension="mp4"),
    )


@pytest.fixture
def queue() -> DeferredCompletionQueue:
    return DeferredCompletionQueue()


@pytest.fixture
def manager_factory(editor, recorders, supervisor, paths):
    """Build a fresh manager, as the host does after every reload."""

    def _build(queue: DeferredCompletionQueue = None) -> RecordingSessionManager:
        return RecordingSessionManager(
            editor, recorders, supervisor, queue or DeferredCompletionQueue(), paths
        )

    return _build
