"""Unit tests for SessionStore and the atomic JSON helpers."""

import json

from editor_companion.core.file_sync_utils import read_json, write_json_atomic
from editor_companion.core.paths import ProductPaths, sanitize_name, work_dir_for
from editor_companion.core.session_store import PID_KEY, SessionStore


class TestSessionStore:

    def test_pid_survives_a_new_store_instance(self, paths):
        SessionStore.for_host(paths, host_pid=100).set_pid(4321)

        assert SessionStore.for_host(paths, host_pid=100).get_pid() == 4321

    def test_new_host_pid_starts_empty(self, paths):
        SessionStore.for_host(paths, host_pid=100).set_pid(4321)

        assert SessionStore.for_host(paths, host_pid=101).get_pid() is None

    def test_clear_pid(self, store):
        store.set_pid(12)
        store.clear_pid()

        assert store.get_pid() is None
        assert read_json(store.path) == {}

    def test_malformed_pid_is_discarded(self, store):
        store.set(PID_KEY, "not-a-pid")

        assert store.get_pid() is None
        assert store.get(PID_KEY) is None

    def test_corrupt_file_reads_as_empty(self, store):
        store.path.write_text("{truncated")

        assert store.get_pid() is None
        store.set_pid(3)
        assert store.get_pid() == 3

    def test_other_keys_are_preserved(self, store):
        store.set("note", "kept")
        store.set_pid(9)
        store.clear_pid()

        assert store.get("note") == "kept"


class TestAtomicJson:

    def test_write_leaves_no_temp_files(self, tmp_path):
        target = tmp_path / "state" / "session.json"

        write_json_atomic(target, {"a": 1})
        write_json_atomic(target, {"a": 2})

        assert json.loads(target.read_text()) == {"a": 2}
        assert [p.name for p in target.parent.iterdir()] == ["session.json"]

    def test_non_object_is_ignored(self, tmp_path):
        target = tmp_path / "list.json"
        target.write_text("[1, 2]")

        assert read_json(target) is None


class TestProductPaths:

    def test_work_dir_is_deterministic(self, tmp_path):
        first = work_dir_for("My Game", "/projects/game", root=tmp_path)
        second = work_dir_for("My Game", "/projects/game", root=tmp_path)

        assert first == second
        assert first.name.startswith("My_Game_")

    def test_same_product_different_projects(self, tmp_path):
        assert work_dir_for("Game", "/a/game", root=tmp_path) != work_dir_for("Game", "/b/game", root=tmp_path)

    def test_sanitize_name(self):
        assert sanitize_name("  ../Demo: Project  ") == "Demo_Project"
        assert sanitize_name("...") == "project"

    def test_temp_root_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EDITOR_COMPANION_TEMP_DIR", str(tmp_path))

        paths = ProductPaths.for_project("Demo", "/projects/demo")

        assert paths.work_dir.parent == tmp_path
        assert paths.marker_path("movie") == paths.work_dir / ".movie.lock"
        assert paths.capture_dir("movie") == paths.work_dir / "capture" / "movie"
