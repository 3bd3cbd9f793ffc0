"""Unit tests for psutil-backed liveness checks."""

import os
import subprocess
import sys
from unittest.mock import MagicMock, patch

import psutil
import pytest

from editor_companion.core.process_liveness import (
    find_orphaned_companions,
    is_process_alive,
    terminate_process,
)


class TestIsProcessAlive:

    def test_current_process_is_alive(self):
        assert is_process_alive(os.getpid()) is True

    @pytest.mark.parametrize("pid", [None, 0, -5])
    def test_invalid_pid_is_not_alive(self, pid):
        assert is_process_alive(pid) is False

    def test_missing_process_is_not_alive(self):
        with patch("psutil.Process", side_effect=psutil.NoSuchProcess(999999)):
            assert is_process_alive(999999) is False

    def test_access_denied_is_not_alive(self):
        with patch("psutil.Process", side_effect=psutil.AccessDenied(1)):
            assert is_process_alive(1) is False

    def test_zombie_is_not_alive(self):
        proc = MagicMock()
        proc.is_running.return_value = True
        proc.status.return_value = psutil.STATUS_ZOMBIE
        with patch("psutil.Process", return_value=proc):
            assert is_process_alive(1234) is False

    def test_unexpected_error_is_not_alive(self):
        with patch("psutil.Process", side_effect=OSError("proc unavailable")):
            assert is_process_alive(1234) is False


class TestTerminateProcess:

    def test_missing_process_counts_as_gone(self):
        with patch("psutil.Process", side_effect=psutil.NoSuchProcess(999999)):
            assert terminate_process(999999) is True

    def test_none_is_a_no_op(self):
        assert terminate_process(None) is True

    @pytest.mark.subprocess
    def test_terminates_real_child(self):
        child = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
        try:
            assert is_process_alive(child.pid) is True

            assert terminate_process(child.pid, timeout=5.0) is True

            child.wait(timeout=5.0)
            assert is_process_alive(child.pid) is False
        finally:
            if child.poll() is None:
                child.kill()
                child.wait()


class TestOrphans:

    def test_only_orphans_with_marker_are_reported(self):
        def make_proc(pid, cmdline, parent_pid):
            proc = MagicMock()
            proc.pid = pid
            proc.info = {"pid": pid, "cmdline": cmdline}
            proc.parent.return_value = MagicMock(pid=parent_pid) if parent_pid else None
            return proc

        orphan = make_proc(10, ["python", "/res/scripts/companion_init.py"], 1)
        owned = make_proc(11, ["python", "/res/scripts/companion_init.py"], 500)
        unrelated = make_proc(12, ["bash"], 1)

        with patch("psutil.process_iter", return_value=[orphan, owned, unrelated]):
            found = find_orphaned_companions("companion_init.py")

        assert found == [orphan]
