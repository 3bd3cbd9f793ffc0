"""Process-table checks for companion processes.

A pid persisted across a reload can outlive the process it names, or be
recycled by an unrelated process. Nothing here raises on lookup failures:
any pid that cannot be resolved or queried is simply reported as not running.
"""

import os
from typing import List, Optional

import psutil

from .logging_utils import get_module_logger

logger = get_module_logger("ProcessLiveness")

_DEAD_STATUSES = (psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD)


def is_process_alive(pid: Optional[int]) -> bool:
    """Return True only for an existing, non-exited process."""
    if pid is None or pid <= 0:
        return False

    try:
        proc = psutil.Process(pid)
        if not proc.is_running():
            return False
        return proc.status() not in _DEAD_STATUSES
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return False
    except (psutil.Error, OSError, ValueError) as e:
        logger.debug("Liveness check failed for pid %s: %s", pid, e)
        return False


def terminate_process(pid: Optional[int], timeout: float = 3.0) -> bool:
    """Best-effort terminate, escalating to kill. Returns True if it is gone."""
    if pid is None or pid <= 0:
        return True

    try:
        target = psutil.Process(pid)
        logger.info("Terminating companion process pid=%d", pid)
        target.terminate()
        if target in psutil.wait_procs([target], timeout=timeout)[1]:
            logger.warning("Force killing unresponsive companion pid=%d", pid)
            target.kill()
            target.wait(timeout=1.0)
        return True
    except psutil.NoSuchProcess:
        return True
    except psutil.TimeoutExpired:
        logger.warning("pid %d survived kill", pid)
        return False
    except (psutil.AccessDenied, psutil.Error, OSError) as e:
        logger.warning("Could not terminate pid %d: %s", pid, e)
        return False


def _parent_is_gone(proc: psutil.Process) -> bool:
    try:
        parent = proc.parent()
    except psutil.NoSuchProcess:
        return True
    # Reparented to init once the host that spawned it exited.
    return parent is None or parent.pid == 1


def find_orphaned_companions(marker: str) -> List[psutil.Process]:
    """Find companion processes whose parent host has died.

    ``marker`` is matched against the command line (normally the bootstrap
    script path).
    """
    own_pid = os.getpid()
    found: List[psutil.Process] = []

    for candidate in psutil.process_iter(["pid", "cmdline"]):
        if candidate.pid == own_pid:
            continue
        try:
            command = " ".join(candidate.info.get("cmdline") or [])
            if marker in command and _parent_is_gone(candidate):
                logger.debug("Orphaned companion pid=%d cmd=%s", candidate.pid, command[:80])
                found.append(candidate)
        except (psutil.AccessDenied, psutil.ZombieProcess, psutil.NoSuchProcess):
            continue

    return found


def cleanup_orphaned_companions(marker: str, timeout: float = 5.0) -> int:
    """Terminate companions left behind by a crashed host. Returns the count."""
    signalled: List[psutil.Process] = []
    for candidate in find_orphaned_companions(marker):
        try:
            candidate.terminate()
        except (psutil.AccessDenied, psutil.NoSuchProcess):
            continue
        signalled.append(candidate)

    if not signalled:
        return 0

    logger.info("Terminating %d orphaned companion process(es)", len(signalled))
    _, stubborn = psutil.wait_procs(signalled, timeout=timeout)
    for candidate in stubborn:
        logger.warning("Force killing orphaned companion pid=%d", candidate.pid)
        try:
            candidate.kill()
        except (psutil.AccessDenied, psutil.NoSuchProcess):
            logger.debug("pid=%d exited before kill", candidate.pid)

    return len(signalled)


__all__ = [
    "is_process_alive",
    "terminate_process",
    "find_orphaned_companions",
    "cleanup_orphaned_companions",
]
