"""
Companion Process Supervisor.

Owns the single companion process of a host session: spawning it, tracking
its pid across reloads, checking it is still alive, and waiting for it to
register on the connection channel with a bounded number of spawn attempts.
"""

import asyncio
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from .channel.base import ConnectionChannel
from .config_manager import CompanionConfig
from .errors import CompanionConnectionError, ConfigurationError
from .logging_utils import get_module_logger
from .process_liveness import is_process_alive, terminate_process
from .session_store import SessionStore

BOOTSTRAP_SERVICE = "load_and_init"


class ProcessState(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    EXITED = "exited"


class CompanionSupervisor:

    def __init__(
        self,
        channel: ConnectionChannel,
        store: SessionStore,
        config: CompanionConfig,
        liveness_check: Callable[[Optional[int]], bool] = is_process_alive,
        terminator: Callable[[Optional[int]], bool] = terminate_process,
    ):
        self.channel = channel
        self.store = store
        self.config = config
        self.logger = get_module_logger("CompanionSupervisor")

        self._is_alive = liveness_check
        self._terminate = terminator
        self.attempts_remaining = config.max_connect_attempts
        self.spawn_count = 0

    @property
    def name(self) -> str:
        return self.config.companion_name

    @property
    def pid(self) -> Optional[int]:
        return self.store.get_pid()

    @property
    def process_state(self) -> ProcessState:
        pid = self.pid
        if pid is None:
            return ProcessState.NOT_STARTED
        return ProcessState.RUNNING if self._pid_alive(pid) else ProcessState.EXITED

    def reset_attempts(self) -> None:
        self.attempts_remaining = self.config.max_connect_attempts

    # ------------------------------------------------------------------
    # Handshake

    def _pid_alive(self, pid: int) -> bool:
        try:
            return bool(self._is_alive(pid))
        except Exception as e:
            self.logger.debug("Liveness check for pid %d raised: %s", pid, e)
            return False

    def _check_running(self) -> bool:
        """Validate the persisted pid. Never raises."""
        pid = self.store.get_pid()
        if pid is None:
            return False

        alive = self._pid_alive(pid)
        if not alive:
            self.logger.info("Companion pid %d is no longer running", pid)
            self.store.clear_pid()
        return alive

    def _bootstrap_script(self) -> Path:
        script = self.config.bootstrap_script
        if not script.exists():
            self.logger.error("Companion bootstrap script not found: %s", script)
            raise ConfigurationError(f"bootstrap script not found: {script}")
        return script

    async def _spawn(self) -> None:
        script = self._bootstrap_script()
        self.attempts_remaining -= 1
        self.spawn_count += 1
        self.logger.info(
            "Spawning companion '%s' (%d attempt(s) left)", self.name, self.attempts_remaining
        )
        handle = await self.channel.spawn(script)
        self.store.set_pid(handle.pid)

    async def _wait_for_handshake(self) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.connect_timeout
        async for connected in self.channel.wait_for_connection(
            self.name, self.config.connect_timeout, self.config.poll_interval
        ):
            if connected:
                return True
            if loop.time() >= deadline:
                break
        return self.channel.is_connected(self.name)

    def _discard_pid(self) -> None:
        pid = self.store.get_pid()
        self.store.clear_pid()
        if pid is not None:
            self._terminate(pid)

    async def ensure_connected(self) -> None:
        """Return once a live companion has completed its handshake.

        Raises ConfigurationError when the bootstrap script cannot be resolved
        and CompanionConnectionError once no spawn attempts remain.
        """
        while True:
            running = self._check_running()
            if running and self.channel.is_connected(self.name):
                self.reset_attempts()
                return

            if not running:
                if self.attempts_remaining <= 0:
                    raise self._exhausted()
                await self._spawn()

            if await self._wait_for_handshake():
                self.logger.info("Companion '%s' connected (pid %s)", self.name, self.pid)
                self.reset_attempts()
                return

            if self.attempts_remaining <= 0:
                raise self._exhausted()

            self.logger.warning(
                "Companion '%s' did not connect within %.1fs, respawning",
                self.name, self.config.connect_timeout,
            )
            self._discard_pid()

    def _exhausted(self) -> CompanionConnectionError:
        error = CompanionConnectionError(
            self.name, self.config.max_connect_attempts, self.config.connect_timeout
        )
        self.logger.error("%s", error)
        return error

    # ------------------------------------------------------------------
    # Calls

    async def call_service(self, service: str, *args: Any) -> None:
        """Dispatch a one-way call; no reply is awaited and nothing is retried."""
        await self.ensure_connected()
        self.logger.debug("Calling service %s on '%s'", service, self.name)
        self.channel.call_async(self.name, service, *args)

    async def start(self) -> Any:
        await self.ensure_connected()
        self.logger.info("Initializing companion '%s'", self.name)
        return await self.channel.call_sync(
            self.name, BOOTSTRAP_SERVICE, timeout=self.config.connect_timeout
        )

    async def stop(self, terminate: bool = True) -> None:
        pid = self.store.get_pid()
        self.logger.info("Stopping companion '%s' (pid %s)", self.name, pid)
        await self.channel.close()
        self.store.clear_pid()
        if terminate and pid is not None and self._pid_alive(pid):
            self._terminate(pid)
        self.reset_attempts()
