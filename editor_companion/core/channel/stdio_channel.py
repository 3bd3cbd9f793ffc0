"""Default channel: the companion is a child process speaking JSON lines on stdio."""

import asyncio
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from ..asyncio_utils import BackgroundTasks
from ..logging_utils import get_module_logger
from .base import ConnectionChannel
from .protocol import (
    STATUS_CONNECTED,
    STATUS_DISCONNECTED,
    STATUS_ERROR,
    STATUS_REPLY,
    ChannelMessage,
    new_command_id,
)

COMPANION_NAME_ENV = "EDITOR_COMPANION_NAME"
DEFAULT_CALL_TIMEOUT = 30.0


class StdioChannel(ConnectionChannel):
    """Channel that runs the companion as a child process and talks over stdio.

    The companion registers by printing a ``connected`` status line carrying
    its name; until then ``is_connected`` reports False.

    The pipes belong to the process that spawned the companion, so a channel
    rebuilt after a host reload cannot reattach to a companion that is still
    running under the persisted pid. The supervisor then waits out
    ``connect_timeout`` and respawns it. Embedders whose transport can
    reconnect by name (a socket or named pipe) should supply their own
    ``ConnectionChannel`` to keep the companion across reloads.
    """

    def __init__(
        self,
        name: str,
        python: Optional[str] = None,
        extra_args: Sequence[str] = (),
        env: Optional[Dict[str, str]] = None,
    ):
        self.name = name
        self.python = python or sys.executable
        self.extra_args = list(extra_args)
        self.env = env
        self.logger = get_module_logger("StdioChannel")

        self.process: Optional[asyncio.subprocess.Process] = None
        self._connected: set[str] = set()
        self._pending_replies: Dict[str, asyncio.Future] = {}
        self._readers = BackgroundTasks(self.logger)

    # ------------------------------------------------------------------
    # Lifecycle

    async def spawn(self, script_path: Path) -> asyncio.subprocess.Process:
        if self.process is not None and self.process.returncode is None:
            self.logger.warning("Replacing running companion pid=%d", self.process.pid)
            await self._discard_process()

        env = os.environ.copy()
        if self.env:
            env.update(self.env)
        env[COMPANION_NAME_ENV] = self.name

        cmd = [self.python, str(script_path), *self.extra_args]
        self.logger.debug("Command: %s", ' '.join(cmd))

        self.process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
        self.logger.info("Companion started with PID: %d", self.process.pid)

        process = self.process
        self._readers.start(self._stdout_reader(process), name="companion-stdout")
        self._readers.start(self._stderr_reader(process), name="companion-stderr")
        self._readers.start(self._process_monitor(process), name="companion-monitor")
        return process

    async def close(self) -> None:
        if self.process is not None and self.process.returncode is None:
            self._write(ChannelMessage.quit())
            try:
                await asyncio.wait_for(self.process.wait(), timeout=5.0)
            except asyncio.TimeoutError:
                self.logger.warning("Companion did not exit gracefully, terminating...")
        await self._discard_process()

    async def _discard_process(self) -> None:
        process = self.process
        self.process = None
        self._connected.clear()
        self._fail_pending(ConnectionError("companion process was discarded"))

        if process is not None and process.returncode is None:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=2.0)
            except asyncio.TimeoutError:
                self.logger.error("Companion did not terminate, killing...")
                process.kill()
                await process.wait()

        await self._readers.cancel_all()

    # ------------------------------------------------------------------
    # Readers

    async def _stdout_reader(self, process: asyncio.subprocess.Process) -> None:
        if process.stdout is None:
            return

        while True:
            line = await process.stdout.readline()
            if not line:
                break

            text = line.decode(errors="replace").strip()
            if not text:
                continue
            status = ChannelMessage.parse_status(text)
            if status is None:
                self.logger.debug("Companion output: %s", text)
            else:
                self._handle_status(status)

    async def _stderr_reader(self, process: asyncio.subprocess.Process) -> None:
        if process.stderr is None:
            return

        while True:
            line = await process.stderr.readline()
            if not line:
                break
            text = line.decode(errors="replace").strip()
            if text:
                self.logger.warning("Companion stderr: %s", text)

    async def _process_monitor(self, process: asyncio.subprocess.Process) -> None:
        returncode = await process.wait()
        if returncode == 0:
            self.logger.info("Companion exited normally")
        else:
            self.logger.error("Companion exited with code: %d", returncode)

        if self.process is process:
            self._connected.clear()
            self._fail_pending(ConnectionError(f"companion exited with code {returncode}"))

    def _handle_status(self, status: Dict[str, Any]) -> None:
        kind = status.get("status")
        if kind == STATUS_CONNECTED:
            name = status.get("name") or self.name
            self._connected.add(name)
            self.logger.info("Companion '%s' connected", name)
        elif kind == STATUS_DISCONNECTED:
            self._connected.discard(status.get("name") or self.name)
        elif kind == STATUS_REPLY:
            future = self._pending_replies.pop(status.get("command_id", ""), None)
            if future is not None and not future.done():
                future.set_result(status.get("result"))
        elif kind == STATUS_ERROR:
            message = status.get("message", "unknown error")
            future = self._pending_replies.pop(status.get("command_id", ""), None)
            if future is not None and not future.done():
                future.set_exception(RuntimeError(message))
            else:
                self.logger.error("Companion reported error: %s", message)
        else:
            self.logger.debug("Unhandled companion status: %s", status)

    def _fail_pending(self, error: Exception) -> None:
        pending = list(self._pending_replies.values())
        self._pending_replies.clear()
        for future in pending:
            if not future.done():
                future.set_exception(error)

    # ------------------------------------------------------------------
    # Calls

    def is_connected(self, name: str) -> bool:
        return (
            name in self._connected
            and self.process is not None
            and self.process.returncode is None
        )

    def _write(self, line: str) -> bool:
        process = self.process
        if process is None or process.stdin is None or process.returncode is not None:
            return False
        try:
            process.stdin.write(line.encode())
        except (BrokenPipeError, ConnectionResetError) as e:
            self.logger.warning("Failed to write to companion: %s", e)
            return False
        return True

    def call_async(self, name: str, service: str, *args: Any) -> None:
        if not self.is_connected(name):
            self.logger.warning("Dropping call to %s.%s: not connected", name, service)
            return
        if self._write(ChannelMessage.call_service(service, args)):
            self.logger.debug("Sent %s.%s", name, service)

    async def call_sync(self, name: str, *args: Any, timeout: Optional[float] = None) -> Any:
        if not self.is_connected(name):
            raise ConnectionError(f"companion '{name}' is not connected")

        loop = asyncio.get_running_loop()
        command_id = new_command_id()
        future = loop.create_future()
        self._pending_replies[command_id] = future

        if not self._write(ChannelMessage.call(args, command_id)):
            self._pending_replies.pop(command_id, None)
            raise ConnectionError(f"could not write to companion '{name}'")

        try:
            return await asyncio.wait_for(future, timeout=timeout or DEFAULT_CALL_TIMEOUT)
        finally:
            self._pending_replies.pop(command_id, None)
