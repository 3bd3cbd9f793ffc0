"""Interface of the host <-> companion signaling channel."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Protocol


class ProcessHandle(Protocol):
    pid: int


class ConnectionChannel(ABC):
    """Bidirectional channel to companions, addressed by logical name.

    ``call_async`` is at-most-once with no delivery confirmation; any
    retransmission policy belongs to the concrete channel, not its callers.
    """

    @abstractmethod
    async def spawn(self, script_path: Path) -> ProcessHandle:
        """Launch a companion running ``script_path``."""

    @abstractmethod
    def is_connected(self, name: str) -> bool:
        """True once the named companion has registered."""

    @abstractmethod
    def call_async(self, name: str, service: str, *args: Any) -> None:
        """Fire-and-forget service call."""

    @abstractmethod
    async def call_sync(self, name: str, *args: Any, timeout: Optional[float] = None) -> Any:
        """Blocking call, used only for the startup bootstrap."""

    async def close(self) -> None:
        """Release channel resources. Optional for implementations."""

    async def wait_for_connection(
        self,
        name: str,
        timeout: float,
        poll_interval: float = 0.1,
    ) -> AsyncIterator[bool]:
        """Yield the connection state once per poll until connected or timed out.

        Every iteration suspends on the event loop, so the host keeps running
        (and so does anything the companion's startup is waiting on).
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            connected = self.is_connected(name)
            yield connected
            remaining = deadline - loop.time()
            if connected or remaining <= 0:
                return
            await asyncio.sleep(min(poll_interval, remaining))


__all__ = ["ConnectionChannel", "ProcessHandle"]
