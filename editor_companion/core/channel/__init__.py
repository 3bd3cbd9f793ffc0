"""
Host <-> companion signaling.

``ConnectionChannel`` is the interface the supervisor depends on; the
embedding layer may provide its own. ``StdioChannel`` is the default
implementation, running the companion as a child process.
"""

from .base import ConnectionChannel, ProcessHandle
from .protocol import ChannelMessage
from .stdio_channel import StdioChannel

__all__ = [
    'ConnectionChannel',
    'ProcessHandle',
    'ChannelMessage',
    'StdioChannel',
]
