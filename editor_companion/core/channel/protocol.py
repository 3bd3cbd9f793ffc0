"""Newline-delimited JSON messages exchanged with the companion over stdio.

Host -> companion lines carry a ``command``; companion -> host lines carry a
``status``. Anything else the companion prints is treated as plain output.
"""

import datetime
import json
import uuid
from typing import Any, Dict, Optional, Sequence

from ..logging_utils import get_module_logger

logger = get_module_logger("ChannelProtocol")

COMMAND_CALL_SERVICE = "call_service"
COMMAND_CALL = "call"
COMMAND_QUIT = "quit"

STATUS_CONNECTED = "connected"
STATUS_DISCONNECTED = "disconnected"
STATUS_REPLY = "reply"
STATUS_ERROR = "error"


def new_command_id() -> str:
    return uuid.uuid4().hex


def _encode(payload: Dict[str, Any]) -> str:
    return f"{json.dumps(payload)}\n"


class ChannelMessage:

    @classmethod
    def command(cls, name: str, command_id: Optional[str] = None, **fields: Any) -> str:
        """Encode a host -> companion line stamped with the local send time."""
        payload: Dict[str, Any] = {"command": name, "sent_at": datetime.datetime.now().isoformat()}
        if command_id:
            payload["command_id"] = command_id
        return _encode({**payload, **fields})

    @classmethod
    def call_service(cls, service: str, args: Sequence[Any]) -> str:
        return cls.command(COMMAND_CALL_SERVICE, service=service, args=list(args))

    @classmethod
    def call(cls, args: Sequence[Any], command_id: str) -> str:
        return cls.command(COMMAND_CALL, command_id=command_id, args=list(args))

    @classmethod
    def quit(cls) -> str:
        return cls.command(COMMAND_QUIT)

    @staticmethod
    def status(status: str, **fields: Any) -> str:
        """Encode a companion -> host line (used by companion scripts and tests)."""
        return _encode({"status": status, **fields})

    @staticmethod
    def parse_status(raw: str) -> Optional[Dict[str, Any]]:
        """Decode a status line; plain output and malformed JSON give None."""
        line = raw.strip()
        if not line.startswith("{"):
            return None
        try:
            decoded = json.loads(line)
        except ValueError as e:
            logger.debug("Ignoring malformed status line: %s - %s", e, line[:100])
            return None

        if isinstance(decoded, dict) and "status" in decoded:
            return decoded
        return None


__all__ = [
    "ChannelMessage",
    "new_command_id",
    "COMMAND_CALL_SERVICE",
    "COMMAND_CALL",
    "COMMAND_QUIT",
    "STATUS_CONNECTED",
    "STATUS_DISCONNECTED",
    "STATUS_REPLY",
    "STATUS_ERROR",
]
