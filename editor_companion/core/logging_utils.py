"""Component-scoped loggers for the companion bridge.

Every logger lives under the ``editor_companion`` namespace and prefixes its
messages with the component that emitted them (``[CompanionSupervisor]``,
``[RecordingSession.movie]``...). The host shows one flat diagnostic stream,
so the prefix is what keeps supervisor and recorder messages apart.
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Optional, Tuple, Union

LOGGER_NAMESPACE = "editor_companion"


def qualified_name(name: Optional[str]) -> str:
    if not name or name == LOGGER_NAMESPACE:
        return LOGGER_NAMESPACE
    if name.startswith(f"{LOGGER_NAMESPACE}."):
        return name
    return f"{LOGGER_NAMESPACE}.{name}"


def component_of(logger_name: str) -> str:
    suffix = logger_name[len(LOGGER_NAMESPACE):].lstrip(".")
    return suffix or "Bridge"


class ComponentLogger(logging.LoggerAdapter):
    """Adapter that tags each record with ``component`` and prefixes the text."""

    def __init__(self, logger: logging.Logger, component: Optional[str] = None) -> None:
        resolved = component or component_of(logger.name)
        super().__init__(logger, {"component": resolved})

    @property
    def component(self) -> str:
        return self.extra["component"]

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("component", self.component)
        kwargs["extra"] = extra
        return f"[{self.component}] {msg}", kwargs

    def child(self, suffix: str) -> "ComponentLogger":
        return ComponentLogger(self.logger.getChild(suffix), f"{self.component}.{suffix}")


LoggerLike = Union[ComponentLogger, logging.Logger, None]


def as_component_logger(logger: LoggerLike, fallback: str = "Bridge") -> ComponentLogger:
    if isinstance(logger, ComponentLogger):
        return logger
    if isinstance(logger, logging.Logger):
        return ComponentLogger(logger)
    return get_module_logger(fallback)


def get_module_logger(name: Optional[str] = None) -> ComponentLogger:
    """Return the component logger for ``name`` inside the bridge namespace."""
    return ComponentLogger(logging.getLogger(qualified_name(name)))


__all__ = [
    "LOGGER_NAMESPACE",
    "ComponentLogger",
    "LoggerLike",
    "as_component_logger",
    "get_module_logger",
    "qualified_name",
]
