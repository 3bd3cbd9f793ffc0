from .channel import ConnectionChannel, StdioChannel
from .config_manager import CompanionConfig, ConfigManager, get_config_manager
from .deferred_queue import DeferredCompletionQueue, DeferredTask
from .errors import (
    CompanionConnectionError,
    ConfigurationError,
    DeferredTaskError,
    EditorCompanionError,
    ImportRejectedError,
    PackageExportError,
    SessionBusyError,
)
from .host import EditorHost, PlayModeState
from .paths import ProductPaths
from .session_store import SessionStore
from .supervisor import CompanionSupervisor, ProcessState

__all__ = [
    'ConnectionChannel',
    'StdioChannel',
    'CompanionConfig',
    'ConfigManager',
    'get_config_manager',
    'DeferredCompletionQueue',
    'DeferredTask',
    'EditorCompanionError',
    'ConfigurationError',
    'CompanionConnectionError',
    'DeferredTaskError',
    'ImportRejectedError',
    'PackageExportError',
    'SessionBusyError',
    'EditorHost',
    'PlayModeState',
    'ProductPaths',
    'SessionStore',
    'CompanionSupervisor',
    'ProcessState',
]
