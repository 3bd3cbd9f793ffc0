from .manager import RecordingSessionManager
from .publish import PublishRequest
from .session import RecordingSession, SessionState
from .settings import RecorderHost, RecorderKind, RecorderSettings

__all__ = [
    'RecordingSessionManager',
    'PublishRequest',
    'RecordingSession',
    'SessionState',
    'RecorderHost',
    'RecorderKind',
    'RecorderSettings',
]
