"""
Host load entry point.

The host calls ``CompanionRuntime.initialize`` every time it (re)loads the
bridge, including after a reload mid-capture. Everything built here is
disposable: the only state that carries over lives in the session store and
the recording markers.
"""

import asyncio
import shutil
from typing import Any, Mapping, Optional

from .core.channel.base import ConnectionChannel
from .core.channel.stdio_channel import StdioChannel
from .core.config_manager import CompanionConfig, ConfigManager, get_config_manager
from .core.deferred_queue import DeferredCompletionQueue
from .core.host import EditorHost
from .core.logging_config import configure_logging
from .core.logging_utils import get_module_logger
from .core.paths import ProductPaths, host_temp_dir
from .core.process_liveness import cleanup_orphaned_companions
from .core.session_store import SessionStore
from .core.supervisor import CompanionSupervisor
from .importing.importer import AssetImporter
from .recording.manager import RecordingSessionManager
from .recording.publish import PublishRequest
from .recording.settings import RecorderHost

logger = get_module_logger("Runtime")

LOG_FILENAME = "companion.log"


class CompanionRuntime:

    def __init__(
        self,
        editor: EditorHost,
        recorders: RecorderHost,
        config: CompanionConfig,
        channel: Optional[ConnectionChannel] = None,
        paths: Optional[ProductPaths] = None,
        store: Optional[SessionStore] = None,
        supervisor: Optional[CompanionSupervisor] = None,
    ):
        self.editor = editor
        self.config = config
        self.paths = paths or ProductPaths.for_project(editor.product_name, editor.project_root)
        self.paths.ensure()

        self.channel = channel or StdioChannel(config.companion_name)
        self.store = store or SessionStore.for_host(self.paths)
        self.supervisor = supervisor or CompanionSupervisor(self.channel, self.store, config)
        self.queue = DeferredCompletionQueue()
        self.recordings = RecordingSessionManager(
            editor, recorders, self.supervisor, self.queue, self.paths
        )
        self.importer = AssetImporter(editor, self.queue)
        self._quit_registered = False

    @classmethod
    async def initialize(
        cls,
        editor: EditorHost,
        recorders: RecorderHost,
        channel: Optional[ConnectionChannel] = None,
        config_manager: Optional[ConfigManager] = None,
        start_companion: bool = True,
        configure_logs: bool = True,
    ) -> "CompanionRuntime":
        """Build the runtime, recover any capture and start the companion.

        Raises ConfigurationError when the resource path is not configured;
        initialization stops there.
        """
        manager = config_manager or get_config_manager()
        config = await manager.load_async()

        runtime = cls(editor, recorders, config, channel=channel)
        if configure_logs:
            configure_logging(
                config.log_level,
                console=False,
                log_file=runtime.paths.work_dir / LOG_FILENAME,
            )
        runtime.register_quit_handler()

        if runtime.recordings.on_reload():
            logger.info("Resumed an in-progress recording after reload")

        if start_companion:
            if runtime.store.get_pid() is None:
                # Fresh host session: companions of a crashed host are orphans.
                await asyncio.to_thread(
                    cleanup_orphaned_companions, str(config.bootstrap_script)
                )
            await runtime.supervisor.start()
        return runtime

    async def reinitialize(self) -> None:
        """Stop the companion and start a fresh one."""
        await self.supervisor.stop()
        await self.supervisor.start()

    # ------------------------------------------------------------------
    # Companion callbacks

    def publish(self, request: Mapping[str, Any]) -> bool:
        return self.recordings.publish(PublishRequest.from_mapping(request))

    def request_import(self, request: Mapping[str, Any]) -> None:
        self.importer.enqueue_mapping(request)

    # ------------------------------------------------------------------
    # Quit

    def register_quit_handler(self) -> None:
        if not self._quit_registered:
            self.editor.subscribe_quit(self.on_quit)
            self._quit_registered = True

    def on_quit(self) -> None:
        if self._quit_registered:
            self.editor.unsubscribe_quit(self.on_quit)
            self._quit_registered = False
        remove_host_temp_dir(self.editor)


def remove_host_temp_dir(editor: EditorHost) -> bool:
    """Best-effort removal of the host-side working area."""
    temp_dir = host_temp_dir(editor.asset_root)
    try:
        shutil.rmtree(temp_dir)
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("Could not remove %s: %s", temp_dir, e)
        return False
    logger.debug("Removed %s", temp_dir)
    return True
