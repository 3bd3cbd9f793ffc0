"""
Companion configuration.

The only required input is ``EDITOR_COMPANION_RESOURCE_PATH``, set by the
launcher that starts the editor. The resource directory holds the bootstrap
script and, optionally, ``companion.txt`` with ``key = value`` overrides::

    # companion.txt
    companion_name = companion
    max_connect_attempts = 3
    connect_timeout = 10     # seconds per spawn attempt
    poll_interval = 0.1
    log_level = info
"""

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, Mapping, Optional, TypeVar

import aiofiles

from .errors import ConfigurationError
from .logging_utils import get_module_logger
from .paths import BOOTSTRAP_SCRIPT_RELPATH, CONFIG_FILENAME, RESOURCE_PATH_ENV


logger = get_module_logger("ConfigManager")

T = TypeVar("T")

TRUE_WORDS = frozenset({"true", "1", "yes", "on"})


@dataclass(frozen=True)
class CompanionConfig:
    """Resolved settings for one host session."""

    resource_path: Path
    companion_name: str = "companion"
    max_connect_attempts: int = 3
    connect_timeout: float = 10.0
    poll_interval: float = 0.1
    log_level: str = "info"

    @property
    def bootstrap_script(self) -> Path:
        return self.resource_path / BOOTSTRAP_SCRIPT_RELPATH

    @property
    def config_file(self) -> Path:
        return self.resource_path / CONFIG_FILENAME


_DEFAULTS = CompanionConfig(resource_path=Path("."))


def parse_config_lines(lines: Iterable[str]) -> Dict[str, str]:
    """Parse ``key = value`` lines; blank, comment and malformed lines are skipped."""
    values: Dict[str, str] = {}
    for raw in lines:
        line = raw.split("#", 1)[0].strip()
        key, sep, value = line.partition("=")
        if not sep or not key.strip():
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        values[key.strip()] = value
    return values


class ConfigManager:

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ
        self._reported_missing = False

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    # ------------------------------------------------------------------
    # Environment

    def resource_path(self) -> Path:
        """Return the companion resource directory or raise ConfigurationError.

        The error is logged only the first time; callers are expected to stop
        initializing rather than retry.
        """
        value = self.environ.get(RESOURCE_PATH_ENV)
        if value:
            return Path(value).expanduser()

        if not self._reported_missing:
            self._reported_missing = True
            logger.error(
                "%s was not found in the environment. Launch the editor from the "
                "companion launcher to enable the integration",
                RESOURCE_PATH_ENV,
            )
        raise ConfigurationError(f"{RESOURCE_PATH_ENV} is not set")

    def bootstrap_script(self) -> Path:
        return self.resource_path() / BOOTSTRAP_SCRIPT_RELPATH

    # ------------------------------------------------------------------
    # companion.txt

    def read_config(self, config_path: Path) -> Dict[str, str]:
        try:
            with open(config_path, "r", encoding="utf-8") as fh:
                return parse_config_lines(fh)
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.error("Failed to read config %s: %s", config_path, e)
            return {}

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        if not await asyncio.to_thread(config_path.is_file):
            return {}
        try:
            async with aiofiles.open(config_path, "r", encoding="utf-8") as fh:
                return parse_config_lines(await fh.readlines())
        except OSError as e:
            logger.error("Failed to read config %s: %s", config_path, e)
            return {}

    def build_config(self, resource_path: Path, values: Mapping[str, str]) -> CompanionConfig:
        attempts = self.get_int(values, "max_connect_attempts", _DEFAULTS.max_connect_attempts)
        if attempts < 1:
            logger.warning(
                "max_connect_attempts must be at least 1, using %d", _DEFAULTS.max_connect_attempts
            )
            attempts = _DEFAULTS.max_connect_attempts

        return CompanionConfig(
            resource_path=resource_path,
            companion_name=self.get_str(values, "companion_name", _DEFAULTS.companion_name),
            max_connect_attempts=attempts,
            connect_timeout=self.get_float(values, "connect_timeout", _DEFAULTS.connect_timeout),
            poll_interval=self.get_float(values, "poll_interval", _DEFAULTS.poll_interval),
            log_level=self.get_str(values, "log_level", _DEFAULTS.log_level),
        )

    def load(self) -> CompanionConfig:
        resource_path = self.resource_path()
        return self.build_config(resource_path, self.read_config(resource_path / CONFIG_FILENAME))

    async def load_async(self) -> CompanionConfig:
        resource_path = self.resource_path()
        values = await self.read_config_async(resource_path / CONFIG_FILENAME)
        return self.build_config(resource_path, values)

    # ------------------------------------------------------------------
    # Typed accessors

    @staticmethod
    def _convert(values: Mapping[str, str], key: str, default: T, convert: Callable[[str], T]) -> T:
        raw = values.get(key)
        if raw is None or raw == "":
            return default
        try:
            return convert(raw)
        except ValueError:
            logger.warning("Ignoring invalid %s=%r, using %r", key, raw, default)
            return default

    def get_bool(self, values: Mapping[str, str], key: str, default: bool = False) -> bool:
        return self._convert(values, key, default, lambda raw: raw.lower() in TRUE_WORDS)

    def get_int(self, values: Mapping[str, str], key: str, default: int = 0) -> int:
        return self._convert(values, key, default, int)

    def get_float(self, values: Mapping[str, str], key: str, default: float = 0.0) -> float:
        return self._convert(values, key, default, float)

    def get_str(self, values: Mapping[str, str], key: str, default: str = "") -> str:
        return self._convert(values, key, default, str)


_config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    return _config_manager
