"""
Durable JSON records.

The session store and the recording markers must be readable by the next
incarnation of the bridge, which may start while (or because) the previous
one was torn down mid-write. Records are therefore written to a hidden
sibling, flushed to disk and renamed into place.
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import IO, Any, Dict, Iterator, Optional, Union

from .logging_utils import get_module_logger

logger = get_module_logger("DurableState")

PathLike = Union[str, Path]


@contextlib.contextmanager
def _replacing(path: Path) -> Iterator[IO[str]]:
    """Yield a handle whose contents replace ``path`` only if the block succeeds."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, staging = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".partial")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            yield handle
            handle.flush()
            try:
                os.fsync(handle.fileno())
            except OSError as e:
                logger.debug("fsync of %s failed: %s", staging, e)
        os.replace(staging, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(staging)
        raise


def write_json_atomic(path: PathLike, data: Dict[str, Any]) -> None:
    with _replacing(Path(path)) as handle:
        json.dump(data, handle, indent=2, sort_keys=True)


def read_json(path: PathLike) -> Optional[Dict[str, Any]]:
    """Return the object stored at ``path``; None when missing or unusable."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        return None

    try:
        data = json.loads(text)
    except ValueError:
        logger.warning("Discarding corrupt record %s", path)
        return None
    return data if isinstance(data, dict) else None


__all__ = ["write_json_atomic", "read_json"]
