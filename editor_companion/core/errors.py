"""Exception taxonomy for the companion bridge."""

from __future__ import annotations

from typing import List, Sequence, Tuple


class EditorCompanionError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(EditorCompanionError):
    """A required path or environment value is missing. Never retried."""


class CompanionConnectionError(EditorCompanionError):
    """The companion did not register within the allowed spawn attempts."""

    def __init__(self, name: str, attempts: int, timeout: float) -> None:
        self.name = name
        self.attempts = attempts
        self.timeout = timeout
        super().__init__(
            f"Companion '{name}' did not connect after {attempts} spawn attempt(s) "
            f"({timeout:.1f}s each)"
        )


class PackageExportError(EditorCompanionError):
    """The host could not export a package (no active scene or controller)."""


class SessionBusyError(EditorCompanionError):
    """A recording of the same kind is already in progress."""


class ImportRejectedError(EditorCompanionError):
    """An import request targets a destination outside the asset root."""


class DeferredTaskError(EditorCompanionError):
    """One or more deferred tasks failed during a flush.

    Sibling tasks still ran; ``failures`` lists every (task name, exception)
    pair in execution order.
    """

    def __init__(self, failures: Sequence[Tuple[str, BaseException]]) -> None:
        self.failures: List[Tuple[str, BaseException]] = list(failures)
        names = ", ".join(name for name, _ in self.failures)
        super().__init__(f"{len(self.failures)} deferred task(s) failed: {names}")


__all__ = [
    "EditorCompanionError",
    "ConfigurationError",
    "CompanionConnectionError",
    "PackageExportError",
    "SessionBusyError",
    "ImportRejectedError",
    "DeferredTaskError",
]
