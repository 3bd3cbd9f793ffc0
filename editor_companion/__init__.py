"""Supervise an editor's companion process and its resumable recordings."""

from .runtime import CompanionRuntime

__version__ = "1.0.0"

__all__ = ['CompanionRuntime', '__version__']
