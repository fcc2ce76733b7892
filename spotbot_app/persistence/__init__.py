"""Session-file persistence for submitted calls."""

from .call_store import CallStore

__all__ = ["CallStore"]
