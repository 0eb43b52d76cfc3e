"""Debounced draft order autosave."""

from .autosave import DEFAULT_AUTOSAVE_DELAY, DraftAutosaver, SaveStatus

__all__ = ["DEFAULT_AUTOSAVE_DELAY", "DraftAutosaver", "SaveStatus"]
