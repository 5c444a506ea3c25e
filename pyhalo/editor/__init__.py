"""
The editing side of pyhalo: the validation state machine and the slot
through which validated shaders are handed to the renderer.

.. currentmodule:: pyhalo.editor

.. autosummary::
    :toctree: editor/

    ShaderSession
    FileWatcher
    ShaderSlot
    Published
    ValidationStatus
    create_session

"""

# ruff: noqa: F401

from .published import Published, ShaderSlot
from .status import ValidationStatus
from .session import ShaderSession, create_session
from .watcher import FileWatcher

__all__ = [
    "Published",
    "ShaderSlot",
    "ValidationStatus",
    "ShaderSession",
    "create_session",
    "FileWatcher",
]
