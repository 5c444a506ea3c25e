"""A live WGSL fragment shader playground."""

# ruff: noqa: F401, F403

from ._version import __version__, version_info
from . import utils

from .errors import (
    ShaderError,
    ParseError,
    SemanticValidationError,
    BackendCompileError,
)
from .shader import *
from .editor import *
from .renderer import *

from .utils import enums, logger, Rect
from .utils.enums import *
from .utils.viewport import Viewport


def __getattr__(name):
    # The viewer pulls in a GUI backend, so only import it when asked for
    if name == "Viewer":
        from .app import Viewer

        return Viewer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
