"""
The shader front end: from WGSL text to a validated shader artifact.

.. currentmodule:: pyhalo.shader

.. autosummary::
    :toctree: shader/

    validate
    validate_sync
    ShaderArtifact
    Diagnostic
    Span

"""

# ruff: noqa: F401

from .prologue import (
    UNIFORM_TYPE,
    get_prologue,
    concatenate,
    prologue_nbytes,
    default_shader,
    empty_shader,
)
from .validation import (
    ShaderArtifact,
    Diagnostic,
    Span,
    RemappedSpan,
    validate,
    validate_sync,
)

__all__ = [
    "UNIFORM_TYPE",
    "get_prologue",
    "concatenate",
    "prologue_nbytes",
    "default_shader",
    "empty_shader",
    "ShaderArtifact",
    "Diagnostic",
    "Span",
    "RemappedSpan",
    "validate",
    "validate_sync",
]
