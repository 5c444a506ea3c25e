"""
The enums used in pyhalo. The enums are all available from the root ``pyhalo`` namespace.

.. currentmodule:: pyhalo.utils.enums

.. autosummary::
    :toctree: utils/enums

    StatusKind
    DiagnosticKind

"""

from wgpu.utils import BaseEnum


__all__ = ["DiagnosticKind", "StatusKind"]


class Enum(BaseEnum):
    """Enum base class for pyhalo."""


class StatusKind(Enum):
    """The validation state of an editing session."""

    validated = None  #: The current text produced the published shader.
    validating = None  #: A validation request is in flight.
    invalid = None  #: The latest validation failed; see the diagnostic.
    needs_validation = None  #: The text was edited but not yet validated.


class DiagnosticKind(Enum):
    """Where in the pipeline a shader was rejected."""

    parse = None  #: Syntax error, with byte spans.
    validation = None  #: Semantic validation error, without reliable span.
    backend = None  #: The GPU backend refused the validated shader.
