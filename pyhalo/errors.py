"""
The errors raised while turning shader text into something the GPU can run.

Parse and semantic errors are recovered at the validation boundary (they
become a ``Diagnostic``). Backend errors are recovered by the pipeline
cache, which keeps the last working pipeline.
"""


class ShaderError(Exception):
    """Base class for all shader errors."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ParseError(ShaderError):
    """The shader text is not valid WGSL syntax, or refers to things that do not exist.

    The ``labels`` are ``(start, end, label)`` tuples, with start and end
    byte offsets into the parsed text.
    """

    def __init__(self, message, labels=()):
        super().__init__(message)
        self.labels = [tuple(label) for label in labels]


class SemanticValidationError(ShaderError):
    """The shader parses, but breaks a validation rule. There is no reliable span."""


class BackendCompileError(ShaderError):
    """The GPU backend rejected a shader that passed front-end validation."""
