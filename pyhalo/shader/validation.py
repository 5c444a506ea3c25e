"""
The validator: turns user shader text into a trusted ``ShaderArtifact``,
or into a ``Diagnostic`` that explains what is wrong.

Validation is side-effect free. The result is returned to the caller,
which decides whether it is still relevant.
"""

import asyncio
from collections import namedtuple

from ..errors import ParseError, SemanticValidationError
from ..utils import logger
from ..utils.enums import DiagnosticKind
from .parser import parse
from .prologue import concatenate, prologue_nbytes
from .resolve import resolve_module
from .semantics import validate_module, ALL_CAPABILITIES


class ShaderArtifact(namedtuple("ShaderArtifact", ["source", "entry_point"])):
    """A validated fragment shader. Immutable, so it can be shared freely.

    Attributes
    ----------
    source : str
        The user text (without the prologue).
    entry_point : str
        The name of the ``@fragment`` function.
    """

    __slots__ = ()


Span = namedtuple("Span", ["start", "end", "message"])
Span.__doc__ = "A labelled byte range into the concatenated (prologue + user) text."

RemappedSpan = namedtuple("RemappedSpan", ["start", "end", "message", "in_prologue"])
RemappedSpan.__doc__ = """A labelled byte range into the user text.

When ``in_prologue`` is True, the span points into the prologue, which
means the error is in pyhalo's own declarations rather than in the user
text. Start and end are then None.
"""


class Diagnostic(namedtuple("Diagnostic", ["kind", "message", "spans"])):
    """Why a shader was rejected.

    Attributes
    ----------
    kind : DiagnosticKind
        "parse", "validation", or "backend".
    message : str
        The main error message.
    spans : tuple of Span
        Byte ranges into the concatenated text. Empty when no precise
        location is available.
    """

    __slots__ = ()

    def remap(self, offset=None):
        """Get the spans relative to the user text.

        The offset defaults to the byte length of the prologue (plus the
        newline that joins it to the user text).
        """
        if offset is None:
            offset = prologue_nbytes()
        result = []
        for span in self.spans:
            if span.start < offset:
                result.append(RemappedSpan(None, None, span.message, True))
            else:
                result.append(
                    RemappedSpan(
                        span.start - offset, span.end - offset, span.message, False
                    )
                )
        return tuple(result)

    def format(self, text, offset=None):
        """Get a human readable report, quoting the offending parts of text."""
        data = text.encode("utf-8")
        lines = [self.message]
        for span in self.remap(offset):
            if span.in_prologue:
                lines.append(f"    {span.message} (inside the built-in prologue)")
                continue
            start = min(span.start, len(data))
            end = max(start, min(span.end, len(data)))
            linenr = data.count(b"\n", 0, start) + 1
            col = start - (data.rfind(b"\n", 0, start) + 1) + 1
            lines.append(f"    {linenr}:{col}: {span.message}")
            snippet = data[start:end].decode("utf-8", errors="replace")
            if snippet.strip():
                lines.append(f"        {snippet}")
        return "\n".join(lines)


def validate_sync(text):
    """Validate the given user text, returning a ``ShaderArtifact`` or a ``Diagnostic``.

    The prologue is prepended before parsing, so spans in the diagnostic
    refer to the concatenated text; use ``Diagnostic.remap()`` to get
    positions in ``text``.
    """
    source = concatenate(text)

    try:
        module = parse(source)
        symbols = resolve_module(module, source)
    except ParseError as err:
        logger.debug(f"Shader parse error: {err.message}")
        spans = tuple(Span(*label) for label in err.labels)
        return Diagnostic(DiagnosticKind.parse, err.message, spans)
    except RecursionError:
        # Long operator chains nest deeply in the tree, without any braces
        return Diagnostic(DiagnosticKind.parse, "expression is nested too deeply", ())

    try:
        entry_point = validate_module(module, symbols, ALL_CAPABILITIES)
    except SemanticValidationError as err:
        logger.debug(f"Shader validation error: {err.message}")
        return Diagnostic(DiagnosticKind.validation, err.message, ())
    except RecursionError:
        return Diagnostic(DiagnosticKind.validation, "shader is nested too deeply", ())

    return ShaderArtifact(text, entry_point)


async def validate(text, *, executor=None):
    """Validate the given user text without blocking the event loop.

    Runs ``validate_sync`` in the given executor (or the loop's default
    executor). Returns a ``ShaderArtifact`` or a ``Diagnostic``.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, validate_sync, text)
