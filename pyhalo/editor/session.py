"""
The editing session: owns the shader text, dispatches validation requests,
and publishes the shaders that pass.
"""

import asyncio

from ..shader import validate, ShaderArtifact, Diagnostic, empty_shader, default_shader
from ..utils import logger
from ..utils.enums import DiagnosticKind
from .published import ShaderSlot
from .status import ValidationStatus


class ShaderSession:
    """An editing session for a single fragment shader.

    Each validation request gets a strictly increasing id. A result is only
    applied when its id is the most recently dispatched one; older results
    are discarded, even when the newer request has not finished yet. In-flight
    requests are never cancelled.

    Parameters
    ----------
    slot : ShaderSlot
        Where validated shaders are published for the renderer.
    text : str | None
        The initial text. Default the text of the currently published shader.
    auto_validate : bool
        Whether edits trigger a validation automatically. Default True.
    validator : callable
        An async function that maps text to a ``ShaderArtifact`` or
        ``Diagnostic``. Default ``pyhalo.shader.validate``.
    """

    def __init__(self, slot, text=None, *, auto_validate=True, validator=validate):
        self._slot = slot
        self._text = slot.current.artifact.source if text is None else str(text)
        self._auto_validate = bool(auto_validate)
        self._validator = validator
        self._status = ValidationStatus.validated()
        self._request_id = 0
        self._path = None
        self._pending = set()

    def __repr__(self):
        return f"<ShaderSession {self._status.kind} request {self._request_id}>"

    @property
    def slot(self):
        """The ``ShaderSlot`` that this session publishes to."""
        return self._slot

    @property
    def text(self):
        """The current shader text. Use ``edit()`` to change it."""
        return self._text

    @property
    def status(self):
        """The current ``ValidationStatus``."""
        return self._status

    @property
    def diagnostic(self):
        """The diagnostic of the latest failed validation, or None."""
        return self._status.diagnostic

    @property
    def path(self):
        """The file this session was last opened from or saved to, or None."""
        return self._path

    @property
    def request_id(self):
        """The id of the most recently dispatched validation request."""
        return self._request_id

    @property
    def auto_validate(self):
        """Whether edits are validated automatically.

        Turning this off does not cancel validations that are in flight.
        """
        return self._auto_validate

    @auto_validate.setter
    def auto_validate(self, value):
        self._auto_validate = bool(value)

    # %% Actions

    def edit(self, text):
        """Replace the shader text.

        With auto-validate on, this dispatches a validation request and
        returns its task. Otherwise the status becomes "needs validation"
        and None is returned.
        """
        self._text = str(text)
        if self._auto_validate:
            return self._dispatch()
        self._status = ValidationStatus.needs_validation()
        return None

    def validate_now(self):
        """Dispatch a validation request for the current text. Returns the task."""
        return self._dispatch()

    def new_shader(self):
        """Start over with the empty shader template.

        The template is known to be valid, so it is published right away.
        Any in-flight request is superseded.
        """
        self._text = empty_shader()
        self._request_id += 1
        self._path = None
        self._status = ValidationStatus.validated()
        published = self._slot.publish(ShaderArtifact(self._text, "fs_main"))
        logger.info(f"Published new shader as version {published.version}")
        return published

    def open(self, path):
        """Load the shader text from a file, and validate it. Returns the task."""
        with open(path, "rb") as f:
            text = f.read().decode("utf-8")
        self._path = path
        self._text = text
        return self._dispatch()

    def save(self, path=None):
        """Write the shader text to a file. Default to the last used path."""
        path = path or self._path
        if not path:
            raise ValueError("ShaderSession.save() needs a path.")
        with open(path, "wb") as f:
            f.write(self._text.encode("utf-8"))
        self._path = path
        return path

    def report_backend_error(self, version, error):
        """Report that the GPU backend rejected a published shader.

        Only a report about the currently published version changes the
        status. Reports about older versions are ignored.
        """
        if version != self._slot.version:
            logger.debug(f"Ignoring backend error for stale version {version}")
            return
        message = getattr(error, "message", None) or str(error)
        diagnostic = Diagnostic(DiagnosticKind.backend, message, ())
        logger.info(f"Shader version {version} was rejected by the backend")
        self._status = ValidationStatus.invalid(diagnostic)

    # %% Validation requests

    def _dispatch(self):
        self._request_id += 1
        request_id = self._request_id
        snapshot = self._text
        self._status = ValidationStatus.validating()
        logger.debug(f"Dispatching validation request {request_id}")
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(request_id, snapshot))
        # Keep a reference, so the task is not garbage collected while running
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(self, request_id, snapshot):
        try:
            result = await self._validator(snapshot)
            if not isinstance(result, (ShaderArtifact, Diagnostic)):
                raise TypeError(f"validator returned unexpected {result!r}")
        except Exception as err:
            logger.exception(f"Validation request {request_id} failed")
            message = f"the validator failed: {type(err).__name__}: {err}"
            result = Diagnostic(DiagnosticKind.validation, message, ())
        self._apply(request_id, snapshot, result)
        return result

    def _apply(self, request_id, snapshot, result):
        if request_id != self._request_id:
            logger.debug(
                f"Discarding result of request {request_id}, "
                f"request {self._request_id} supersedes it"
            )
            return
        if isinstance(result, ShaderArtifact):
            published = self._slot.publish(result)
            if self._text == snapshot:
                self._status = ValidationStatus.validated()
            else:
                # Edited (with auto-validate off) while this request was in flight
                self._status = ValidationStatus.needs_validation()
            logger.debug(f"Published shader version {published.version}")
        else:
            logger.info(f"Shader is invalid: {result.message}")
            self._status = ValidationStatus.invalid(result)


def create_session(text=None, **kwargs):
    """Create a session with a fresh slot, holding the default shader."""
    slot = ShaderSlot(ShaderArtifact(default_shader(), "fs_main"))
    return ShaderSession(slot, text, **kwargs)
