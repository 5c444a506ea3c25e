"""
A window that shows the published shader of a session, live.

The text is edited elsewhere (e.g. in a text editor, see ``watch()``);
the viewer shows the result and the validation status.
"""

import time

from .editor import FileWatcher
from .renderer import PipelineCache, RenderBridge, build_pipeline, get_shared
from .utils import logger, Rect
from .utils.viewport import Viewport


event_types = ["pointer_move", "key_down", "close"]


class Viewer:
    """Show the shader of a ``ShaderSession`` on a canvas.

    Parameters
    ----------
    session : ShaderSession
        The session to show.
    canvas : RenderCanvas | None
        The canvas to draw on. Default a new ``rendercanvas.glfw.RenderCanvas``.
    loop : rendercanvas loop | None
        The loop that drives the canvas. Default ``rendercanvas.asyncio.loop``.
        Validation runs as asyncio tasks, so other rendercanvas loops (e.g.
        Qt or wx) are not supported.

    Key bindings: Ctrl+Enter validates, Ctrl+S saves, Ctrl+N starts a new shader.
    """

    def __init__(self, session, canvas=None, loop=None):
        from rendercanvas import BaseLoop
        from rendercanvas.asyncio import AsyncioLoop, loop as asyncio_loop

        loop = loop or asyncio_loop
        if isinstance(loop, BaseLoop) and not isinstance(loop, AsyncioLoop):
            raise TypeError(
                f"Viewer needs an asyncio-based loop, not {type(loop).__name__}."
            )
        if canvas is None:
            from rendercanvas.glfw import RenderCanvas

            RenderCanvas.select_loop(loop)
            canvas = RenderCanvas(title="pyhalo", update_mode="continuous")
        self._session = session
        self._canvas = canvas
        self._loop = loop

        shared = get_shared()
        self._device = shared.device
        self._context = canvas.get_context("wgpu")
        self._format = self._context.get_preferred_format(shared.adapter)
        self._context.configure(device=self._device, format=self._format)

        self._cache = PipelineCache(
            lambda artifact: build_pipeline(self._device, self._format, artifact),
            on_error=self._on_backend_error,
        )
        self._bridge = RenderBridge(session.slot, self._cache, id(canvas))

        self._mouse = (0.0, 0.0)
        self._start_time = time.perf_counter()
        self._title = None
        self._watcher = None

        canvas.add_event_handler(self.handle_event, *event_types)
        canvas.request_draw(self._draw)

    @property
    def session(self):
        return self._session

    @property
    def canvas(self):
        return self._canvas

    @property
    def loop(self):
        """The rendercanvas loop that drives the canvas."""
        return self._loop

    @property
    def mouse(self):
        """The last known pointer position, in logical pixels."""
        return self._mouse

    @property
    def watcher(self):
        """The ``FileWatcher`` set up by ``watch()``, or None."""
        return self._watcher

    @property
    def cache(self):
        """The ``PipelineCache`` for this viewer."""
        return self._cache

    def watch(self, path):
        """Feed changes to the given file into the session as edits."""
        if self._watcher is not None:
            self._loop.add_task(self._watcher.stop)
        self._watcher = FileWatcher(path, self._session.edit)
        self._loop.add_task(self._watcher.start)

    def run(self):
        """Enter the main loop."""
        self._loop.run()

    # %% Events

    def handle_event(self, event):
        """Handle a rendercanvas event (a dict)."""
        type = event["event_type"]
        if type == "pointer_move":
            self._mouse = event["x"], event["y"]
        elif type == "key_down":
            if "Control" not in event.get("modifiers", ()):
                return
            key = event["key"].lower()
            if key == "enter":
                self._session.validate_now()
            elif key == "s":
                if self._session.path:
                    self._session.save()
                else:
                    logger.warning("Cannot save: the session has no file path.")
            elif key == "n":
                self._session.new_shader()
        elif type == "close":
            self._cache.forget(self._bridge.surface_key)

    def _on_backend_error(self, key, version, error):
        self._loop.call_soon(self._session.report_backend_error, version, error)

    # %% Drawing

    def _update_title(self):
        status = self._session.status
        title = f"pyhalo - {status.label}"
        if title != self._title:
            self._title = title
            self._canvas.set_title(title)
            if status.diagnostic is not None:
                logger.warning(status.diagnostic.format(self._session.text))

    def _draw(self):
        self._update_title()

        physical_size = self._canvas.get_physical_size()
        if not (physical_size[0] and physical_size[1]):
            return
        viewport = Viewport(physical_size, self._canvas.get_pixel_ratio())
        bounds = Rect(0, 0, *self._canvas.get_logical_size())
        elapsed = time.perf_counter() - self._start_time

        device = self._device
        compiled = self._bridge.prepare(
            device.queue, bounds, self._mouse, elapsed, viewport
        )
        if compiled is None:
            return

        target = self._context.get_current_texture().create_view()
        encoder = device.create_command_encoder()
        self._bridge.render(encoder, target, (0, 0, *physical_size))
        device.queue.submit([encoder.finish()])
