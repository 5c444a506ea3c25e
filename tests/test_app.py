import asyncio

import numpy as np
import pytest
from pytest import raises

from pyhalo.app import Viewer
from pyhalo.editor import FileWatcher, create_session
from pyhalo.errors import BackendCompileError
from pyhalo.utils.enums import StatusKind, DiagnosticKind


RED = """
@fragment
fn fs_main(frag: VertexOutput) -> @location(0) vec4<f32> {
    return vec4<f32>(1.0, 0.0, 0.0, 1.0);
}
"""

BLUE = RED.replace("1.0, 0.0, 0.0", "0.0, 0.0, 1.0")

# Passes the front end, but the backend rejects it
MISTYPED = RED.replace("1.0, 0.0, 0.0, 1.0", "dot(uniforms.time), 0.0, 0.0, 1.0")


class RecordingLoop:
    """Stands in for a rendercanvas loop, and records what is scheduled on it."""

    def __init__(self):
        self.soon = []
        self.tasks = []

    def call_soon(self, callback, *args):
        self.soon.append((callback, args))

    def add_task(self, async_func, *args, name=None):
        self.tasks.append((async_func, args))

    def run(self):
        pass

    def flush(self):
        soon, self.soon = self.soon, []
        for callback, args in soon:
            callback(*args)


@pytest.fixture
def make_viewer(device):
    from rendercanvas.offscreen import RenderCanvas

    def make_viewer(session):
        canvas = RenderCanvas(size=(64, 48))
        return Viewer(session, canvas, RecordingLoop())

    return make_viewer


def key_down(key, *modifiers):
    return {"event_type": "key_down", "key": key, "modifiers": modifiers}


def test_viewer_rejects_other_loops(device):
    from rendercanvas.offscreen import RenderCanvas, loop

    with raises(TypeError):
        Viewer(create_session(), RenderCanvas(size=(64, 48)), loop)


def test_viewer_draws_published_shader(make_viewer):
    session = create_session(RED)
    viewer = make_viewer(session)

    async def main():
        await session.validate_now()

    asyncio.run(main())
    im = np.asarray(viewer.canvas.draw())
    assert im.shape == (48, 64, 4)
    assert np.all(im[:, :, 0] == 255)
    assert np.all(im[:, :, 1:3] == 0)


def test_pointer_move_updates_mouse(make_viewer):
    viewer = make_viewer(create_session())
    assert viewer.mouse == (0.0, 0.0)
    viewer.handle_event({"event_type": "pointer_move", "x": 12.5, "y": 30})
    assert viewer.mouse == (12.5, 30)


def test_ctrl_enter_validates(make_viewer):
    session = create_session(RED, auto_validate=False)
    viewer = make_viewer(session)

    async def main():
        viewer.handle_event(key_down("Enter"))  # no modifier, no effect
        assert session.request_id == 0
        viewer.handle_event(key_down("Enter", "Control"))
        assert session.status.kind == StatusKind.validating
        await asyncio.gather(*session._pending)

    asyncio.run(main())
    assert session.status.kind == StatusKind.validated
    assert session.slot.version == 1
    assert session.slot.current.artifact.source == RED


def test_ctrl_s_saves(make_viewer, tmp_path):
    session = create_session(RED, auto_validate=False)
    viewer = make_viewer(session)

    # Without a path, nothing is saved
    viewer.handle_event(key_down("s", "Control"))
    assert session.path is None

    path = tmp_path / "shader.wgsl"
    session.save(str(path))
    session.edit(BLUE)
    viewer.handle_event(key_down("s", "Control"))
    assert path.read_text(encoding="utf-8") == BLUE


def test_ctrl_n_starts_new_shader(make_viewer):
    session = create_session(RED)
    viewer = make_viewer(session)
    viewer.handle_event(key_down("n", "Control"))
    assert session.slot.version == 1
    assert "fs_main" in session.text
    assert session.status.kind == StatusKind.validated


def test_backend_error_is_reported_via_loop(make_viewer):
    session = create_session(RED)
    viewer = make_viewer(session)
    viewer.canvas.draw()

    async def main():
        await session.edit(MISTYPED)

    asyncio.run(main())
    assert session.slot.version == 1
    viewer.canvas.draw()

    # Reported later, on the loop
    assert session.status.kind == StatusKind.validated
    assert len(viewer.loop.soon) == 1
    callback, (version, error) = viewer.loop.soon[0]
    assert callback == session.report_backend_error
    assert version == 1
    assert isinstance(error, BackendCompileError)

    viewer.loop.flush()
    assert session.status.kind == StatusKind.invalid
    assert session.diagnostic.kind == DiagnosticKind.backend

    # The last working pipeline is kept
    assert viewer.cache.get(id(viewer.canvas)).version == 0


def test_watch_reloads_file_on_change(make_viewer, tmp_path):
    from unittest.mock import patch
    from watchfiles import Change

    path = tmp_path / "shader.wgsl"
    path.write_bytes(RED.encode("utf-8"))
    session = create_session()
    viewer = make_viewer(session)

    viewer.watch(str(path))
    assert isinstance(viewer.watcher, FileWatcher)
    assert viewer.loop.tasks == [(viewer.watcher.start, ())]

    async def changes():
        yield {(Change.modified, str(path))}
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            return

    async def main():
        with patch("pyhalo.editor.watcher.awatch") as awatch:
            awatch.return_value = changes()
            start, args = viewer.loop.tasks[0]
            await start(*args)
            while session.slot.version == 0:
                await asyncio.sleep(0.01)
            await viewer.watcher.stop()

    asyncio.run(main())
    assert session.text == RED
    assert session.status.kind == StatusKind.validated


def test_close_forgets_pipeline(make_viewer):
    session = create_session(RED)
    viewer = make_viewer(session)
    viewer.canvas.draw()
    assert len(viewer.cache) == 1
    viewer.handle_event({"event_type": "close"})
    assert len(viewer.cache) == 0
