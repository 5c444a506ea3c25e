import datetime

import numpy as np

from pyhalo.renderer import marshal_uniforms
from pyhalo.utils import Rect
from pyhalo.utils.viewport import Viewport


def test_marshal_uniforms_layout():
    data = marshal_uniforms(Rect(0, 0, 100, 50), (3, 4), 1.5, Viewport((100, 50)))
    assert data.nbytes == 96
    assert data.dtype.names == (
        "transform",
        "position",
        "scale",
        "mouse",
        "time",
        "_padding",
    )
    raw = np.frombuffer(data.tobytes(), np.float32)
    assert raw.shape == (24,)
    # The fields are tightly packed after the matrix
    assert list(raw[16:]) == [0, 0, 100, 50, 3, 4, 1.5, 0]


def test_marshal_uniforms_scale_factor():
    viewport = Viewport((200, 100), 2.0)
    data = marshal_uniforms(Rect(10, 20, 30, 40), (5, 6), 0.0, viewport)
    assert tuple(data["position"]) == (20, 40)
    assert tuple(data["scale"]) == (60, 80)
    # The mouse is passed on as-is
    assert tuple(data["mouse"]) == (5, 6)


def test_marshal_uniforms_time():
    viewport = Viewport((10, 10))
    data = marshal_uniforms((0, 0, 10, 10), (0, 0), 2.25, viewport)
    assert data["time"] == np.float32(2.25)

    elapsed = datetime.timedelta(minutes=1, milliseconds=500)
    data = marshal_uniforms((0, 0, 10, 10), (0, 0), elapsed, viewport)
    assert data["time"] == np.float32(60.5)


def test_marshal_uniforms_transform():
    viewport = Viewport((200, 100))
    data = marshal_uniforms(Rect(0, 0, 200, 100), (0, 0), 0.0, viewport)
    # Stored transposed; WGSL matrices are column-major
    matrix = data["transform"].T
    corners = {
        (0, 0): (-1, 1),
        (200, 0): (1, 1),
        (0, 100): (-1, -1),
        (200, 100): (1, -1),
    }
    for (x, y), expected in corners.items():
        clip = matrix @ np.array([x, y, 0, 1], np.float32)
        assert np.allclose(clip[:2] / clip[3], expected), (x, y)
        assert 0 <= clip[2] / clip[3] <= 1


def test_marshal_uniforms_is_pure():
    viewport = Viewport((64, 32), 1.5)
    a = marshal_uniforms(Rect(1, 2, 3, 4), (5, 6), 7.0, viewport)
    b = marshal_uniforms(Rect(1, 2, 3, 4), (5, 6), 7.0, viewport)
    assert a.tobytes() == b.tobytes()
