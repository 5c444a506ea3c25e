"""
Per-frame uniform values for the shader, laid out as the prologue declares them.
"""

import datetime

import numpy as np

from ..shader.prologue import UNIFORM_TYPE
from ..utils import array_from_shadertype, Rect


def marshal_uniforms(bounds, mouse, elapsed, viewport):
    """Get the uniform data for one frame.

    Parameters
    ----------
    bounds : Rect
        The area of the surface to draw in, in logical pixels.
    mouse : tuple, [2]
        The last known pointer position, passed on as-is.
    elapsed : float | datetime.timedelta
        The time since the viewer started. Floats are in seconds.
    viewport : Viewport
        The physical size and scale factor of the render target.

    Returns a numpy structured scalar whose bytes can be written to the
    uniform buffer directly.
    """
    bounds = Rect(*bounds)
    if isinstance(elapsed, datetime.timedelta):
        elapsed = elapsed.total_seconds()
    scale_factor = viewport.scale_factor

    uniform_data = array_from_shadertype(UNIFORM_TYPE)
    uniform_data["transform"] = viewport.projection().T
    uniform_data["position"] = bounds.x * scale_factor, bounds.y * scale_factor
    uniform_data["scale"] = bounds.width * scale_factor, bounds.height * scale_factor
    uniform_data["mouse"] = tuple(mouse)
    uniform_data["time"] = np.float32(elapsed)
    uniform_data["_padding"] = 0
    return uniform_data
