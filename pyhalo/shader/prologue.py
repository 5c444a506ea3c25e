"""
The fixed WGSL prologue that is prepended to every user shader.

The prologue declares the ``uniforms`` binding (and the vertex stage),
so user code can use ``uniforms.time``, ``uniforms.mouse`` etc. without
declaring them. The ``Uniforms`` struct is generated from the same
shadertype that the renderer uses to marshal the per-frame values, so
the two cannot drift apart.
"""

from functools import lru_cache

from ..utils import array_from_shadertype, generate_uniform_struct
from .templating import render_wgsl


# The uniform block. Order and size are a binary contract with the GPU.
UNIFORM_TYPE = dict(
    transform="4x4xf4",
    position="2xf4",
    scale="2xf4",
    mouse="2xf4",
    time="f4",
    _padding="f4",
)

N_VERTICES = 6  # Two triangles covering the surface


@lru_cache(maxsize=None)
def get_prologue():
    """Get the prologue wgsl."""
    dtype = array_from_shadertype(UNIFORM_TYPE).dtype
    uniform_struct = generate_uniform_struct(dtype, "Uniforms")
    code = render_wgsl(
        "pyhalo.prologue.wgsl", uniform_struct=uniform_struct, n_vertices=N_VERTICES
    )
    return code.rstrip()


def concatenate(text):
    """Get the full wgsl module for the given user text."""
    return get_prologue() + "\n" + text


def prologue_nbytes():
    """The number of bytes that precede the user text in the concatenated module."""
    return len(get_prologue().encode("utf-8")) + 1


def default_shader():
    """The fragment shader that a fresh session starts with."""
    return render_wgsl("pyhalo.default.wgsl")


def empty_shader():
    """The fragment shader template for a new shader."""
    return render_wgsl("pyhalo.empty.wgsl")
