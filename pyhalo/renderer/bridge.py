"""
The per-frame glue between the published shader and a render target.
"""

from .uniforms import marshal_uniforms
from ..shader.prologue import N_VERTICES
from ..utils import Rect


class RenderBridge:
    """Draws the currently published shader on one surface.

    Each frame, ``prepare()`` reads the published (version, artifact) pair
    once, makes sure the pipeline cache is up to date, and uploads the
    uniforms. Then ``render()`` records the draw. The pair and the pipeline
    are not changed in between.

    Parameters
    ----------
    slot : ShaderSlot
        The slot to read the published shader from.
    cache : PipelineCache
        The cache that holds the compiled pipelines.
    surface_key : hashable
        Identifies the surface in the cache.
    """

    def __init__(self, slot, cache, surface_key):
        self._slot = slot
        self._cache = cache
        self._surface_key = surface_key
        self._compiled = None

    @property
    def surface_key(self):
        return self._surface_key

    @property
    def compiled(self):
        """The ``CompiledPipeline`` used in the current frame, or None."""
        return self._compiled

    def prepare(self, queue, bounds, mouse, elapsed, viewport):
        """Prepare a frame. Returns the ``CompiledPipeline`` to draw with, or None."""
        published = self._slot.current
        compiled = self._cache.ensure_fresh(
            self._surface_key, published.version, published.artifact
        )
        self._compiled = compiled
        if compiled is None:
            return None
        uniform_data = marshal_uniforms(bounds, mouse, elapsed, viewport)
        queue.write_buffer(compiled.uniform_buffer, 0, uniform_data, 0)
        return compiled

    def render(self, encoder, target, clip_bounds):
        """Record the draw into the command encoder.

        The target is a texture view. The clip bounds are in physical pixels.
        """
        compiled = self._compiled
        if compiled is None:
            return
        x, y, w, h = (int(round(v)) for v in Rect(*clip_bounds))
        # The scissor rect must lie within the target
        tw, th = target.texture.size[:2]
        x, y = max(0, min(x, tw)), max(0, min(y, th))
        w, h = min(w, tw - x), min(h, th - y)
        if w <= 0 or h <= 0:
            return

        render_pass = encoder.begin_render_pass(
            color_attachments=[
                {
                    "view": target,
                    "resolve_target": None,
                    "clear_value": (0, 0, 0, 1),
                    "load_op": "clear",
                    "store_op": "store",
                }
            ],
        )
        render_pass.set_scissor_rect(x, y, w, h)
        render_pass.set_pipeline(compiled.pipeline)
        render_pass.set_bind_group(0, compiled.bind_group)
        render_pass.draw(N_VERTICES, 1, 0, 0)
        render_pass.end()
