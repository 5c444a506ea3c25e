"""
This module implements the PipelineCache, which holds one compiled render
pipeline per surface, tagged with the version of the shader it was built from.
"""

import os
import sys
from collections import namedtuple

import wgpu

from ..errors import BackendCompileError
from ..shader.prologue import UNIFORM_TYPE, concatenate
from ..utils import array_from_shadertype, logger


PRINT_WGSL_ON_ERROR = os.environ.get(
    "PYHALO_PRINT_WGSL_ON_COMPILATION_ERROR", "0"
).lower() not in ["false", "0"]

UNIFORM_NBYTES = array_from_shadertype(UNIFORM_TYPE).nbytes


CompiledPipeline = namedtuple(
    "CompiledPipeline", ["version", "pipeline", "bind_group", "uniform_buffer"]
)
CompiledPipeline.__doc__ = "The wgpu objects needed to draw a shader, and its version."


def _print_wgsl(wgsl):
    # Helps users find their bugs, aligned for up to 5 digit line numbers
    wgsl_with_line_numbers = "\n".join(
        f"{i + 1:5d}: {line}" for i, line in enumerate(wgsl.splitlines())
    )
    print(wgsl_with_line_numbers, file=sys.stderr)


def build_pipeline(device, format, artifact):
    """Create the wgpu objects to draw the given artifact on a target of the given format.

    Returns a tuple ``(pipeline, bind_group, uniform_buffer)``. Raises
    ``BackendCompileError`` when wgpu rejects the shader.
    """
    wgsl = concatenate(artifact.source)

    try:
        shader_module = device.create_shader_module(code=wgsl)
    except wgpu.GPUError as err:
        if PRINT_WGSL_ON_ERROR:
            _print_wgsl(wgsl)
        raise BackendCompileError(str(err)) from err

    uniform_buffer = device.create_buffer(
        size=UNIFORM_NBYTES,
        usage=wgpu.BufferUsage.UNIFORM | wgpu.BufferUsage.COPY_DST,
    )

    bind_group_layout = device.create_bind_group_layout(
        entries=[
            {
                "binding": 0,
                "visibility": wgpu.ShaderStage.VERTEX | wgpu.ShaderStage.FRAGMENT,
                "buffer": {"type": wgpu.BufferBindingType.uniform},
            }
        ]
    )
    pipeline_layout = device.create_pipeline_layout(
        bind_group_layouts=[bind_group_layout]
    )
    bind_group = device.create_bind_group(
        layout=bind_group_layout,
        entries=[
            {
                "binding": 0,
                "resource": {
                    "buffer": uniform_buffer,
                    "offset": 0,
                    "size": UNIFORM_NBYTES,
                },
            }
        ],
    )

    try:
        pipeline = device.create_render_pipeline(
            layout=pipeline_layout,
            vertex={
                "module": shader_module,
                "entry_point": "vs_main",
                "buffers": [],
            },
            primitive={
                "topology": wgpu.PrimitiveTopology.triangle_list,
                "cull_mode": wgpu.CullMode.none,
            },
            fragment={
                "module": shader_module,
                "entry_point": artifact.entry_point,
                "targets": [{"format": format}],
            },
        )
    except wgpu.GPUError as err:
        if PRINT_WGSL_ON_ERROR:
            _print_wgsl(wgsl)
        raise BackendCompileError(str(err)) from err

    return pipeline, bind_group, uniform_buffer


class PipelineCache:
    """A store of compiled pipelines, one per surface key.

    A pipeline is rebuilt only when the requested version is newer than
    the cached one. When the backend rejects a shader, the previous
    pipeline stays in use and the error is passed to ``on_error``.

    Parameters
    ----------
    builder : callable
        Called as ``builder(artifact)``, returns ``(pipeline, bind_group,
        uniform_buffer)`` or raises ``BackendCompileError``.
    on_error : callable | None
        Called as ``on_error(key, version, error)`` when a build fails.
    """

    def __init__(self, builder, *, on_error=None):
        self._builder = builder
        self._on_error = on_error
        self._pipelines = {}
        self._failed = {}
        self._rebuild_count = 0

    def __len__(self):
        return len(self._pipelines)

    def __contains__(self, key):
        return key in self._pipelines

    @property
    def rebuild_count(self):
        """The number of times the builder was invoked."""
        return self._rebuild_count

    def get(self, key):
        """Get the ``CompiledPipeline`` for the given surface, or None."""
        return self._pipelines.get(key)

    def failed_version(self, key):
        """The last version that failed to build for this surface, or None."""
        return self._failed.get(key)

    def ensure_fresh(self, key, version, artifact):
        """Make sure the pipeline for the given surface is at least the given version.

        Returns the ``CompiledPipeline`` to draw with. This is the previous
        pipeline if the build failed, or None if there is nothing to draw.
        """
        cached = self._pipelines.get(key)
        if cached is not None and cached.version >= version:
            return cached
        if self._failed.get(key) == version:
            return cached

        self._rebuild_count += 1
        try:
            pipeline, bind_group, uniform_buffer = self._builder(artifact)
        except BackendCompileError as err:
            self._failed[key] = version
            logger.warning(
                f"Backend rejected shader version {version} for {key!r}: {err.message}"
            )
            if self._on_error is not None:
                self._on_error(key, version, err)
            return cached

        compiled = CompiledPipeline(version, pipeline, bind_group, uniform_buffer)
        self._pipelines[key] = compiled
        self._failed.pop(key, None)
        logger.info(f"Pipeline for {key!r} updated to shader version {version}.")
        return compiled

    def forget(self, key):
        """Drop the pipeline for the given surface."""
        self._pipelines.pop(key, None)
        self._failed.pop(key, None)
