"""
The rendering side of pyhalo: compiles published shaders into wgpu
pipelines and draws them.

.. currentmodule:: pyhalo.renderer

.. autosummary::
    :toctree: renderer/

    PipelineCache
    CompiledPipeline
    RenderBridge
    build_pipeline
    marshal_uniforms
    get_shared
    select_adapter
    select_power_preference

"""

# ruff: noqa: F401

from .uniforms import marshal_uniforms
from .pipeline import CompiledPipeline, PipelineCache, build_pipeline
from .bridge import RenderBridge
from .shared import get_shared, select_adapter, select_power_preference

__all__ = [
    "marshal_uniforms",
    "CompiledPipeline",
    "PipelineCache",
    "build_pipeline",
    "RenderBridge",
    "get_shared",
    "select_adapter",
    "select_power_preference",
]
