"""Pipeline modules.

- orchestrator: Dataset lifecycle and current selection
- frame_resolver: Instant -> per-layer texture pairs
- texture_cache: Per-layer texture memoization
- wind_worker: Wind encoding worker thread
"""

from wxtex.pipeline.orchestrator import FrameOrchestrator
from wxtex.pipeline.frame_resolver import PipelineState, LayerFrame, resolve_frame, preload
from wxtex.pipeline.texture_cache import TextureCache, LayerTextureCache
from wxtex.pipeline.wind_worker import WindWorkerClient, WorkerError, WorkerStoppedError

__all__ = [
    "FrameOrchestrator",
    "PipelineState",
    "LayerFrame",
    "resolve_frame",
    "preload",
    "TextureCache",
    "LayerTextureCache",
    "WindWorkerClient",
    "WorkerError",
    "WorkerStoppedError",
]
