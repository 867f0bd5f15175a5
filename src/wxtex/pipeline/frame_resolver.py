"""Frame resolution: query instant -> (texture, texture2, weight) per layer.

All long-lived state (store, time index, caches, worker) travels in an
explicit PipelineState, so independent states can be resolved side by
side. A layer whose bracketing timesteps cannot be resolved, or whose
data cannot be fetched or encoded, is omitted from the frame; the other
layers are still returned. Both textures of a layer are complete before
the frame is returned.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional, TYPE_CHECKING

from wxtex.data.field_store import FieldStore, FieldStoreError, VariableDescriptor
from wxtex.data.layers import Layer, store_variables
from wxtex.data.time_index import (
    EmptyTimeIndexError,
    FrameSpec,
    Instant,
    NOT_FOUND,
    TimeIndex,
)
from wxtex.encoding.scalar import encode_scalar
from wxtex.encoding.texture import RasterTexture
from wxtex.pipeline.texture_cache import TextureCache
from wxtex.pipeline.wind_worker import WindWorkerClient, WorkerError

if TYPE_CHECKING:
    from wxtex.schemas import InternalConfig

__all__ = ['PipelineState', 'LayerFrame', 'resolve_frame', 'layer_texture', 'preload']

logger = logging.getLogger(__name__)

RECOVERABLE_ERRORS = (FieldStoreError, WorkerError)


@dataclass
class PipelineState:
    """Everything frame resolution reads or populates for one open dataset."""
    config: "InternalConfig"
    store: FieldStore
    time_index: TimeIndex
    wind_worker: WindWorkerClient
    caches: TextureCache = field(default_factory=TextureCache)
    descriptors: Dict[str, VariableDescriptor] = field(default_factory=dict)


@dataclass(frozen=True)
class LayerFrame:
    """Start/end textures of one layer and the cross-fade weight between them.

    Unpacks as ``texture, texture2, weight``.
    """
    layer: Layer
    texture: RasterTexture
    texture2: RasterTexture
    weight: float

    def __iter__(self) -> Iterator:
        return iter((self.texture, self.texture2, self.weight))


async def _compute_scalar(state: PipelineState, name: str, time_index: int) -> RasterTexture:
    grid = await state.store.fetch_slice(name, time_index)
    return encode_scalar(grid, state.config.encoding.degenerate_epsilon)


async def _compute_wind(state: PipelineState, u_name: str, v_name: str,
                        time_index: int) -> RasterTexture:
    u, v = await asyncio.gather(
        state.store.fetch_slice(u_name, time_index),
        state.store.fetch_slice(v_name, time_index),
    )
    return await state.wind_worker.encode(
        u.values, v.values, u.lat_dim, u.lon_dim, correlation_key=time_index
    )


async def layer_texture(state: PipelineState, layer: Layer,
                        time_index: int) -> Optional[RasterTexture]:
    """Cached texture of ``layer`` at ``time_index``.

    Returns None for ``NOT_FOUND`` (or any negative index) without touching
    the store.

    Raises
    ------
    FieldStoreError
        If the slice cannot be fetched.
    WorkerError
        If wind encoding fails.
    """
    if time_index == NOT_FOUND or time_index < 0:
        return None

    layer = Layer(layer)
    names = store_variables(layer, state.config)
    if layer.is_vector:
        def compute():
            return _compute_wind(state, names[0], names[1], time_index)
    else:
        def compute():
            return _compute_scalar(state, names[0], time_index)

    return await state.caches.get_or_compute(layer, time_index, compute)


async def _layer_frame(state: PipelineState, layer: Layer,
                       spec: FrameSpec) -> Optional[LayerFrame]:
    if not spec.resolved:
        logger.warning("Skipping %s: bracketing timesteps not found (%s)", layer.value, spec)
        return None

    results = await asyncio.gather(
        layer_texture(state, layer, spec.start_index),
        layer_texture(state, layer, spec.end_index),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, RECOVERABLE_ERRORS):
            logger.warning("Dropping %s layer for %s: %s", layer.value, spec, result)
            return None
        if isinstance(result, BaseException):
            raise result

    start, end = results
    if start is None or end is None:
        return None
    return LayerFrame(layer=layer, texture=start, texture2=end, weight=spec.weight)


def _requested_layers(layers: Iterable, wind_enabled: bool) -> list[Layer]:
    requested = list(dict.fromkeys(Layer(layer) for layer in layers))
    if wind_enabled and Layer.WIND not in requested:
        requested.append(Layer.WIND)
    return requested


async def resolve_frame(state: PipelineState, query_instant: Instant,
                        layers: Iterable, wind_enabled: bool) -> list[LayerFrame]:
    """Resolve the textures needed to draw ``query_instant``.

    Parameters
    ----------
    state : PipelineState
        Open dataset state. Its caches are populated as a side effect.
    query_instant : str, datetime, pd.Timestamp or np.datetime64
        Instant to draw; need not be a stored timestep.
    layers : iterable of Layer or str
        Active scalar layers.
    wind_enabled : bool
        Whether to add the wind layer.

    Returns
    -------
    list of LayerFrame
        One entry per layer that could be produced, in request order (wind
        last). Empty when the dataset has no timesteps.

    Examples
    --------
    >>> frames = await resolve_frame(state, "2025-11-05T03:00:00Z", ["temperature"], True)
    >>> for texture, texture2, weight in frames:
    ...     renderer.cross_fade(texture, texture2, weight)
    """
    try:
        spec = state.time_index.frame_spec(query_instant)
    except EmptyTimeIndexError:
        logger.warning("No timesteps available; empty frame for %s", query_instant)
        return []

    requested = _requested_layers(layers, wind_enabled)
    frames = await asyncio.gather(*(_layer_frame(state, layer, spec) for layer in requested))
    produced = [frame for frame in frames if frame is not None]

    logger.debug("Frame %s: %d/%d layers (start=%d end=%d weight=%.3f)",
                 query_instant, len(produced), len(requested),
                 spec.start_index, spec.end_index, spec.weight)
    return produced


async def preload(state: PipelineState, instants: Iterable[Instant],
                  layers: Iterable, wind_enabled: bool) -> int:
    """Warm the caches for the stored timesteps among ``instants``.

    Instants that are not stored timesteps are skipped, as are layers that
    fail to load.

    Returns
    -------
    int
        Number of (layer, timestep) textures now available.
    """
    requested = _requested_layers(layers, wind_enabled)
    indices = (state.time_index.index_of(instant) for instant in instants)
    steps = list(dict.fromkeys(i for i in indices if i != NOT_FOUND))
    jobs = [(layer, index) for index in steps for layer in requested]

    results = await asyncio.gather(
        *(layer_texture(state, layer, index) for layer, index in jobs),
        return_exceptions=True,
    )

    warmed = 0
    for (layer, index), result in zip(jobs, results):
        if isinstance(result, RECOVERABLE_ERRORS):
            logger.warning("Preload of %s[%d] failed: %s", layer.value, index, result)
        elif isinstance(result, BaseException):
            raise result
        elif result is not None:
            warmed += 1
    logger.debug("Preloaded %d textures for %d timesteps", warmed, len(steps))
    return warmed
