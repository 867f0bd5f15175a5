"""Per-layer memoization of encoded textures.

Each layer owns an independent mapping ``time index -> RasterTexture``.
Entries are append-only: once a key is populated it is never overwritten,
so re-scrubbing previously visited timesteps is a dictionary lookup.
Concurrent misses on the same key share one in-flight computation. The
whole cache is cleared only when the dataset is reloaded; a computation
that finishes after a clear is returned to its caller but not stored.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from wxtex.data.layers import Layer
from wxtex.encoding.texture import RasterTexture

__all__ = ['LayerTextureCache', 'TextureCache']

logger = logging.getLogger(__name__)

ComputeFn = Callable[[], Awaitable[RasterTexture]]


class LayerTextureCache:
    """Textures of one layer keyed by integer time index."""

    def __init__(self, layer: Layer):
        self.layer = layer
        self._entries: Dict[int, RasterTexture] = {}
        self._inflight: Dict[int, asyncio.Future] = {}
        self._generation = 0
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, time_index: int) -> bool:
        return time_index in self._entries

    def get(self, time_index: int) -> Optional[RasterTexture]:
        return self._entries.get(time_index)

    async def get_or_compute(self, time_index: int, compute_fn: ComputeFn) -> RasterTexture:
        """Return the cached texture for ``time_index``, computing it on a miss.

        Parameters
        ----------
        time_index : int
            Cache key.
        compute_fn : callable
            Zero-argument coroutine function producing the texture. Called at
            most once per key while the entry exists or is in flight.

        Raises
        ------
        Exception
            Whatever ``compute_fn`` raises. Failures are not cached.
        """
        texture = self._entries.get(time_index)
        if texture is not None:
            self.hits += 1
            logger.debug("Cache hit: %s[%d]", self.layer.value, time_index)
            return texture

        task = self._inflight.get(time_index)
        if task is None:
            self.misses += 1
            logger.debug("Cache miss: %s[%d]", self.layer.value, time_index)
            task = asyncio.ensure_future(compute_fn())
            self._inflight[time_index] = task
            generation = self._generation
            task.add_done_callback(
                lambda t: self._settle(time_index, t, generation)
            )

        result = await asyncio.shield(task)
        return self._entries.get(time_index, result)

    def _settle(self, time_index: int, task: asyncio.Future, generation: int):
        if self._inflight.get(time_index) is task:
            del self._inflight[time_index]
        if task.cancelled() or task.exception() is not None:
            return
        if generation != self._generation:
            logger.debug("Discarding stale texture %s[%d]", self.layer.value, time_index)
            return
        self._entries.setdefault(time_index, task.result())

    def clear(self):
        self._entries.clear()
        self._inflight.clear()
        self._generation += 1


class TextureCache:
    """One LayerTextureCache per layer.

    Examples
    --------
    >>> caches = TextureCache()
    >>> texture = await caches.get_or_compute(Layer.WIND, 3, compute_wind)
    """

    def __init__(self):
        self._layers = {layer: LayerTextureCache(layer) for layer in Layer}

    def __getitem__(self, layer: Layer) -> LayerTextureCache:
        return self._layers[Layer(layer)]

    async def get_or_compute(self, layer: Layer, time_index: int,
                             compute_fn: ComputeFn) -> RasterTexture:
        return await self[layer].get_or_compute(time_index, compute_fn)

    def clear(self):
        """Drop every entry of every layer."""
        for cache in self._layers.values():
            cache.clear()
        logger.info("Texture caches cleared")

    def stats(self) -> dict:
        """Per-layer ``{"entries", "hits", "misses"}`` counters."""
        return {
            layer.value: {"entries": len(c), "hits": c.hits, "misses": c.misses}
            for layer, c in self._layers.items()
        }
