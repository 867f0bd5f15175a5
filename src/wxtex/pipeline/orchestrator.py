"""Dataset lifecycle and frame orchestration.

Owns the open store, the time index, the texture caches, the wind worker
and the current selection (instant, layers, wind flag). Everything the
frame resolver needs is held in one PipelineState; nothing is global.
"""

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Optional

from wxtex.contracts import require
from wxtex.data.field_store import FieldStore, XarrayFieldStore
from wxtex.data.layers import Layer, store_variables
from wxtex.data.time_index import Instant, TimeIndex, hourly_datetimes
from wxtex.pipeline.frame_resolver import LayerFrame, PipelineState, preload, resolve_frame
from wxtex.pipeline.texture_cache import TextureCache
from wxtex.pipeline.wind_worker import WindWorkerClient
from wxtex.schemas import InternalConfig

__all__ = ['FrameOrchestrator']

logger = logging.getLogger(__name__)


class FrameOrchestrator:
    """Opens a dataset and serves cross-fade frames for it.

    **Lifecycle:**

    1. ``start()`` configures logging, starts the wind worker and loads the
       dataset (time axis, grid, variable descriptors).
    2. ``select_date()`` scopes the timeline to a date range and moves the
       current instant to its first timestep.
    3. ``resolve_frame()`` / ``update()`` return the textures to draw.
    4. ``reload()`` reopens the store and clears every layer cache.
    5. ``stop()`` stops the worker and closes the store.

    Parameters
    ----------
    config : InternalConfig
        Fully validated runtime configuration.
    store : FieldStore, optional
        Pre-opened store. When None, ``config.store.url`` is opened with
        xarray on start and on every reload.

    Examples
    --------
    ::

        config = resolve_config(ParamConfig(), UserConfig(LAYERS=["rain"]))
        with FrameOrchestrator(config) as orch:
            timeline = orch.select_date("2025-11-05")
            frames = asyncio.run(orch.resolve_frame(timeline[3]))
    """

    def __init__(self, config: InternalConfig, store: Optional[FieldStore] = None):
        self.config = config
        self._store_override = store

        self.caches = TextureCache()
        self.wind_worker = WindWorkerClient(config)
        self.state: Optional[PipelineState] = None

        self.active_layers = [Layer(name) for name in config.selection.layers]
        self.wind_enabled = config.selection.wind_enabled
        self.range_days = config.selection.range_days
        self.current_instant: Optional[str] = None
        self.scoped_timesteps: list[str] = []

        self._stop_event = False

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def _setup_logging(self):
        """Configure root logging from config (console + optional file)."""
        log_level = getattr(logging, self.config.logging.level, logging.INFO)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        if self.config.logging.file:
            log_path = Path(self.config.logging.file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(log_path)
            fh.setLevel(log_level)
            fh.setFormatter(formatter)
            root.addHandler(fh)

        logger.info("Logging: level=%s, file=%s",
                    logging.getLevelName(log_level), self.config.logging.file or "disabled")

    def _open_store(self) -> FieldStore:
        if self._store_override is not None:
            return self._store_override
        return XarrayFieldStore.open(self.config.store.url, self.config.store.consolidated)

    def _load_state(self, store: FieldStore) -> PipelineState:
        """Read coordinates and descriptors and build a fresh PipelineState."""
        coords = self.config.coords
        ticks, _ = store.read_coordinate(coords.time)
        time_index = TimeIndex.from_ticks(ticks)
        _, (num_lats,) = store.read_coordinate(coords.lat)
        _, (num_lons,) = store.read_coordinate(coords.lon)

        descriptors = {name: store.describe(name) for name in store.variable_names()}
        for layer in Layer:
            for name in store_variables(layer, self.config):
                descriptor = descriptors.get(name)
                if descriptor is None:
                    logger.warning("Store has no '%s'; %s layer unavailable", name, layer.value)
                    continue
                require(
                    descriptor.grid_shape == (num_lats, num_lons),
                    f"Grid contract violated: '{name}' grid {descriptor.grid_shape} "
                    f"!= coordinates ({num_lats}, {num_lons})"
                )

        if time_index.is_empty:
            logger.warning("Dataset has an empty time axis")
        else:
            logger.info("Dataset: %d timesteps %s .. %s, grid %dx%d",
                        len(time_index), time_index.timestamps[0],
                        time_index.timestamps[-1], num_lats, num_lons)

        return PipelineState(
            config=self.config,
            store=store,
            time_index=time_index,
            wind_worker=self.wind_worker,
            caches=self.caches,
            descriptors=descriptors,
        )

    def start(self) -> "FrameOrchestrator":
        """Configure logging, start the wind worker and load the dataset.

        Raises
        ------
        FieldStoreError
            If the store cannot be opened or read.
        ContractViolation
            If the time axis is not strictly increasing or a layer's grid
            disagrees with the coordinates.
        """
        self._setup_logging()
        logger.info("Starting frame orchestrator")

        self._stop_event = False
        self.wind_worker.start()
        self.state = self._load_state(self._open_store())
        return self

    async def reload(self):
        """Reopen the store and rebuild state. All layer caches are cleared.

        The current state stays in place if the new store cannot be opened
        or loaded.
        """
        old_store = self.state.store if self.state else None

        store = await asyncio.to_thread(self._open_store)
        try:
            state = await asyncio.to_thread(self._load_state, store)
        except Exception:
            if store is not self._store_override:
                store.close()
            raise

        self.caches.clear()
        self.state = state
        if old_store is not None and old_store is not store and old_store is not self._store_override:
            old_store.close()
        self.current_instant = None
        self.scoped_timesteps = []
        logger.info("Dataset reloaded")

    def _require_state(self) -> PipelineState:
        require(self.state is not None, "Orchestrator contract violated: start() not called")
        return self.state

    @property
    def time_index(self) -> TimeIndex:
        return self._require_state().time_index

    @property
    def available_dates(self) -> list[str]:
        return self.time_index.unique_dates()

    def select_date(self, date: Optional[Instant] = None) -> list[str]:
        """Scope the timeline to ``range_days`` days starting at ``date``.

        Defaults to the first available date. Moves the current instant to
        the first scoped timestep.

        Returns
        -------
        list of str
            Hourly instants from the first to the last scoped timestep;
            empty if the date has no data (current instant unchanged).
        """
        if date is None:
            dates = self.available_dates
            if not dates:
                return []
            date = dates[0]

        scoped = self.time_index.timesteps_for_date(date, self.range_days)
        if not scoped:
            logger.info("No timesteps for %s (+%d days)", date, self.range_days)
            return []

        self.scoped_timesteps = scoped
        self.current_instant = scoped[0]
        timeline = hourly_datetimes(scoped[0], scoped[-1])
        logger.info("Selected %s: %d timesteps, %d hourly instants",
                    date, len(scoped), len(timeline))
        return timeline

    def select_layers(self, layers: Iterable, wind_enabled: Optional[bool] = None):
        """Replace the active scalar layers (and optionally the wind flag)."""
        selected = [Layer(layer) for layer in layers]
        self.active_layers = [layer for layer in selected if not layer.is_vector]
        if wind_enabled is not None:
            self.wind_enabled = wind_enabled
        elif Layer.WIND in selected:
            self.wind_enabled = True

    async def resolve_frame(self, instant: Optional[Instant] = None,
                            layers: Optional[Iterable] = None,
                            wind_enabled: Optional[bool] = None) -> list[LayerFrame]:
        """Resolve one frame; arguments default to the current selection.

        Passing ``instant`` also makes it the current instant.
        """
        state = self._require_state()
        if instant is not None:
            self.current_instant = instant
        if self.current_instant is None:
            return []
        return await resolve_frame(
            state,
            self.current_instant,
            self.active_layers if layers is None else layers,
            self.wind_enabled if wind_enabled is None else wind_enabled,
        )

    async def update(self) -> list[LayerFrame]:
        """Resolve the frame for the current instant and selection."""
        return await self.resolve_frame()

    async def preload(self, instants: Iterable[Instant]) -> int:
        """Warm caches for the current selection at ``instants``."""
        return await preload(self._require_state(), instants,
                             self.active_layers, self.wind_enabled)

    def stop(self):
        """Stop the worker and close the store. Safe to call multiple times."""
        if self._stop_event:
            return
        self._stop_event = True
        logger.info("Stopping frame orchestrator...")

        self.wind_worker.stop()
        if self.state is not None:
            logger.info("Cache statistics: %s", self.caches.stats())
            if self.state.store is not self._store_override:
                self.state.store.close()
        logger.info("Frame orchestrator stopped")
