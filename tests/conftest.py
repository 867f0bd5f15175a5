"""Root-level pytest fixtures for the wxtex test suite.

Provides pydantic config fixtures and an in-memory dataset shaped like
the remote prediction store. Tests never touch the network.
"""

import asyncio

import pytest

from wxtex.data.field_store import XarrayFieldStore
from wxtex.data.time_index import TimeIndex
from wxtex.pipeline.frame_resolver import PipelineState
from wxtex.pipeline.wind_worker import WindWorkerClient
from wxtex.schemas import ParamConfig, UserConfig, resolve_config

from helpers.fake_weather import make_fake_weather_ds


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides)."""
    return resolve_config(param_config, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for InternalConfig with UserConfig-compatible overrides.

    Examples
    --------
    >>> def test_rain_only(make_config):
    ...     config = make_config(LAYERS=["rain"])
    ...     assert config.selection.layers == ["rain"]
    """
    def _make(**user_overrides):
        if user_overrides:
            return resolve_config(param_config, UserConfig(**user_overrides))
        return resolve_config(param_config, None)

    return _make


# =============================================================================
# Dataset Fixtures
# =============================================================================

@pytest.fixture
def fake_ds():
    """Four 6-hourly timesteps on a 4x8 grid starting 2025-11-05T00:00Z."""
    return make_fake_weather_ds()


@pytest.fixture
def store(fake_ds):
    return XarrayFieldStore(fake_ds)


@pytest.fixture
def wind_worker(internal_config):
    """Running wind worker, stopped after the test."""
    client = WindWorkerClient(internal_config)
    client.start()
    yield client
    client.stop()


@pytest.fixture
def pipeline_state(internal_config, store, wind_worker):
    ticks, _ = store.read_coordinate("datetime")
    return PipelineState(
        config=internal_config,
        store=store,
        time_index=TimeIndex.from_ticks(ticks),
        wind_worker=wind_worker,
        descriptors={name: store.describe(name) for name in store.variable_names()},
    )


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run
