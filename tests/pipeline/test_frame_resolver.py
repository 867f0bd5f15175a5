"""Tests for frame resolution across layers."""

import pytest

from wxtex.data.field_store import GridSlice, XarrayFieldStore
from wxtex.data.layers import Layer
from wxtex.data.time_index import NOT_FOUND, TimeIndex
from wxtex.encoding.scalar import encode_scalar
from wxtex.encoding.vector import encode_wind
from wxtex.pipeline.frame_resolver import (
    LayerFrame,
    PipelineState,
    layer_texture,
    preload,
    resolve_frame,
)

from helpers.fake_weather import make_fake_weather_ds

pytestmark = pytest.mark.pipeline


def _state_for(dataset, config, worker):
    store = XarrayFieldStore(dataset)
    ticks, _ = store.read_coordinate("datetime")
    return PipelineState(
        config=config,
        store=store,
        time_index=TimeIndex.from_ticks(ticks),
        wind_worker=worker,
    )


class TestResolveFrame:

    def test_midpoint_between_timesteps(self, pipeline_state, fake_ds, run):
        frames = run(resolve_frame(pipeline_state, "2025-11-05T09:00:00Z",
                                   ["temperature"], wind_enabled=True))

        assert [f.layer for f in frames] == [Layer.TEMPERATURE, Layer.WIND]
        temperature, wind = frames
        assert temperature.weight == pytest.approx(0.5)
        assert wind.weight == pytest.approx(0.5)

        caches = pipeline_state.caches
        assert temperature.texture is caches[Layer.TEMPERATURE].get(1)
        assert temperature.texture2 is caches[Layer.TEMPERATURE].get(2)
        assert wind.texture is caches[Layer.WIND].get(1)
        assert wind.texture2 is caches[Layer.WIND].get(2)

        grid = GridSlice("2m_temperature", 1, fake_ds["2m_temperature"].values[1])
        expected = encode_scalar(grid)
        assert temperature.texture.tobytes() == expected.tobytes()

        u = fake_ds["10m_u_component_of_wind"].values[2]
        v = fake_ds["10m_v_component_of_wind"].values[2]
        assert wind.texture2.tobytes() == encode_wind(u, v, 4, 8).tobytes()

    def test_frame_unpacks_as_triple(self, pipeline_state, run):
        frames = run(resolve_frame(pipeline_state, "2025-11-05T07:30:00Z",
                                   ["rain"], wind_enabled=False))

        texture, texture2, weight = frames[0]
        assert isinstance(frames[0], LayerFrame)
        assert texture is not texture2
        assert weight == pytest.approx(0.25)

    def test_exact_timestep_uses_one_texture(self, pipeline_state, run):
        frames = run(resolve_frame(pipeline_state, "2025-11-05T06:00:00Z",
                                   ["pressure"], wind_enabled=False))

        texture, texture2, weight = frames[0]
        assert texture is texture2
        assert weight == 0.0

    def test_query_outside_data_clamps(self, pipeline_state, run):
        before = run(resolve_frame(pipeline_state, "2025-11-04T12:00:00Z",
                                   ["temperature"], wind_enabled=False))
        after = run(resolve_frame(pipeline_state, "2025-11-06T12:00:00Z",
                                  ["temperature"], wind_enabled=False))

        caches = pipeline_state.caches[Layer.TEMPERATURE]
        assert before[0].texture is caches.get(0)
        assert before[0].weight == 0.0
        assert after[0].texture2 is caches.get(3)
        assert after[0].weight == 0.0

    def test_wind_disabled(self, pipeline_state, run):
        frames = run(resolve_frame(pipeline_state, "2025-11-05T09:00:00Z",
                                   ["temperature", "rain"], wind_enabled=False))

        assert [f.layer for f in frames] == [Layer.TEMPERATURE, Layer.RAIN]
        assert len(pipeline_state.caches[Layer.WIND]) == 0

    def test_repeated_resolution_hits_cache(self, pipeline_state, run):
        first = run(resolve_frame(pipeline_state, "2025-11-05T09:00:00Z",
                                  ["temperature"], wind_enabled=True))
        second = run(resolve_frame(pipeline_state, "2025-11-05T10:00:00Z",
                                   ["temperature"], wind_enabled=True))

        for a, b in zip(first, second):
            assert a.texture is b.texture
            assert a.texture2 is b.texture2
        assert pipeline_state.caches.stats()["wind"]["misses"] == 2

    def test_missing_variable_drops_layer(self, internal_config, wind_worker, run):
        ds = make_fake_weather_ds(drop=("total_precipitation_6hr",))
        state = _state_for(ds, internal_config, wind_worker)

        frames = run(resolve_frame(state, "2025-11-05T09:00:00Z",
                                   ["temperature", "rain"], wind_enabled=True))

        assert [f.layer for f in frames] == [Layer.TEMPERATURE, Layer.WIND]

    def test_missing_wind_component_drops_wind(self, internal_config, wind_worker, run):
        ds = make_fake_weather_ds(drop=("10m_v_component_of_wind",))
        state = _state_for(ds, internal_config, wind_worker)

        frames = run(resolve_frame(state, "2025-11-05T09:00:00Z",
                                   ["temperature"], wind_enabled=True))

        assert [f.layer for f in frames] == [Layer.TEMPERATURE]

    def test_read_failure_drops_only_that_layer(self, pipeline_state, monkeypatch, run):
        store = pipeline_state.store
        original = store._read_slice

        def failing(name, time_index):
            if name == "total_precipitation_6hr":
                raise OSError("connection reset")
            return original(name, time_index)

        monkeypatch.setattr(store, "_read_slice", failing)

        frames = run(resolve_frame(pipeline_state, "2025-11-05T09:00:00Z",
                                   ["rain", "pressure"], wind_enabled=False))

        assert [f.layer for f in frames] == [Layer.PRESSURE]
        assert len(pipeline_state.caches[Layer.RAIN]) == 0

    def test_wind_worker_down_drops_wind(self, pipeline_state, run):
        pipeline_state.wind_worker.stop()

        frames = run(resolve_frame(pipeline_state, "2025-11-05T09:00:00Z",
                                   ["temperature"], wind_enabled=True))

        assert [f.layer for f in frames] == [Layer.TEMPERATURE]

    def test_empty_time_axis_gives_empty_frame(self, pipeline_state, run):
        pipeline_state.time_index = TimeIndex([])

        frames = run(resolve_frame(pipeline_state, "2025-11-05T09:00:00Z",
                                   ["temperature"], wind_enabled=True))

        assert frames == []

    def test_duplicate_layers_are_resolved_once(self, pipeline_state, run):
        frames = run(resolve_frame(pipeline_state, "2025-11-05T09:00:00Z",
                                   ["rain", "rain", Layer.RAIN], wind_enabled=False))

        assert len(frames) == 1


class TestLayerTexture:

    def test_not_found_skips_store(self, pipeline_state, monkeypatch, run):
        def boom(*args, **kwargs):
            raise AssertionError("store must not be read")

        monkeypatch.setattr(pipeline_state.store, "fetch_slice", boom)

        assert run(layer_texture(pipeline_state, Layer.TEMPERATURE, NOT_FOUND)) is None
        assert run(layer_texture(pipeline_state, Layer.WIND, -3)) is None

    def test_accepts_layer_name(self, pipeline_state, run):
        texture = run(layer_texture(pipeline_state, "pressure", 0))

        assert (texture.width, texture.height) == (8, 4)
        assert pipeline_state.caches[Layer.PRESSURE].get(0) is texture


class TestPreload:

    def test_warms_stored_timesteps_only(self, pipeline_state, run):
        instants = [
            "2025-11-05T00:00:00Z",
            "2025-11-05T03:00:00Z",
            "2025-11-05T06:00:00.000Z",
            "2025-11-05T00:00:00Z",
        ]

        warmed = run(preload(pipeline_state, instants, ["temperature"], wind_enabled=True))

        assert warmed == 4
        assert 0 in pipeline_state.caches[Layer.TEMPERATURE]
        assert 1 in pipeline_state.caches[Layer.WIND]
        assert len(pipeline_state.caches[Layer.TEMPERATURE]) == 2

    def test_failed_layers_are_not_counted(self, internal_config, wind_worker, run):
        ds = make_fake_weather_ds(drop=("2m_temperature",))
        state = _state_for(ds, internal_config, wind_worker)

        warmed = run(preload(state, ["2025-11-05T00:00:00Z"], ["temperature", "rain"],
                             wind_enabled=False))

        assert warmed == 1
