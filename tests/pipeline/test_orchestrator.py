import logging

import pytest

from wxtex.contracts import ContractViolation
from wxtex.data.field_store import FieldStoreError, XarrayFieldStore
from wxtex.data.layers import Layer
from wxtex.pipeline.orchestrator import FrameOrchestrator

from helpers.fake_weather import make_fake_weather_ds

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]


@pytest.fixture(autouse=True)
def restore_root_logging():
    """start() replaces root handlers; put the originals back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def orchestrator(internal_config, store):
    orch = FrameOrchestrator(internal_config, store=store)
    orch.start()
    yield orch
    orch.stop()


def test_orchestrator_initialization(internal_config):
    """Selection starts from config; nothing is opened before start()."""
    orch = FrameOrchestrator(internal_config)

    assert orch.state is None
    assert orch.active_layers == [Layer.TEMPERATURE]
    assert orch.wind_enabled is True
    assert orch.current_instant is None
    assert not orch.wind_worker.running


def test_start_loads_dataset(orchestrator):
    assert len(orchestrator.time_index) == 4
    assert orchestrator.available_dates == ["2025-11-05"]
    assert orchestrator.wind_worker.running
    assert "2m_temperature" in orchestrator.state.descriptors


def test_select_date_scopes_timeline(orchestrator):
    timeline = orchestrator.select_date()

    assert timeline[0] == "2025-11-05T00:00:00.000Z"
    assert timeline[-1] == "2025-11-05T18:00:00.000Z"
    assert len(timeline) == 19
    assert orchestrator.current_instant == "2025-11-05T00:00:00.000Z"
    assert len(orchestrator.scoped_timesteps) == 4


def test_select_date_without_data(orchestrator):
    orchestrator.select_date()

    assert orchestrator.select_date("2030-01-01") == []
    assert orchestrator.current_instant == "2025-11-05T00:00:00.000Z"


def test_resolve_frame_uses_current_selection(orchestrator, run):
    orchestrator.select_layers(["rain"], wind_enabled=False)

    frames = run(orchestrator.resolve_frame("2025-11-05T09:00:00Z"))

    assert [f.layer for f in frames] == [Layer.RAIN]
    assert frames[0].weight == pytest.approx(0.5)
    assert orchestrator.current_instant == "2025-11-05T09:00:00Z"

    again = run(orchestrator.update())
    assert again[0].texture is frames[0].texture


def test_resolve_frame_without_instant_is_empty(orchestrator, run):
    assert run(orchestrator.update()) == []


def test_select_layers_with_wind_name(orchestrator):
    orchestrator.select_layers(["pressure", "wind"])

    assert orchestrator.active_layers == [Layer.PRESSURE]
    assert orchestrator.wind_enabled is True


def test_preload_then_resolve(orchestrator, run):
    timeline = orchestrator.select_date()

    warmed = run(orchestrator.preload(timeline))

    # 4 stored timesteps x (temperature + wind)
    assert warmed == 8
    stats = orchestrator.caches.stats()
    run(orchestrator.resolve_frame(timeline[3]))
    assert orchestrator.caches.stats()["temperature"]["misses"] == stats["temperature"]["misses"]


def test_reload_clears_caches(orchestrator, store, run):
    orchestrator.select_date()
    run(orchestrator.update())
    assert len(orchestrator.caches[Layer.TEMPERATURE]) == 1

    run(orchestrator.reload())

    assert len(orchestrator.caches[Layer.TEMPERATURE]) == 0
    assert len(orchestrator.caches[Layer.WIND]) == 0
    assert orchestrator.state.store is store
    assert orchestrator.current_instant is None


def test_missing_layer_variable_is_tolerated(internal_config, run):
    ds = make_fake_weather_ds(drop=("mean_sea_level_pressure",))
    with FrameOrchestrator(internal_config, store=XarrayFieldStore(ds)) as orch:
        frames = run(orch.resolve_frame("2025-11-05T06:00:00Z", layers=["pressure", "rain"]))

    assert [f.layer for f in frames] == [Layer.RAIN, Layer.WIND]


def test_context_manager_stops_worker(internal_config, store):
    with FrameOrchestrator(internal_config, store=store) as orch:
        assert orch.wind_worker.running

    assert not orch.wind_worker.running


def test_orchestrator_stop_is_idempotent(internal_config, store):
    """Calling stop() multiple times is safe, before or after start()."""
    orch = FrameOrchestrator(internal_config, store=store)
    orch.stop()

    orch = FrameOrchestrator(internal_config, store=store)
    orch.start()
    orch.stop()
    orch.stop()

    assert orch._stop_event is True


def test_use_before_start_violates_contract(internal_config, run):
    orch = FrameOrchestrator(internal_config)

    with pytest.raises(ContractViolation):
        run(orch.resolve_frame("2025-11-05T00:00:00Z"))


def test_log_file_is_created(make_config, store, tmp_path):
    log_file = tmp_path / "logs" / "wxtex.log"
    config = make_config(LOG_FILE=str(log_file), LOG_LEVEL="debug")

    with FrameOrchestrator(config, store=store):
        pass

    assert log_file.exists()
    assert "Starting frame orchestrator" in log_file.read_text()


def test_opens_zarr_store_from_url(make_config, fake_ds, tmp_path, run):
    path = tmp_path / "predictions.zarr"
    fake_ds.to_zarr(str(path))
    config = make_config(STORE_URL=str(path), LAYERS=["temperature"], WIND_ENABLED=False)

    with FrameOrchestrator(config) as orch:
        frames = run(orch.resolve_frame("2025-11-05T12:00:00Z"))

    assert [f.layer for f in frames] == [Layer.TEMPERATURE]
    assert frames[0].texture.width == 8


def test_failed_reload_keeps_current_state(make_config, fake_ds, tmp_path, monkeypatch, run):
    path = tmp_path / "predictions.zarr"
    fake_ds.to_zarr(str(path))
    config = make_config(STORE_URL=str(path), WIND_ENABLED=False)

    with FrameOrchestrator(config) as orch:
        run(orch.resolve_frame("2025-11-05T06:00:00Z"))
        old_state = orch.state
        closed = []
        monkeypatch.setattr(old_state.store, "close", lambda: closed.append(True))

        open_store = orch._open_store
        attempts = []

        def flaky_open():
            attempts.append(True)
            if len(attempts) == 1:
                raise FieldStoreError("store unreachable")
            return open_store()

        monkeypatch.setattr(orch, "_open_store", flaky_open)

        with pytest.raises(FieldStoreError, match="unreachable"):
            run(orch.reload())

        assert orch.state is old_state
        assert closed == []
        assert len(orch.caches[Layer.TEMPERATURE]) == 1

        run(orch.reload())

        assert orch.state is not old_state
        assert closed == [True]
        assert len(orch.caches[Layer.TEMPERATURE]) == 0
