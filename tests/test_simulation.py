import threading

import numpy as np
import pytest

from plasmafurnace.controller.fea.analysis.results import TerminationReason
from plasmafurnace.controller.fea.pre.torch import Torch
from plasmafurnace.controller.workers import SimulationRun, SimulationWorker, prepare_simulation
from plasmafurnace.errors import ConfigurationError, NumericalInstability
from plasmafurnace.model.state import (
    GeometryConfig,
    MeshConfig,
    PhysicsConfig,
    ProgressTracker,
    SimulationConfig,
    SimulationStatus,
    SolverConfig,
)


def furnace_config(height, radius, nr, nz, total_time, **solver):
    return SimulationConfig(
        name=f"furnace {height}x{radius}",
        geometry=GeometryConfig(height=height, radius=radius),
        mesh=MeshConfig(nr=nr, nz=nz),
        torches=[Torch(id="T1", r=0.0, z=height / 2, power_kw=100.0, efficiency=0.8, sigma=0.1)],
        solver=SolverConfig(total_time=total_time, **solver),
    )


class TestReferenceScenario:
    @pytest.fixture(scope="class")
    def result(self):
        config = SimulationConfig(
            name="steel charge",
            geometry=GeometryConfig(height=2.0, radius=1.0),
            mesh=MeshConfig(nr=40, nz=80),
            torches=[Torch(id="T1", r=0.0, z=1.0, power_kw=150.0, efficiency=0.8, sigma=0.1)],
            material="Carbon Steel",
            physics=PhysicsConfig(initial_temperature=300.0),
            solver=SolverConfig(total_time=60.0, safety_factor=0.1),
        )
        return SimulationRun(config).run()

    def test_completes(self, result):
        assert result.termination == TerminationReason.COMPLETED
        assert result.final_time == pytest.approx(60.0)
        assert result.steps_executed == 80
        assert result.n_frames == 81
        assert result.times[0] == 0.0

    def test_time_step(self, result):
        assert result.stable_time_step == pytest.approx(7.55, rel=0.01)
        assert result.time_step == pytest.approx(0.1 * result.stable_time_step)

    def test_temperatures(self, result):
        assert np.all(np.isfinite(result.temperatures))
        assert 350.0 < result.max_temperature[-1] < 450.0
        assert np.all(np.diff(result.max_temperature) >= 0.0)
        assert result.min_temperature[-1] == pytest.approx(300.0, abs=1e-6)
        assert np.all(result.melt_fractions == 0.0)
        hottest = np.unravel_index(np.argmax(result.final_temperature), result.final_temperature.shape)
        assert hottest[0] == 0

    def test_energy_balance(self, result):
        assert result.energy.energy_input == pytest.approx(120000.0 * 60.0, rel=1e-9)
        assert result.energy.conservation_error < 1e-6

    def test_history_is_read_only(self, result):
        with pytest.raises(ValueError):
            result.temperatures[0, 0, 0] = 0.0


class TestCancellation:
    def test_cancel_before_start(self, small_config):
        event = threading.Event()
        event.set()
        result = SimulationRun(small_config, cancel_event=event).run()
        assert result.termination == TerminationReason.CANCELLED
        assert result.steps_executed == 0
        assert result.n_frames == 1

    def test_callback_cancels(self, small_config):
        config = small_config.copy()
        config.solver.time_step = 1.0
        seen = []

        def callback(progress):
            seen.append(progress)
            return progress < 0.5

        result = SimulationRun(config).run(progress_callback=callback)
        assert result.was_cancelled
        assert result.steps_executed == 10
        assert result.final_time == pytest.approx(10.0)
        assert len(seen) == 10
        np.testing.assert_allclose(result.times, np.arange(11.0))

    def test_callback_returning_none_continues(self, small_config):
        result = SimulationRun(small_config).run(progress_callback=lambda progress: None)
        assert result.termination == TerminationReason.COMPLETED

    def test_partial_history_keeps_last_step(self, small_config):
        config = small_config.copy()
        config.solver.time_step = 1.0
        config.solver.history_interval = 3
        result = SimulationRun(config).run(progress_callback=lambda progress: progress < 0.2)
        np.testing.assert_allclose(result.times, [0.0, 3.0, 4.0])
        assert result.temperatures.shape[0] == 3


class TestHistory:
    def test_interval_always_records_last_step(self, small_config):
        config = small_config.copy()
        config.solver.time_step = 1.0
        config.solver.history_interval = 3
        result = SimulationRun(config).run()
        np.testing.assert_allclose(result.times, [0.0, 3.0, 6.0, 9.0, 12.0, 15.0, 18.0, 20.0])

    def test_last_step_is_clipped(self, small_config):
        config = small_config.copy()
        config.solver.time_step = 3.0
        result = SimulationRun(config).run()
        assert result.steps_executed == 7
        assert result.final_time == pytest.approx(20.0)

    def test_config_is_copied(self, small_config):
        run = SimulationRun(small_config)
        small_config.solver.total_time = 1000.0
        result = run.run()
        assert result.config.solver.total_time == 20.0


class TestScaleInvariance:
    def test_heated_radius_independent_of_furnace_size(self):
        small = SimulationRun(furnace_config(2.0, 1.0, 21, 41, total_time=30.0, time_step=1.0)).run()
        large = SimulationRun(furnace_config(4.0, 2.0, 41, 81, total_time=30.0, time_step=1.0)).run()

        profile_small = small.final_temperature[:, 20]
        profile_large = large.final_temperature[:21, 40]
        np.testing.assert_allclose(profile_small, profile_large, atol=1e-3)

        r = np.linspace(0.0, 1.0, 21)
        heated_small = r[profile_small - 300.0 > 1.0].max()
        heated_large = r[profile_large - 300.0 > 1.0].max()
        assert heated_small == pytest.approx(heated_large, rel=0.2)
        assert heated_small < 0.5


class TestFailures:
    def test_invalid_configuration(self, small_config):
        config = small_config.copy()
        config.geometry.height = -1.0
        config.solver.total_time = 0.0
        tracker = ProgressTracker()
        with pytest.raises(ConfigurationError) as excinfo:
            SimulationRun(config, tracker=tracker).run()
        params = {issue.parameter for issue in excinfo.value.issues}
        assert {"geometry.height", "solver.total_time"} <= params
        assert tracker.status == SimulationStatus.FAILED

    def test_instability_is_reported(self, small_config):
        config = small_config.copy()
        config.material = "Aluminum"
        config.solver.time_step = 9.0
        config.solver.total_time = 9000.0
        tracker = ProgressTracker()
        with pytest.raises(NumericalInstability) as excinfo:
            SimulationRun(config, tracker=tracker).run()
        assert excinfo.value.step > 1
        snapshot = tracker.snapshot()
        assert snapshot.status == SimulationStatus.FAILED
        assert "Numerical instability" in snapshot.error

    def test_prepare_simulation_with_overrides(self, small_config):
        solver = prepare_simulation(small_config, property_overrides={"thermal_conductivity": lambda T: 20.0})
        assert solver.material.thermal_conductivity(800.0) == 20.0


class TestProgress:
    def test_tracker_after_run(self, small_config):
        tracker = ProgressTracker()
        result = SimulationRun(small_config, tracker=tracker).run()
        snapshot = tracker.snapshot()
        assert snapshot.status == SimulationStatus.COMPLETED
        assert snapshot.progress == 1.0
        assert snapshot.step == result.steps_executed
        assert snapshot.simulated_time == pytest.approx(20.0)
        assert snapshot.elapsed >= 0.0

    def test_idle_tracker(self):
        snapshot = ProgressTracker().snapshot()
        assert snapshot.status == SimulationStatus.IDLE
        assert snapshot.elapsed == 0.0


class TestWorker:
    def test_background_run(self, small_config):
        updates = []
        worker = SimulationWorker(SimulationRun(small_config), on_progress=lambda pct, msg: updates.append(pct))
        worker.start()
        worker.join(timeout=120)
        assert worker.error is None
        assert worker.result.termination == TerminationReason.COMPLETED
        assert updates[-1] == 100

    def test_stopped_worker(self, small_config):
        worker = SimulationWorker(SimulationRun(small_config))
        worker.stop()
        worker.start()
        worker.join(timeout=120)
        assert worker.result.was_cancelled

    def test_error_is_captured(self, small_config):
        config = small_config.copy()
        config.torches = [Torch(id="T1", r=0.0, z=0.5, power_kw=5000.0, efficiency=0.8, sigma=0.1)]
        worker = SimulationWorker(SimulationRun(config))
        worker.start()
        worker.join(timeout=120)
        assert isinstance(worker.error, ConfigurationError)
        assert worker.result is None

    def test_independent_runs_in_parallel(self, small_config):
        hot = small_config.copy()
        hot.name = "hot"
        hot.torches = [Torch(id="T1", r=0.0, z=0.5, power_kw=400.0, efficiency=0.8, sigma=0.1)]
        workers = [SimulationWorker(SimulationRun(c)) for c in (small_config, hot)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=120)
        cold_result, hot_result = (w.result for w in workers)
        assert hot_result.max_temperature[-1] > cold_result.max_temperature[-1]
        assert cold_result.config.name == "small"
