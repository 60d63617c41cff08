import numpy as np
import pytest

from plasmafurnace.controller.workers import SimulationRun
from plasmafurnace.model.io import IOManager


@pytest.fixture
def result(small_config):
    config = small_config.copy()
    config.solver.time_step = 2.0
    return SimulationRun(config).run()


class TestHDF5:
    def test_round_trip(self, result, tmp_path):
        path = str(tmp_path / "result.h5")
        IOManager.save_result(result, path)
        loaded = IOManager.load_result(path)

        assert loaded.config == result.config
        assert loaded.termination == result.termination
        assert loaded.steps_executed == result.steps_executed
        assert loaded.time_step == pytest.approx(result.time_step)
        assert loaded.energy == result.energy
        np.testing.assert_array_equal(loaded.times, result.times)
        np.testing.assert_array_equal(loaded.temperatures, result.temperatures)
        np.testing.assert_array_equal(loaded.melt_fractions, result.melt_fractions)

    def test_loaded_arrays_are_read_only(self, result, tmp_path):
        path = str(tmp_path / "result.h5")
        IOManager.save_result(result, path)
        loaded = IOManager.load_result(path)
        assert not loaded.temperatures.flags.writeable
        assert loaded.statistics().maximum == pytest.approx(result.statistics().maximum)
