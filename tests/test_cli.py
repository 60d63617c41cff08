import json
import logging

import pytest

from plasmafurnace.logging_config import StepIntervalFilter
from plasmafurnace.main import main
from plasmafurnace.model.io import IOManager


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    # main() installs handlers bound to the captured stdout
    logging.getLogger("plasmafurnace").handlers.clear()


@pytest.fixture
def config_file(small_config, tmp_path):
    path = tmp_path / "furnace.json"
    small_config.save_json(str(path))
    return path


class TestMain:
    def test_run_and_save(self, config_file, tmp_path):
        output = tmp_path / "out.h5"
        assert main([str(config_file), "--output", str(output)]) == 0
        result = IOManager.load_result(str(output))
        assert result.final_time == pytest.approx(20.0)

    def test_log_file(self, config_file, tmp_path):
        log_file = tmp_path / "run.log"
        assert main([str(config_file), "--log-file", str(log_file), "--verbose"]) == 0
        assert "completed" in log_file.read_text(encoding="utf-8")

    def test_invalid_configuration(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"geometry": {"height": -2.0}, "torches": []}), encoding="utf-8")
        assert main([str(path)]) == 2

    def test_missing_file(self, tmp_path):
        assert main([str(tmp_path / "missing.json")]) == 2

    def test_wrongly_typed_configuration(self, small_config, tmp_path):
        data = small_config.to_dict()
        data["physics"]["initial_temperature"] = "300"
        data["torches"][0]["power_kw"] = "150"
        path = tmp_path / "typed.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        assert main([str(path)]) == 2

    def test_log_every(self, config_file, tmp_path):
        log_file = tmp_path / "run.log"
        args = [str(config_file), "--log-file", str(log_file), "--verbose", "--log-every", "2"]
        assert main(args) == 0
        text = log_file.read_text(encoding="utf-8")
        assert "Step: 2 -" in text and "Step: 4 -" in text
        assert "Step: 1 -" not in text and "Step: 3 -" not in text

    def test_log_every_must_be_positive(self, config_file):
        with pytest.raises(SystemExit):
            main([str(config_file), "--log-every", "0"])


class TestStepIntervalFilter:
    @staticmethod
    def make_record(step=None):
        record = logging.LogRecord("plasmafurnace", logging.DEBUG, __file__, 1, "message", None, None)
        if step is not None:
            record.step = step
        return record

    def test_thins_step_records(self):
        step_filter = StepIntervalFilter(3)
        passed = [step for step in range(1, 10) if step_filter.filter(self.make_record(step))]
        assert passed == [3, 6, 9]

    def test_other_records_pass(self):
        assert StepIntervalFilter(5).filter(self.make_record())

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            StepIntervalFilter(0)
