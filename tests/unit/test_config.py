from pathlib import Path

import pytest

from dataflow.errors import ConfigError
from engine.config.loader import ConfigLoader, PipelineConfig


def test_defaults():
    config = ConfigLoader().load()

    assert config.input_path == "trades.csv"
    assert config.granularities == [5, 30, 240]
    assert config.session_start == "07:00:00.000000"
    assert config.session_hours == 20
    assert config.deadline_seconds == 5.0
    assert config.output_path(30) == Path(".") / "candles_30m.csv"


def test_yaml_values_and_overrides(tmp_path):
    path = tmp_path / "pipeline.yaml"
    path.write_text(
        "granularities: [1, 15]\n"
        "session_start: '09:30:00.000000'\n"
        "deadline_seconds: 2.5\n"
        "input_path: from_yaml.csv\n"
    )

    config = ConfigLoader(path).load(input_path="from_cli.csv", output_dir=None)

    assert config.granularities == [1, 15]
    assert config.session_start == "09:30:00.000000"
    assert config.deadline_seconds == 2.5
    assert config.input_path == "from_cli.csv"
    assert config.output_dir == "."


@pytest.mark.parametrize(
    "values",
    [
        {"granularities": []},
        {"granularities": [5, 5]},
        {"granularities": [0]},
        {"session_hours": 30},
        {"deadline_seconds": 0},
        {"session_start": "7am"},
        {"output_pattern": "candles.csv"},
    ],
)
def test_invalid_values_raise_config_error(values):
    with pytest.raises(ConfigError):
        ConfigLoader().load(**values)


def test_missing_or_malformed_file(tmp_path):
    with pytest.raises(ConfigError):
        ConfigLoader(tmp_path / "missing.yaml").load()

    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError):
        ConfigLoader(bad).load()


def test_output_pattern():
    config = PipelineConfig(output_dir="out", output_pattern="ohlc_{minutes}.csv")
    assert config.output_path(240) == Path("out") / "ohlc_240.csv"
