import pytest
from pydantic import ValidationError

from phiaccrual.core.config import DetectorConfig
from phiaccrual.core.detector import PhiFailureDetector
from phiaccrual.core.exception import InvalidConfiguration, PhiAccrualError


@pytest.mark.ut
def test_defaults():
    config = DetectorConfig()
    assert config.min_stddev == 1.0
    assert config.history_size == 10


@pytest.mark.ut
@pytest.mark.parametrize("options", [
    {"min_stddev": 0.0},
    {"min_stddev": -1.0},
    {"min_stddev": float("nan")},
    {"history_size": 0},
    {"history_size": -3},
])
def test_out_of_range_options_are_rejected(options):
    with pytest.raises(InvalidConfiguration) as info:
        DetectorConfig(**options)
    assert isinstance(info.value.__cause__, ValidationError)
    assert isinstance(info.value, PhiAccrualError)


@pytest.mark.ut
def test_unknown_option_is_rejected():
    with pytest.raises(InvalidConfiguration):
        DetectorConfig(window=5)


@pytest.mark.ut
def test_config_is_immutable():
    config = DetectorConfig(min_stddev=2.0, history_size=4)
    with pytest.raises(ValidationError):
        config.history_size = 8
    assert config.history_size == 4


@pytest.mark.ut
def test_detector_starts_empty():
    detector = PhiFailureDetector(DetectorConfig(min_stddev=0.5, history_size=3))
    assert detector.config.min_stddev == 0.5
    assert detector.intervals == ()
    assert detector.last_heartbeat is None


@pytest.mark.ut
def test_model_validate_rejects_out_of_range_options():
    with pytest.raises(InvalidConfiguration):
        DetectorConfig.model_validate({"min_stddev": 0.0})
    with pytest.raises(InvalidConfiguration):
        DetectorConfig.model_validate_json('{"history_size": 0}')

    config = DetectorConfig.model_validate({"min_stddev": 2.5, "history_size": 4})
    assert config == DetectorConfig(min_stddev=2.5, history_size=4)
