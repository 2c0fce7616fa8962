import pytest
from pydantic import ValidationError

from phiaccrual.demo.settings import ReceiverSettings


@pytest.mark.ut
def test_defaults_match_reference_receiver():
    settings = ReceiverSettings()
    assert settings.min_stddev == 1_000_000.0
    assert settings.tolerance == 1000
    assert settings.thresholds == (1.0, 2.0, 3.0, 6.0)
    assert settings.min_stable == 5
    assert settings.abandon_phi == 6.0


@pytest.mark.ut
def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PHI_RECEIVER_ABANDON_PHI", "8")
    monkeypatch.setenv("PHI_RECEIVER_HISTORY_SIZE", "32")
    settings = ReceiverSettings()
    assert settings.abandon_phi == 8.0
    assert settings.history_size == 32


@pytest.mark.ut
def test_detector_config_is_derived():
    config = ReceiverSettings(min_stddev=5.0, history_size=3).detector_config()
    assert config.min_stddev == 5.0
    assert config.history_size == 3


@pytest.mark.ut
@pytest.mark.parametrize("thresholds", [(), (2.0, 1.0), (1.0, 1.0), (0.0, 1.0), (1.0, 400.0), (400.0, 1.0)])
def test_invalid_thresholds(thresholds):
    with pytest.raises(ValidationError):
        ReceiverSettings(thresholds=thresholds)


@pytest.mark.ut
def test_thresholds_from_environment_must_stay_below_saturation(monkeypatch):
    monkeypatch.setenv("PHI_RECEIVER_THRESHOLDS", "[1, 400]")
    with pytest.raises(ValidationError):
        ReceiverSettings()

    monkeypatch.setenv("PHI_RECEIVER_THRESHOLDS", "[1, 300]")
    assert ReceiverSettings().thresholds == (1.0, 300.0)
