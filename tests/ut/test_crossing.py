import pytest

from phiaccrual.core.config import DetectorConfig
from phiaccrual.core.detector import PhiFailureDetector
from phiaccrual.core.exception import InvariantViolation, SearchDidNotConverge


def warmed_up(spacing: int = 1000, count: int = 10, **options) -> PhiFailureDetector:
    detector = PhiFailureDetector(DetectorConfig(**options))
    for n in range(count):
        detector.heartbeat(n * spacing)
    return detector


@pytest.mark.ut
def test_should_estimate_threshold_times():
    tolerance = 2
    threshold = 1.0
    detector = warmed_up(history_size=3)
    now = detector.last_heartbeat

    at = detector.next_crossing_at(now, tolerance, threshold)

    assert detector.phi(at - tolerance) < threshold <= detector.phi(at)


@pytest.mark.ut
@pytest.mark.parametrize("threshold", [0.5, 1.0, 2.0, 3.0, 6.0, 100.0])
@pytest.mark.parametrize("tolerance", [1, 2, 50, 1000])
def test_crossing_brackets_threshold(threshold, tolerance):
    detector = warmed_up(min_stddev=25.0)
    now = detector.last_heartbeat + 500

    at = detector.next_crossing_at(now, tolerance, threshold)

    assert at >= now
    assert detector.phi(at) >= threshold
    assert detector.phi(at - tolerance) < threshold


@pytest.mark.ut
def test_crossing_is_close_to_the_mean_for_regular_heartbeats():
    detector = warmed_up()
    at = detector.next_crossing_at(9000, 1, 1.0)
    # mean gap 1000, stddev floor 1: phi reaches 1 about 1.3 units after the mean
    assert 10001 <= at <= 10002


@pytest.mark.ut
def test_crossing_from_timestamp_zero():
    detector = PhiFailureDetector()
    detector.heartbeat(0)

    at = detector.next_crossing_at(0, 1, 1.0)

    assert at == 3
    assert detector.phi(2) < 1.0 <= detector.phi(3)


@pytest.mark.ut
def test_crossing_does_not_mutate_detector():
    detector = warmed_up()
    before = (detector.intervals, detector.last_heartbeat)
    detector.next_crossing_at(9000, 2, 3.0)
    assert (detector.intervals, detector.last_heartbeat) == before


@pytest.mark.ut
def test_threshold_already_reached_is_rejected():
    detector = warmed_up(spacing=1, count=10)
    with pytest.raises(InvariantViolation):
        detector.next_crossing_at(300, 2, 1.0)


@pytest.mark.ut
def test_nan_threshold_is_rejected():
    detector = warmed_up()
    with pytest.raises(InvariantViolation):
        detector.next_crossing_at(9000, 2, float("nan"))


@pytest.mark.ut
def test_negative_tolerance_is_rejected():
    detector = warmed_up()
    with pytest.raises(InvariantViolation):
        detector.next_crossing_at(9000, -1, 1.0)


@pytest.mark.ut
def test_unreachable_threshold_does_not_converge():
    detector = warmed_up()
    with pytest.raises(SearchDidNotConverge):
        detector.next_crossing_at(9000, 2, 400.0)


@pytest.mark.ut
def test_detector_without_heartbeat_never_crosses():
    detector = PhiFailureDetector()
    with pytest.raises(SearchDidNotConverge):
        detector.next_crossing_at(5, 1, 1.0)


@pytest.mark.ut
def test_zero_tolerance_cannot_be_met():
    detector = warmed_up()
    with pytest.raises(SearchDidNotConverge):
        detector.next_crossing_at(9000, 0, 1.0)


@pytest.mark.ut
@pytest.mark.parametrize("base", [1 << 63, (1 << 64) - 20_000])
def test_crossing_in_upper_half_of_timestamp_range(base):
    detector = PhiFailureDetector()
    for n in range(10):
        detector.heartbeat(base + n * 1000)
    now = base + 9000

    at = detector.next_crossing_at(now, 2, 1.0)

    assert 1001 <= at - now <= 1003
    assert detector.phi(at - 2) < 1.0 <= detector.phi(at)
