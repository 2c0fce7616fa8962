import copy
import math
import sys
from dataclasses import dataclass
from typing import Callable

from phiaccrual.core.config import DetectorConfig
from phiaccrual.core.exception import InvariantViolation, SearchDidNotConverge
from phiaccrual.core.window import IntervalWindow

# p_later is clamped here so that log10 always gets a positive argument
MIN_P_LATER = sys.float_info.min
# highest phi can get, about 307.65
MAX_PHI = -math.log10(MIN_P_LATER)

MAX_TIMESTAMP = (1 << 64) - 1
MAX_BISECTIONS = 64


@dataclass(frozen=True)
class PhiSample:
    """Intermediate values of one phi evaluation, handed to the observer."""
    now: int
    gap: int
    mean: float
    stddev: float
    x: float
    p_later: float
    phi: float


Observer = Callable[[PhiSample], None]


def p_later(gap: float, mean: float, stddev: float) -> float:
    """
    Probability that the next heartbeat arrives later than `gap`.

    Logistic approximation of the complementary normal CDF:

        e = exp(-x * (1.5976 + 0.070566 * x²))    with x = (gap - mean) / stddev
        P_later = e / (1 + e)

    An overflowing exponential means P_later = 1.0, an underflowing one
    means P_later = 0.0.
    """
    x = (gap - mean) / stddev
    try:
        e = math.exp(-x * (1.5976 + 0.070566 * x * x))
    except OverflowError:
        return 1.0

    if e == 0.0:
        return 0.0
    if math.isinf(e):
        return 1.0
    return e / (1.0 + e)


class PhiFailureDetector:
    """
    φ-accrual failure detector for a single monitored peer.

    The suspicion level is

        φ(now) = -log10( P_later(now - last_heartbeat) )

    where P_later is derived from a normal model whose mean and standard
    deviation are estimated over a sliding window of inter-arrival gaps.
    Timestamps are unsigned integers in a caller-chosen unit.

    An instance is meant to be owned by one monitor: it holds no lock.
    """

    def __init__(self, config: DetectorConfig | None = None, observer: Observer | None = None) -> None:
        self._config = config or DetectorConfig()
        self._window = IntervalWindow(self._config.history_size)
        self._observer = observer

    @property
    def config(self) -> DetectorConfig:
        return self._config

    @property
    def intervals(self) -> tuple[int, ...]:
        return self._window.snapshot()

    @property
    def last_heartbeat(self) -> int | None:
        return self._window.last

    @property
    def mean(self) -> float:
        """Mean gap used by phi; equals min_stddev below two samples."""
        if len(self._window) < 2:
            return self._config.min_stddev
        return self._window.mean()

    @property
    def stddev(self) -> float:
        """Standard deviation used by phi, never below min_stddev."""
        if len(self._window) < 2:
            return self._config.min_stddev
        return max(self._window.stddev(), self._config.min_stddev)

    def heartbeat(self, timestamp: int) -> None:
        """
        Record a heartbeat. A timestamp older than the last heartbeat is
        ignored.
        """
        self._window.record(timestamp)

    def phi(self, now: int) -> float:
        last = self._window.last
        if last is None or now <= last:
            return 0.0

        gap = now - last
        mean = self.mean
        stddev = self.stddev
        p = max(p_later(gap, mean, stddev), MIN_P_LATER)
        phi = -math.log10(p)

        if self._observer is not None:
            self._observer(PhiSample(
                now=now,
                gap=gap,
                mean=mean,
                stddev=stddev,
                x=(gap - mean) / stddev,
                p_later=p,
                phi=phi,
            ))

        return phi

    def next_crossing_at(self, now: int, tolerance: int, threshold: float) -> int:
        """
        Estimate the earliest timestamp t >= now at which phi(t) >= threshold,
        within `tolerance` units, assuming the statistics do not change.

        The search first brackets the crossing by doubling a probe starting
        at `now`, capped at the largest 64-bit timestamp, then bisects the bracket until it is no wider than
        `tolerance`. The upper end of the bracket is returned, so that

            phi(t - tolerance) < threshold <= phi(t)

        Raises:
            InvariantViolation: phi(now) already reaches the threshold, a
                bracket loses its sign property, or phi - threshold is NaN.
            SearchDidNotConverge: the crossing is beyond the 64-bit timestamp
                range or bisection exceeds its iteration bound.
        """
        if tolerance < 0:
            raise InvariantViolation(f"tolerance must be >= 0, got {tolerance}")

        def f(t: int) -> float:
            value = self.phi(t) - threshold
            if math.isnan(value):
                raise InvariantViolation(f"phi({t}) - {threshold} is NaN")
            return value

        if f(now) >= 0:
            raise InvariantViolation(
                f"phi({now}) = {self.phi(now)} already reaches threshold {threshold}"
            )

        lower = now
        probe = now or 1
        while True:
            if f(probe) >= 0:
                upper = probe
                break
            if probe >= MAX_TIMESTAMP:
                raise SearchDidNotConverge(
                    f"phi never reaches {threshold} before the end of the timestamp range"
                )
            lower = probe
            probe = min(probe * 2, MAX_TIMESTAMP)

        for _ in range(MAX_BISECTIONS):
            if upper - lower <= tolerance:
                return upper

            if not f(lower) < 0 <= f(upper):
                raise InvariantViolation(
                    f"bracket [{lower}, {upper}] does not straddle threshold {threshold}"
                )

            mid = lower + (upper - lower) // 2
            if f(mid) >= 0:
                upper = mid
            else:
                lower = mid

        if upper - lower <= tolerance:
            return upper

        raise SearchDidNotConverge(
            f"bracket [{lower}, {upper}] still wider than {tolerance} "
            f"after {MAX_BISECTIONS} bisections"
        )

    def reset(self) -> None:
        """Forget every recorded heartbeat."""
        self._window.clear()

    def copy(self) -> "PhiFailureDetector":
        """Independent detector with the same configuration, observer and history."""
        clone = PhiFailureDetector(self._config, self._observer)
        clone._window = copy.deepcopy(self._window)
        return clone

    def __repr__(self) -> str:
        return (
            f"PhiFailureDetector(min_stddev={self._config.min_stddev}, "
            f"history_size={self._config.history_size}, "
            f"intervals={list(self._window)}, "
            f"last_heartbeat={self._window.last})"
        )
