import math
from collections import deque
from typing import Iterator


class IntervalWindow:
    """
    Bounded history of inter-heartbeat gaps.

    Keeps the most recent `capacity` gaps in arrival order together with the
    timestamp of the last accepted heartbeat. Gaps are never negative: a
    heartbeat older than the last one is discarded.
    """

    def __init__(self, capacity: int) -> None:
        self._capacity = capacity
        self._intervals: deque[int] = deque(maxlen=capacity)
        self._last: int | None = None

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def last(self) -> int | None:
        return self._last

    def __len__(self) -> int:
        return len(self._intervals)

    def __iter__(self) -> Iterator[int]:
        return iter(self._intervals)

    def record(self, timestamp: int) -> bool:
        """
        Record a heartbeat observed at `timestamp`.

        Returns False when the heartbeat is discarded because it is older
        than the last accepted one, True otherwise. The first heartbeat only
        sets the reference point. A heartbeat equal to the last one yields a
        zero-length interval.
        """
        if self._last is None:
            self._last = timestamp
            return True

        if timestamp < self._last:
            return False

        # deque(maxlen=...) drops the oldest gap once full
        self._intervals.append(timestamp - self._last)
        self._last = timestamp
        return True

    def mean(self) -> float:
        return math.fsum(self._intervals) / len(self._intervals)

    def stddev(self) -> float:
        """Population standard deviation of the gaps."""
        mean = self.mean()
        variance = math.fsum((v - mean) ** 2 for v in self._intervals) / len(self._intervals)
        return math.sqrt(variance)

    def clear(self) -> None:
        self._intervals.clear()
        self._last = None

    def snapshot(self) -> tuple[int, ...]:
        return tuple(self._intervals)
