import random
from dataclasses import dataclass, field


class RetryExhausted(Exception):
    pass


@dataclass
class BackoffRetry:
    """Exponential backoff with additive jitter, optionally bounded in attempts."""
    initial: float = 0.5
    maximum: float = 30.0
    factor: float = 2.0
    jitter: float = 1.2
    max_attempts: int | None = None
    rng: random.Random = field(default_factory=random.Random, repr=False)

    attempts: int = field(default=0, init=False)
    _current: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        self._current = self.initial

    def next_delay(self) -> float:
        if self.max_attempts is not None and self.attempts >= self.max_attempts:
            raise RetryExhausted(f"Gave up after {self.attempts} attempt(s)")

        self.attempts += 1
        delay = self._current
        self._current = min(self._current * self.factor, self.maximum)

        if self.jitter > 0:
            delay += self.rng.uniform(0, self.jitter)

        return delay

    def reset(self) -> None:
        self.attempts = 0
        self._current = self.initial
