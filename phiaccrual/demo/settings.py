from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from phiaccrual.core.config import DetectorConfig
from phiaccrual.core.detector import MAX_PHI

NANOS_PER_SECOND = 1_000_000_000


class ReceiverSettings(BaseSettings):
    """
    Tunables of the demonstration receiver.

    Every field can be overridden from the environment using the
    PHI_RECEIVER_ prefix, e.g. PHI_RECEIVER_ABANDON_PHI=8.
    Durations are in nanoseconds unless stated otherwise.
    """

    model_config = SettingsConfigDict(env_prefix="PHI_RECEIVER_", frozen=True)

    min_stddev: Annotated[
        float,
        Field(
            description=(
                "Standard deviation floor of each connection's detector (ns).\n"
                "Defaults to 1ms."
            ),
            gt=0.0,
            default=1_000_000.0
        )
    ]

    history_size: Annotated[
        int,
        Field(
            description="Number of inter-arrival intervals kept per connection.",
            gt=0,
            default=10
        )
    ]

    tolerance: Annotated[
        int,
        Field(
            description=(
                "Precision (ns) of the predicted phi crossing used as read timeout.\n"
                "Defaults to 1µs."
            ),
            gt=0,
            default=1000
        )
    ]

    stable_phi: Annotated[
        float,
        Field(
            description=(
                "A keepalive arriving while phi is at or below this level counts\n"
                "towards the connection's stability."
            ),
            gt=0.0,
            default=3.0
        )
    ]

    min_stable: Annotated[
        int,
        Field(
            description=(
                "Number of stable keepalives required before a connection may be\n"
                "abandoned. A peer that was never stable is never dropped."
            ),
            ge=0,
            default=5
        )
    ]

    abandon_phi: Annotated[
        float,
        Field(
            description="Phi level above which a stable but silent connection is closed.",
            gt=0.0,
            default=6.0
        )
    ]

    thresholds: Annotated[
        tuple[float, ...],
        Field(
            description=(
                "Phi levels at which the receiver wakes up to re-evaluate a silent\n"
                "connection, in ascending order. Past the last level the receiver\n"
                "waits for data without timeout."
            ),
            default=(1.0, 2.0, 3.0, 6.0)
        )
    ]

    timeout_graceful_shutdown: Annotated[
        float,
        Field(
            description=(
                "Maximum time (in seconds) granted to open connections to finish\n"
                "when the receiver is asked to stop."
            ),
            default=5.0
        )
    ]

    @field_validator("thresholds")
    @classmethod
    def validate_thresholds(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        if not v:
            raise ValueError("At least one phi threshold is required")
        if any(level <= 0 for level in v):
            raise ValueError(f"Phi thresholds must be positive: {v}")
        if max(v) >= MAX_PHI:
            raise ValueError(f"Phi thresholds must stay below {MAX_PHI:.2f}, where phi saturates: {v}")
        if list(v) != sorted(set(v)):
            raise ValueError(f"Phi thresholds must be strictly ascending: {v}")
        return v

    def detector_config(self) -> DetectorConfig:
        return DetectorConfig(min_stddev=self.min_stddev, history_size=self.history_size)
