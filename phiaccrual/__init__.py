from phiaccrual.core import (
    DetectorConfig,
    InvalidConfiguration,
    InvariantViolation,
    PhiAccrualError,
    PhiFailureDetector,
    PhiSample,
    SearchDidNotConverge,
    p_later,
)

__all__ = [
    "DetectorConfig",
    "InvalidConfiguration",
    "InvariantViolation",
    "PhiAccrualError",
    "PhiFailureDetector",
    "PhiSample",
    "SearchDidNotConverge",
    "p_later",
]
