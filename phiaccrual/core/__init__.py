from phiaccrual.core.config import DetectorConfig
from phiaccrual.core.detector import PhiFailureDetector, PhiSample, p_later
from phiaccrual.core.exception import (
    InvalidConfiguration,
    InvariantViolation,
    PhiAccrualError,
    SearchDidNotConverge,
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
