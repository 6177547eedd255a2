"""
Error Taxonomy

Caller-facing observation failures and fatal model configuration errors.
"""
from enum import Enum
from typing import Dict, Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from easygp.core.observation.base import Feature


class InvalidObservationReason(str, Enum):
    """Why an observation was rejected."""
    OUT_OF_RANGE = "out_of_range"
    NON_FINITE = "non_finite"
    DUPLICATE_FEATURE = "duplicate_feature"


class InvalidObservation(ValueError):
    """
    Raised when a patient observation cannot be scored.

    Recoverable: the caller gets no partial result and may correct the input.
    """

    def __init__(self, reason: InvalidObservationReason, message: str, feature: Optional["Feature"] = None):
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.feature = feature

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "invalid_observation",
            "reason": self.reason.value,
            "feature": self.feature.value if self.feature is not None else None,
            "message": self.message,
        }


class ModelConfigurationError(RuntimeError):
    """Raised when the likelihood model fails its integrity checks. Fatal at startup."""
