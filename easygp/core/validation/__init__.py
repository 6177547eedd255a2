"""
Validation Module

Error taxonomy and hard-limit checks applied to observations before scoring.
"""
from .errors import InvalidObservation, InvalidObservationReason, ModelConfigurationError
from .observation_plausibility import (
    ObservationPlausibilityValidator, PlausibilityResult, PlausibilityViolation, ViolationType,
)

__all__ = [
    "InvalidObservation",
    "InvalidObservationReason",
    "ModelConfigurationError",
    "ObservationPlausibilityValidator",
    "PlausibilityResult",
    "PlausibilityViolation",
    "ViolationType",
]
