"""
Observation Plausibility Validation Module

Enforces hard constraints on a patient observation before it is encoded.
Detects impossible ages, non-finite or implausible measurements, and
duplicated features. Values that are plausible but outside the reference
range are noted and later clamped, not rejected.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Mapping, Optional
from enum import Enum
import numpy as np

from easygp.core.observation.base import Feature, PatientObservation, ReferenceRange
from easygp.core.validation.errors import InvalidObservation, InvalidObservationReason
from easygp.utils import get_logger

logger = get_logger(__name__)

MIN_AGE = 0
MAX_AGE = 120


def _as_float(value: Any) -> Optional[float]:
    """Convert to float; None when the value has no float representation."""
    try:
        return float(value)
    except (OverflowError, TypeError, ValueError):
        return None


class ViolationType(str, Enum):
    """Types of plausibility violations."""
    IMPOSSIBLE_VALUE = "impossible_value"       # Outside hard limits
    NON_FINITE = "non_finite"                   # NaN or infinity
    DUPLICATE_FEATURE = "duplicate_feature"     # Feature reported twice
    UNSUPPORTED_SCALAR = "unsupported_scalar"   # No reference range for a continuous value
    CLAMPED = "clamped"                         # Outside reference range, inside hard limits

    @property
    def reason(self) -> Optional[InvalidObservationReason]:
        """Rejection reason for fatal violations, None for advisory ones."""
        return {
            ViolationType.IMPOSSIBLE_VALUE: InvalidObservationReason.OUT_OF_RANGE,
            ViolationType.UNSUPPORTED_SCALAR: InvalidObservationReason.OUT_OF_RANGE,
            ViolationType.NON_FINITE: InvalidObservationReason.NON_FINITE,
            ViolationType.DUPLICATE_FEATURE: InvalidObservationReason.DUPLICATE_FEATURE,
        }.get(self)


@dataclass
class PlausibilityViolation:
    """A single plausibility violation."""
    field_name: str
    violation_type: ViolationType
    message: str
    feature: Optional[Feature] = None
    actual_value: Optional[float] = None

    @property
    def is_fatal(self) -> bool:
        return self.violation_type.reason is not None

    def to_error(self) -> InvalidObservation:
        return InvalidObservation(self.violation_type.reason, self.message, feature=self.feature)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field_name,
            "type": self.violation_type.value,
            "message": self.message,
            "feature": self.feature.value if self.feature is not None else None,
            "actual_value": self.actual_value,
        }


@dataclass
class PlausibilityResult:
    """Result of observation plausibility validation."""
    violations: List[PlausibilityViolation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not any(v.is_fatal for v in self.violations)

    @property
    def fatal_violations(self) -> List[PlausibilityViolation]:
        return [v for v in self.violations if v.is_fatal]

    @property
    def clamped_features(self) -> List[Feature]:
        return [v.feature for v in self.violations if v.violation_type == ViolationType.CLAMPED]

    def raise_for_violations(self) -> None:
        """Raise the first fatal violation as ``InvalidObservation``."""
        fatal = self.fatal_violations
        if fatal:
            raise fatal[0].to_error()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "violation_count": len(self.violations),
            "violations": [v.to_dict() for v in self.violations],
        }


class ObservationPlausibilityValidator:
    """
    Validates an observation against hard limits.

    Checks run in a fixed order (age, duplicates, continuous values) so the
    first fatal violation is deterministic for a given input.
    """

    def __init__(self, reference_ranges: Mapping[Feature, ReferenceRange]):
        self._reference_ranges = reference_ranges

    def validate(self, observation: PatientObservation) -> PlausibilityResult:
        result = PlausibilityResult()
        result.violations.extend(self._check_age(observation.age))
        result.violations.extend(self._check_duplicates(observation))
        result.violations.extend(self._check_continuous(observation))

        if not result.is_valid:
            logger.warning(
                f"Observation rejected: {[v.violation_type.value for v in result.fatal_violations]}"
            )
        return result

    def _check_age(self, age: Any) -> List[PlausibilityViolation]:
        if isinstance(age, bool) or not isinstance(age, (int, float, np.integer, np.floating)):
            return [PlausibilityViolation(
                field_name="age",
                violation_type=ViolationType.IMPOSSIBLE_VALUE,
                message=f"age must be a number, got {type(age).__name__}",
            )]
        years = _as_float(age)
        if years is None:
            return [PlausibilityViolation(
                field_name="age",
                violation_type=ViolationType.IMPOSSIBLE_VALUE,
                message=f"age is outside [{MIN_AGE}, {MAX_AGE}]",
            )]
        if not np.isfinite(years):
            return [PlausibilityViolation(
                field_name="age",
                violation_type=ViolationType.NON_FINITE,
                message="age must be finite",
            )]
        if not years.is_integer():
            return [PlausibilityViolation(
                field_name="age",
                violation_type=ViolationType.IMPOSSIBLE_VALUE,
                message=f"age must be a whole number of years, got {years}",
                actual_value=years,
            )]
        if not MIN_AGE <= years <= MAX_AGE:
            return [PlausibilityViolation(
                field_name="age",
                violation_type=ViolationType.IMPOSSIBLE_VALUE,
                message=f"age={age} is outside [{MIN_AGE}, {MAX_AGE}]",
                actual_value=years,
            )]
        return []

    def _check_duplicates(self, observation: PatientObservation) -> List[PlausibilityViolation]:
        seen = set()
        violations = []
        for feature in observation.referenced_features():
            if feature in seen:
                violations.append(PlausibilityViolation(
                    field_name="symptoms",
                    violation_type=ViolationType.DUPLICATE_FEATURE,
                    message=f"{feature.value} is reported more than once",
                    feature=feature,
                ))
            seen.add(feature)
        return violations

    def _check_continuous(self, observation: PatientObservation) -> List[PlausibilityViolation]:
        violations = []
        for symptom in observation.continuous_symptoms:
            feature = symptom.feature
            value = _as_float(symptom.value)

            if value is None:
                violations.append(PlausibilityViolation(
                    field_name="continuous_symptoms",
                    violation_type=ViolationType.IMPOSSIBLE_VALUE,
                    message=f"{feature.value} value is not a representable number",
                    feature=feature,
                ))
                continue

            if not np.isfinite(value):
                violations.append(PlausibilityViolation(
                    field_name="continuous_symptoms",
                    violation_type=ViolationType.NON_FINITE,
                    message=f"{feature.value} value must be finite",
                    feature=feature,
                ))
                continue

            ref = self._reference_ranges.get(feature)
            if ref is None:
                violations.append(PlausibilityViolation(
                    field_name="continuous_symptoms",
                    violation_type=ViolationType.UNSUPPORTED_SCALAR,
                    message=f"{feature.value} has no reference range for continuous values",
                    feature=feature,
                    actual_value=float(value),
                ))
            elif not ref.within_hard_limits(value):
                violations.append(PlausibilityViolation(
                    field_name="continuous_symptoms",
                    violation_type=ViolationType.IMPOSSIBLE_VALUE,
                    message=(
                        f"{feature.value}={value} {ref.unit} is outside plausible limits "
                        f"[{ref.hard_low}, {ref.hard_high}]"
                    ).replace("  ", " "),
                    feature=feature,
                    actual_value=float(value),
                ))
            elif ref.is_clamped(value):
                violations.append(PlausibilityViolation(
                    field_name="continuous_symptoms",
                    violation_type=ViolationType.CLAMPED,
                    message=f"{feature.value}={value} clamped to [{ref.low}, {ref.high}]",
                    feature=feature,
                    actual_value=float(value),
                ))
        return violations
