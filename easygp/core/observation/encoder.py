"""
Feature Encoder

Normalizes a raw patient observation into an evidence set keyed by feature.
"""
from dataclasses import dataclass
from collections.abc import Mapping
from typing import Dict, Any, Iterator, Optional, Tuple
from enum import Enum
from types import MappingProxyType

from easygp.core.observation.base import Feature, PatientObservation, ReferenceRange
from easygp.core.validation.observation_plausibility import ObservationPlausibilityValidator
from easygp.utils import get_logger

logger = get_logger(__name__)


class EvidenceKind(str, Enum):
    """Kinds of evidence a feature can carry."""
    PRESENT = "present"
    ABSENT = "absent"
    SCALAR = "scalar"


@dataclass(frozen=True)
class EvidenceValue:
    """Observed value of one feature."""
    kind: EvidenceKind
    scalar: float = 0.0  # normalized to [0, 1], only for SCALAR
    raw_value: Optional[float] = None

    @classmethod
    def present(cls) -> "EvidenceValue":
        return cls(EvidenceKind.PRESENT)

    @classmethod
    def absent(cls) -> "EvidenceValue":
        return cls(EvidenceKind.ABSENT)

    @classmethod
    def normalized(cls, scalar: float, raw_value: Optional[float] = None) -> "EvidenceValue":
        return cls(EvidenceKind.SCALAR, scalar=scalar, raw_value=raw_value)

    def describe(self) -> str:
        if self.kind == EvidenceKind.PRESENT:
            return "present"
        if self.kind == EvidenceKind.ABSENT:
            return "absent"
        return f"{self.raw_value:g} (scaled {self.scalar:.2f})"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind.value}
        if self.kind == EvidenceKind.SCALAR:
            data["scalar"] = round(self.scalar, 4)
            data["raw_value"] = self.raw_value
        return data


class EvidenceSet(Mapping):
    """
    Read-only mapping from observed feature to evidence value.

    Iteration follows ``Feature`` declaration order, never input order, so
    downstream sums are reproducible. Features missing from the set were not
    observed, which is distinct from ABSENT evidence.
    """

    def __init__(self, values: Mapping[Feature, EvidenceValue]):
        ordered = {f: values[f] for f in Feature if f in values}
        self._values = MappingProxyType(ordered)

    def __getitem__(self, feature: Feature) -> EvidenceValue:
        return self._values[feature]

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"EvidenceSet({dict(self._values)!r})"

    def items_ordered(self) -> Tuple[Tuple[Feature, EvidenceValue], ...]:
        return tuple(self._values.items())

    def to_dict(self) -> Dict[str, Any]:
        return {f.value: v.to_dict() for f, v in self._values.items()}


class FeatureEncoder:
    """
    Turns a PatientObservation into an EvidenceSet.

    Discrete facts become PRESENT/ABSENT; continuous values are clamped to
    the feature's reference range and rescaled to [0, 1].
    """

    def __init__(self, reference_ranges: Mapping[Feature, ReferenceRange]):
        self._reference_ranges = reference_ranges
        self._validator = ObservationPlausibilityValidator(reference_ranges)

    def encode(self, observation: PatientObservation) -> EvidenceSet:
        """
        Encode an observation.

        Raises:
            InvalidObservation: out-of-range age or value, non-finite value,
                or a feature reported more than once.
        """
        plausibility = self._validator.validate(observation)
        plausibility.raise_for_violations()

        values: Dict[Feature, EvidenceValue] = {}
        for fact in observation.discrete_symptoms:
            values[fact.feature] = EvidenceValue.present() if fact.present else EvidenceValue.absent()

        for symptom in observation.continuous_symptoms:
            ref = self._reference_ranges[symptom.feature]
            values[symptom.feature] = EvidenceValue.normalized(
                ref.normalize(float(symptom.value)), raw_value=float(symptom.value)
            )

        if plausibility.clamped_features:
            logger.debug(f"Clamped to reference range: {[f.value for f in plausibility.clamped_features]}")

        return EvidenceSet(values)
