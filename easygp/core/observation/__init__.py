"""
Observation Module

Patient observation data model and the feature encoder that turns an
observation into scoring evidence.
"""
from .base import (
    Feature, Condition, Recommendation, ReferenceRange,
    SymptomFact, ContinuousSymptom, PatientObservation,
)
from .encoder import EvidenceKind, EvidenceValue, EvidenceSet, FeatureEncoder

__all__ = [
    "Feature",
    "Condition",
    "Recommendation",
    "ReferenceRange",
    "SymptomFact",
    "ContinuousSymptom",
    "PatientObservation",
    "EvidenceKind",
    "EvidenceValue",
    "EvidenceSet",
    "FeatureEncoder",
]
