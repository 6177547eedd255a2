"""
Observation Data Model

Closed vocabularies (features, conditions) and the patient observation
record consumed by the diagnosis engine.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, Any, List, Tuple, Sequence
from enum import Enum


def _normalize_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def _strict_bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{field_name} must be true or false, got {value!r}")
    return value


class _LookupMixin:
    """Name parsing shared by the closed vocabularies."""

    @classmethod
    def from_string(cls, name: str):
        """Parse a name, enum key or alias to a member (case/separator insensitive)."""
        if isinstance(name, cls):
            return name
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"Unknown {cls.__name__.lower()}: {name!r}")

        key = _normalize_name(name)
        for member in cls:
            if key in (_normalize_name(member.name), _normalize_name(member.value)):
                return member

        alias = cls._lookup_aliases().get(key)
        if alias is not None:
            return cls(alias)
        raise ValueError(f"Unknown {cls.__name__.lower()}: {name}")

    @classmethod
    def _lookup_aliases(cls) -> Dict[str, str]:
        return {}

    @property
    def ordinal(self) -> int:
        """Position in declaration order (used for deterministic tie-breaking)."""
        return list(type(self)).index(self)

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class Feature(_LookupMixin, str, Enum):
    """Observable symptom and context signals, in scoring order."""
    FEVER = "fever"
    SWOLLEN_GLANDS = "swollen_glands"
    EXUDATE = "exudate"
    COUGH = "cough"
    RASH = "rash"
    SORE_THROAT = "sore_throat"
    RHINORRHEA = "rhinorrhea"
    HEADACHE = "headache"
    TONSIL_SWELLING = "tonsil_swelling"
    LYMPH_NODES = "lymph_nodes"
    TENDERNESS = "tenderness"
    ONSET = "onset"
    PANDAS = "pandas"
    IRRITABILITY = "irritability"
    TICS = "tics"

    @classmethod
    def _lookup_aliases(cls) -> Dict[str, str]:
        return {
            "temperature": "fever",
            "pyrexia": "fever",
            "glands": "swollen_glands",
            "tonsillarexudate": "exudate",
            "pus": "exudate",
            "throat": "sore_throat",
            "pharyngitis": "sore_throat",
            "runnynose": "rhinorrhea",
            "rhinorrhoea": "rhinorrhea",
            "congestion": "rhinorrhea",
            "tonsils": "tonsil_swelling",
            "lymphadenopathy": "lymph_nodes",
            "nodes": "lymph_nodes",
            "suddenonset": "onset",
        }


class Condition(_LookupMixin, str, Enum):
    """Candidate diagnoses; mutually exclusive and exhaustive for scoring."""
    VIRAL_PHARYNGITIS = "viral_pharyngitis"
    STREP_THROAT = "strep_throat"
    INFECTIOUS_MONO = "infectious_mono"
    SCARLET_FEVER = "scarlet_fever"
    COVID19 = "covid19"
    ALLERGIC_RHINITIS = "allergic_rhinitis"
    INFLUENZA = "influenza"
    COMMON_COLD = "common_cold"

    @classmethod
    def _lookup_aliases(cls) -> Dict[str, str]:
        return {
            "strep": "strep_throat",
            "streptococcalpharyngitis": "strep_throat",
            "mono": "infectious_mono",
            "mononucleosis": "infectious_mono",
            "glandularfever": "infectious_mono",
            "scarlatina": "scarlet_fever",
            "covid": "covid19",
            "sarscov2": "covid19",
            "hayfever": "allergic_rhinitis",
            "flu": "influenza",
            "cold": "common_cold",
        }

    @property
    def display_name(self) -> str:
        if self is Condition.COVID19:
            return "COVID-19"
        return super().display_name


class Recommendation(str, Enum):
    """Clinical recommendation; exactly one per result."""
    TEST_FOR_STREP = "test_for_strep"
    PRESCRIBE_ANTIBIOTICS = "prescribe_antibiotics"
    WATCHFUL = "watchful"
    CONSIDER_ALTERNATIVES = "consider_alternatives"
    REFER_SPECIALIST = "refer_specialist"


@dataclass(frozen=True)
class ReferenceRange:
    """
    Documented range for a continuous-capable feature.

    Values inside [low, high] rescale linearly to [0, 1]. Values between the
    reference and hard limits are clamped; values beyond the hard limits are
    physically implausible and rejected.
    """
    low: float
    high: float
    hard_low: float
    hard_high: float
    unit: str = ""

    def within_hard_limits(self, value: float) -> bool:
        return self.hard_low <= value <= self.hard_high

    def is_clamped(self, value: float) -> bool:
        return value < self.low or value > self.high

    def normalize(self, value: float) -> float:
        """Clamp to the reference range and rescale to [0, 1]."""
        clamped = min(max(value, self.low), self.high)
        return (clamped - self.low) / (self.high - self.low)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "low": self.low,
            "high": self.high,
            "hard_low": self.hard_low,
            "hard_high": self.hard_high,
            "unit": self.unit,
        }


@dataclass(frozen=True)
class SymptomFact:
    """Discrete observation: feature present or absent."""
    feature: Feature
    present: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"feature": self.feature.value, "present": self.present}


@dataclass(frozen=True)
class ContinuousSymptom:
    """Scalar measurement for a continuous-capable feature (e.g. fever in degrees C)."""
    feature: Feature
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {"feature": self.feature.value, "value": float(self.value)}


@dataclass(frozen=True)
class PatientObservation:
    """
    Complete patient observation - the engine's only input.

    Symptom lists are stored as tuples so the record stays hashable and
    cannot be mutated after construction.
    """
    age: int
    contact_history: bool = False
    discrete_symptoms: Tuple[SymptomFact, ...] = field(default_factory=tuple)
    continuous_symptoms: Tuple[ContinuousSymptom, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "discrete_symptoms", tuple(self.discrete_symptoms))
        object.__setattr__(self, "continuous_symptoms", tuple(self.continuous_symptoms))

    def referenced_features(self) -> List[Feature]:
        """All features mentioned, in input order, duplicates included."""
        return [s.feature for s in self.discrete_symptoms] + [s.feature for s in self.continuous_symptoms]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "age": self.age,
            "contact_history": self.contact_history,
            "discrete_symptoms": [s.to_dict() for s in self.discrete_symptoms],
            "continuous_symptoms": [s.to_dict() for s in self.continuous_symptoms],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PatientObservation":
        """
        Build from plain data; feature names go through ``Feature.from_string``.

        Raises:
            ValueError: unknown feature name, or a flag that is not a bool.
        """
        discrete: Sequence[Dict[str, Any]] = data.get("discrete_symptoms") or []
        continuous: Sequence[Dict[str, Any]] = data.get("continuous_symptoms") or []
        return cls(
            age=data["age"],
            contact_history=_strict_bool(data.get("contact_history", False), "contact_history"),
            discrete_symptoms=tuple(
                SymptomFact(Feature.from_string(s["feature"]), _strict_bool(s["present"], "present"))
                for s in discrete
            ),
            continuous_symptoms=tuple(
                ContinuousSymptom(Feature.from_string(s["feature"]), float(s["value"])) for s in continuous
            ),
        )
