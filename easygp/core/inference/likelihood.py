"""
Likelihood Model Module

Immutable calibration table shared by every evaluation: prior log-odds per
condition, per (feature, condition) contribution weights, reference ranges
for continuous features, and context shifts for age and contact history.

Modeling simplifications carried by this table:
- Features are conditionally independent; there are no interaction terms.
- An ABSENT finding contributes the negated present-weight (symmetric
  likelihood ratios), not a separately learned value.
- A (feature, condition) pair missing from the table contributes 0.
"""
from __future__ import annotations
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Any, List, Mapping, Optional, Tuple, Union
import json
import threading
import numpy as np

from easygp.core.observation.base import Condition, Feature, ReferenceRange
from easygp.core.observation.encoder import EvidenceKind, EvidenceValue
from easygp.core.validation.errors import ModelConfigurationError
from easygp.utils import get_logger

logger = get_logger(__name__)

DEFAULT_CALIBRATION = "calibration.json"


@dataclass(frozen=True)
class AgeBand:
    """Log-odds shifts applied to patients whose age falls in [min_age, max_age]."""
    min_age: float
    max_age: float
    weights: Mapping[Condition, float]

    def contains(self, age: float) -> bool:
        return self.min_age <= age <= self.max_age


def _parse_condition(name: str) -> Condition:
    try:
        return Condition.from_string(name)
    except ValueError as e:
        raise ModelConfigurationError(f"Calibration references unknown condition: {name}") from e


def _parse_feature(name: str) -> Feature:
    try:
        return Feature.from_string(name)
    except ValueError as e:
        raise ModelConfigurationError(f"Calibration references unknown feature: {name}") from e


def _condition_weights(raw: Mapping[str, Any], where: str) -> Dict[Condition, float]:
    weights = {}
    for name, value in raw.items():
        condition = _parse_condition(name)
        try:
            weights[condition] = float(value)
        except (TypeError, ValueError) as e:
            raise ModelConfigurationError(f"{where}: weight for {name} is not a number") from e
    return weights


class LikelihoodModel:
    """
    Read-only calibration for the diagnosis engine.

    Validated at construction; raises ModelConfigurationError if any
    integrity check fails. All exposed mappings are read-only views.
    """

    __slots__ = (
        "_version", "_priors", "_prior_log_odds", "_weights",
        "_reference_ranges", "_contact_weights", "_age_bands",
    )

    def __init__(
        self,
        priors: Mapping[Condition, float],
        weights: Mapping[Feature, Mapping[Condition, float]],
        reference_ranges: Optional[Mapping[Feature, ReferenceRange]] = None,
        contact_weights: Optional[Mapping[Condition, float]] = None,
        age_bands: Optional[List[AgeBand]] = None,
        version: str = "unversioned",
    ):
        reference_ranges = reference_ranges or {}
        contact_weights = contact_weights or {}
        age_bands = age_bands or []

        self._validate(priors, weights, reference_ranges, contact_weights, age_bands)

        self._version = version
        self._priors = MappingProxyType({c: float(priors[c]) for c in Condition})
        self._prior_log_odds = MappingProxyType({
            c: float(np.log(p / (1.0 - p))) for c, p in self._priors.items()
        })
        self._weights = MappingProxyType({
            f: MappingProxyType({c: float(w) for c, w in weights[f].items()})
            for f in Feature if f in weights
        })
        self._reference_ranges = MappingProxyType(
            {f: reference_ranges[f] for f in Feature if f in reference_ranges}
        )
        self._contact_weights = MappingProxyType({c: float(w) for c, w in contact_weights.items()})
        self._age_bands: Tuple[AgeBand, ...] = tuple(
            AgeBand(b.min_age, b.max_age, MappingProxyType(dict(b.weights))) for b in age_bands
        )

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, "_age_bands"):
            raise AttributeError("LikelihoodModel is immutable")
        object.__setattr__(self, name, value)

    @staticmethod
    def _validate(
        priors: Mapping[Condition, float],
        weights: Mapping[Feature, Mapping[Condition, float]],
        reference_ranges: Mapping[Feature, ReferenceRange],
        contact_weights: Mapping[Condition, float],
        age_bands: List[AgeBand],
    ) -> None:
        for condition in Condition:
            if condition not in priors:
                raise ModelConfigurationError(f"No prior for condition {condition.value}")
            prior = priors[condition]
            if not np.isfinite(prior) or not 0.0 < prior < 1.0:
                raise ModelConfigurationError(
                    f"Prior for {condition.value} must lie strictly within (0, 1), got {prior}"
                )

        for feature, row in weights.items():
            for condition, weight in row.items():
                if not np.isfinite(weight):
                    raise ModelConfigurationError(
                        f"Weight for ({feature.value}, {condition.value}) is not finite"
                    )

        for feature, ref in reference_ranges.items():
            bounds = (ref.low, ref.high, ref.hard_low, ref.hard_high)
            if not all(np.isfinite(b) for b in bounds):
                raise ModelConfigurationError(f"Reference range for {feature.value} is not finite")
            if ref.low >= ref.high:
                raise ModelConfigurationError(f"Reference range for {feature.value} is empty")
            if ref.hard_low > ref.low or ref.high > ref.hard_high:
                raise ModelConfigurationError(
                    f"Reference range for {feature.value} must lie within its hard limits"
                )

        for condition, weight in contact_weights.items():
            if not np.isfinite(weight):
                raise ModelConfigurationError(f"Contact weight for {condition.value} is not finite")

        for band in age_bands:
            if band.min_age > band.max_age:
                raise ModelConfigurationError(f"Age band [{band.min_age}, {band.max_age}] is empty")
            if not all(np.isfinite(w) for w in band.weights.values()):
                raise ModelConfigurationError(f"Age band [{band.min_age}, {band.max_age}] has a non-finite weight")

    # ---- Construction from calibration documents ----

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LikelihoodModel":
        """Build from a calibration document (see calibration.json for the layout)."""
        if not isinstance(data, Mapping):
            raise ModelConfigurationError("Calibration document must be a JSON object")

        priors = {}
        for name, value in (data.get("priors") or {}).items():
            condition = _parse_condition(name)
            try:
                priors[condition] = float(value)
            except (TypeError, ValueError) as e:
                raise ModelConfigurationError(f"Prior for {name} is not a number") from e

        weights = {
            _parse_feature(name): _condition_weights(row, f"weights.{name}")
            for name, row in (data.get("weights") or {}).items()
        }

        reference_ranges = {}
        for name, raw in (data.get("reference_ranges") or {}).items():
            feature = _parse_feature(name)
            try:
                low, high = float(raw["low"]), float(raw["high"])
                reference_ranges[feature] = ReferenceRange(
                    low=low,
                    high=high,
                    hard_low=float(raw.get("hard_low", low)),
                    hard_high=float(raw.get("hard_high", high)),
                    unit=str(raw.get("unit", "")),
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ModelConfigurationError(f"Malformed reference range for {name}") from e

        context = data.get("context") or {}
        contact_weights = _condition_weights(context.get("contact_history") or {}, "context.contact_history")

        age_bands = []
        for raw in context.get("age_bands") or []:
            try:
                age_bands.append(AgeBand(
                    min_age=float(raw["min_age"]),
                    max_age=float(raw["max_age"]),
                    weights=_condition_weights(raw.get("weights") or {}, "context.age_bands"),
                ))
            except (KeyError, TypeError, ValueError) as e:
                raise ModelConfigurationError("Malformed age band in calibration") from e

        return cls(
            priors=priors,
            weights=weights,
            reference_ranges=reference_ranges,
            contact_weights=contact_weights,
            age_bands=age_bands,
            version=str(data.get("version", "unversioned")),
        )

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "LikelihoodModel":
        """Load a calibration JSON file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ModelConfigurationError(f"Cannot read calibration {path}: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def default(cls) -> "LikelihoodModel":
        """Load the calibration packaged with easygp."""
        text = resources.files("easygp.core.inference").joinpath(DEFAULT_CALIBRATION).read_text(encoding="utf-8")
        return cls.from_dict(json.loads(text))

    # ---- Lookups ----

    @property
    def version(self) -> str:
        return self._version

    @property
    def priors(self) -> Mapping[Condition, float]:
        return self._priors

    @property
    def prior_log_odds(self) -> Mapping[Condition, float]:
        return self._prior_log_odds

    @property
    def reference_ranges(self) -> Mapping[Feature, ReferenceRange]:
        return self._reference_ranges

    def weight(self, feature: Feature, condition: Condition) -> float:
        """Table weight; 0.0 when the feature is uninformative for the condition."""
        row = self._weights.get(feature)
        if row is None:
            return 0.0
        return row.get(condition, 0.0)

    def contribution(self, feature: Feature, condition: Condition, evidence: EvidenceValue) -> float:
        """Log-odds contribution of one observed feature to one condition."""
        weight = self.weight(feature, condition)
        if evidence.kind == EvidenceKind.PRESENT:
            return weight
        if evidence.kind == EvidenceKind.ABSENT:
            return -weight
        return weight * evidence.scalar

    def context_shift(self, condition: Condition, age: float, contact_history: bool) -> float:
        """Log-odds shift from age band and contact history."""
        shift = 0.0
        for band in self._age_bands:
            if band.contains(age):
                shift += band.weights.get(condition, 0.0)
        if contact_history:
            shift += self._contact_weights.get(condition, 0.0)
        return shift

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the calibration document layout."""
        return {
            "version": self._version,
            "priors": {c.value: p for c, p in self._priors.items()},
            "weights": {f.value: {c.value: w for c, w in row.items()} for f, row in self._weights.items()},
            "reference_ranges": {f.value: r.to_dict() for f, r in self._reference_ranges.items()},
            "context": {
                "contact_history": {c.value: w for c, w in self._contact_weights.items()},
                "age_bands": [
                    {
                        "min_age": b.min_age,
                        "max_age": b.max_age,
                        "weights": {c.value: w for c, w in b.weights.items()},
                    }
                    for b in self._age_bands
                ],
            },
        }


# ---- Process-wide instance ----

_model: Optional[LikelihoodModel] = None
_model_source: Optional[str] = None
_model_lock = threading.Lock()


def get_likelihood_model(calibration_path: Optional[Union[str, Path]] = None) -> LikelihoodModel:
    """
    Return the process-wide likelihood model, building it on first use.

    Construction runs once under a lock; concurrent callers block until the
    model is fully built and never observe a partial one. The first call
    decides the calibration source.
    """
    global _model, _model_source

    model = _model
    if model is not None:
        _warn_if_other_source(calibration_path)
        return model

    with _model_lock:
        if _model is None:
            if calibration_path:
                built = LikelihoodModel.from_json(calibration_path)
                source = str(calibration_path)
            else:
                built = LikelihoodModel.default()
                source = DEFAULT_CALIBRATION
            logger.info(f"Likelihood model built from {source} (calibration v{built.version})")
            _model_source = source
            _model = built
        else:
            _warn_if_other_source(calibration_path)
        return _model


def _warn_if_other_source(calibration_path: Optional[Union[str, Path]]) -> None:
    if calibration_path and str(calibration_path) != _model_source:
        logger.warning(
            f"Likelihood model already built from {_model_source}; ignoring {calibration_path}"
        )


def reset_likelihood_model() -> None:
    """Drop the process-wide model. Intended for tests."""
    global _model, _model_source
    with _model_lock:
        _model = None
        _model_source = None
