"""
Diagnosis Engine Module

Transforms a patient observation into a differential diagnosis:
encode -> aggregate -> normalize -> recommend -> explain.

The engine holds no per-request state. The only shared object is the
immutable likelihood model, so one engine can serve concurrent callers
without locking.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Any, Iterable, List, Optional, Tuple, TYPE_CHECKING
import threading

from easygp.core.observation.base import Condition, PatientObservation, Recommendation
from easygp.core.observation.encoder import FeatureEncoder
from easygp.core.inference.aggregator import aggregate_with_contributions, rank_conditions
from easygp.core.inference.explanation import DEFAULT_TOP_K, ExplanationBuilder
from easygp.core.inference.likelihood import LikelihoodModel, get_likelihood_model
from easygp.core.inference.normalizer import normalize
from easygp.core.inference.recommendation import PolicyThresholds, RecommendationPolicy
from easygp.utils import get_logger

if TYPE_CHECKING:
    from easygp.config import Settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class DiagnosisResult:
    """Complete differential diagnosis result."""
    probabilities: Dict[Condition, float]
    log_odds: Dict[Condition, float]
    recommendation: Recommendation
    message: str
    explanation: str

    @property
    def top_condition(self) -> Condition:
        return rank_conditions(self.probabilities)[0]

    def top_conditions(self, k: int = 3) -> List[Tuple[Condition, float]]:
        """The k most probable conditions, ties by declaration order."""
        return [(c, self.probabilities[c]) for c in rank_conditions(self.probabilities)[:k]]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "probabilities": {c.value: round(p, 4) for c, p in self.probabilities.items()},
            "log_odds": {c.value: round(v, 4) for c, v in self.log_odds.items()},
            "recommendation": self.recommendation.value,
            "message": self.message,
            "explanation": self.explanation,
        }


class DiagnosisEngine:
    """
    Core inference engine.

    Wires the feature encoder, aggregator, normalizer, recommendation policy
    and explanation builder around one likelihood model.
    """

    def __init__(
        self,
        model: Optional[LikelihoodModel] = None,
        thresholds: Optional[PolicyThresholds] = None,
        top_k: int = DEFAULT_TOP_K,
    ):
        self.model = model or get_likelihood_model()
        self._encoder = FeatureEncoder(self.model.reference_ranges)
        self._policy = RecommendationPolicy(thresholds)
        self._explainer = ExplanationBuilder(self.model, top_k=top_k)
        logger.info(f"DiagnosisEngine initialized (calibration v{self.model.version})")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "DiagnosisEngine":
        return cls(
            model=get_likelihood_model(settings.calibration_path),
            thresholds=PolicyThresholds.from_settings(settings),
            top_k=settings.explanation_top_k,
        )

    @property
    def thresholds(self) -> PolicyThresholds:
        return self._policy.thresholds

    def evaluate(self, observation: PatientObservation) -> DiagnosisResult:
        """
        Score one observation.

        Raises:
            InvalidObservation: the observation cannot be scored. No partial
                result is produced.
        """
        evidence = self._encoder.encode(observation)
        aggregation = aggregate_with_contributions(
            evidence, self.model, age=observation.age, contact_history=observation.contact_history
        )
        probabilities = normalize(aggregation.log_odds)
        recommendation = self._policy.evaluate(probabilities)
        message, explanation = self._explainer.explain(evidence, aggregation.log_odds, recommendation)

        result = DiagnosisResult(
            probabilities=probabilities,
            log_odds=aggregation.log_odds,
            recommendation=recommendation,
            message=message,
            explanation=explanation,
        )
        logger.debug(
            f"Evaluated {len(evidence)} findings: top={result.top_condition.value} "
            f"p={probabilities[result.top_condition]:.3f} -> {recommendation.value}"
        )
        return result

    def evaluate_many(self, observations: Iterable[PatientObservation]) -> List[DiagnosisResult]:
        """Score observations in order; stops at the first invalid one."""
        return [self.evaluate(obs) for obs in observations]


_default_engine: Optional[DiagnosisEngine] = None
_default_engine_lock = threading.Lock()


def get_default_engine() -> DiagnosisEngine:
    """Default-configured engine, built once per process."""
    global _default_engine

    engine = _default_engine
    if engine is not None:
        return engine

    with _default_engine_lock:
        if _default_engine is None:
            _default_engine = DiagnosisEngine()
        return _default_engine


def evaluate(observation: PatientObservation) -> DiagnosisResult:
    """Score an observation with a default-configured engine."""
    return get_default_engine().evaluate(observation)
