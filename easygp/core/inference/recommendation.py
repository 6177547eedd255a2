"""
Recommendation Policy

Ordered rule table over the normalized distribution. Rules are evaluated
top-down and the first match wins:

1. Strep throat is the top condition with probability >= prescribe threshold
   -> PRESCRIBE_ANTIBIOTICS
2. Strep throat probability in [test_low, test_high) -> TEST_FOR_STREP
3. Top probability below the low-confidence floor and the runner-up within
   the alternatives margin -> CONSIDER_ALTERNATIVES
4. Any referral-flagged condition above its threshold -> REFER_SPECIALIST
5. Otherwise -> WATCHFUL
"""
from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Any, Mapping, Optional, TYPE_CHECKING

from easygp.core.observation.base import Condition, Recommendation
from easygp.core.inference.aggregator import rank_conditions
from easygp.utils import get_logger

if TYPE_CHECKING:
    from easygp.config import Settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class PolicyThresholds:
    """Configurable thresholds for the recommendation rules."""
    prescribe_threshold: float = 0.7
    test_low: float = 0.3
    test_high: float = 0.7
    low_confidence_floor: float = 0.35
    alternatives_margin: float = 0.1
    referral_thresholds: Mapping[Condition, float] = field(
        default_factory=lambda: {Condition.INFECTIOUS_MONO: 0.5, Condition.SCARLET_FEVER: 0.6}
    )

    def __post_init__(self):
        for name in ("prescribe_threshold", "test_low", "test_high", "low_confidence_floor", "alternatives_margin"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.test_low >= self.test_high:
            raise ValueError("test_low must be strictly below test_high")
        for condition, threshold in self.referral_thresholds.items():
            if not 0.0 <= threshold <= 1.0:
                raise ValueError(f"Referral threshold for {condition.value} must be within [0, 1]")
        object.__setattr__(self, "referral_thresholds", MappingProxyType(dict(self.referral_thresholds)))

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PolicyThresholds":
        return cls(
            prescribe_threshold=settings.prescribe_threshold,
            test_low=settings.test_low,
            test_high=settings.test_high,
            low_confidence_floor=settings.low_confidence_floor,
            alternatives_margin=settings.alternatives_margin,
            referral_thresholds={
                Condition.from_string(name): threshold
                for name, threshold in settings.referral_thresholds.items()
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prescribe_threshold": self.prescribe_threshold,
            "test_low": self.test_low,
            "test_high": self.test_high,
            "low_confidence_floor": self.low_confidence_floor,
            "alternatives_margin": self.alternatives_margin,
            "referral_thresholds": {c.value: t for c, t in self.referral_thresholds.items()},
        }


class RecommendationPolicy:
    """Deterministic first-match rule evaluation over a probability distribution."""

    def __init__(self, thresholds: Optional[PolicyThresholds] = None):
        self.thresholds = thresholds or PolicyThresholds()

    def evaluate(self, probabilities: Mapping[Condition, float]) -> Recommendation:
        t = self.thresholds
        ranked = rank_conditions(probabilities)
        top, runner_up = ranked[0], ranked[1]
        p_top = probabilities[top]
        p_strep = probabilities[Condition.STREP_THROAT]

        if top == Condition.STREP_THROAT and p_top >= t.prescribe_threshold:
            return self._decide(Recommendation.PRESCRIBE_ANTIBIOTICS, "strep_high")

        if t.test_low <= p_strep < t.test_high:
            return self._decide(Recommendation.TEST_FOR_STREP, "strep_band")

        if p_top < t.low_confidence_floor and p_top - probabilities[runner_up] <= t.alternatives_margin:
            return self._decide(Recommendation.CONSIDER_ALTERNATIVES, "low_confidence")

        for condition in Condition:
            threshold = t.referral_thresholds.get(condition)
            if threshold is not None and probabilities[condition] > threshold:
                return self._decide(Recommendation.REFER_SPECIALIST, f"referral:{condition.value}")

        return self._decide(Recommendation.WATCHFUL, "default")

    @staticmethod
    def _decide(recommendation: Recommendation, rule: str) -> Recommendation:
        logger.debug(f"Recommendation {recommendation.value} (rule {rule})")
        return recommendation
