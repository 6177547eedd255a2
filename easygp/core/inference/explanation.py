"""
Explanation Builder Module

Generates the short recommendation message and the feature-level rationale
for a diagnosis result.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Mapping, Optional, Tuple
from enum import Enum

from easygp.core.observation.base import Condition, Feature, Recommendation
from easygp.core.observation.encoder import EvidenceSet, EvidenceValue, EvidenceKind
from easygp.core.inference.aggregator import top_condition
from easygp.core.inference.likelihood import LikelihoodModel
from easygp.utils import get_logger

logger = get_logger(__name__)

DEFAULT_TOP_K = 3


class ExplanationType(str, Enum):
    """Types of explanations."""
    SUMMARY = "summary"     # One-line rationale
    CLINICAL = "clinical"   # Line-per-finding format


def feature_label(feature: Feature) -> str:
    """Lower-case human label used in rendered text."""
    if feature is Feature.PANDAS:
        return "PANDAS-type symptoms"
    return feature.value.replace("_", " ")


@dataclass(frozen=True)
class Finding:
    """One observed feature and its contribution to the leading condition."""
    feature: Feature
    evidence: EvidenceValue
    contribution: float

    @property
    def direction(self) -> str:
        return "supports" if self.contribution > 0 else "against"

    def describe(self) -> str:
        if self.evidence.kind == EvidenceKind.SCALAR:
            observed = f"{feature_label(self.feature)} {self.evidence.raw_value:g}"
        else:
            observed = f"{feature_label(self.feature)} {self.evidence.kind.value}"
        return f"{observed} {self.direction} ({self.contribution:+.2f})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "feature": self.feature.value,
            "evidence": self.evidence.to_dict(),
            "contribution": round(self.contribution, 4),
            "direction": self.direction,
        }


@dataclass
class DiagnosisExplanation:
    """Structured explanation for a diagnosis result."""
    condition: Condition
    log_odds: float
    recommendation: Recommendation
    message: str
    findings: List[Finding] = field(default_factory=list)

    def to_text(self, format_type: ExplanationType = ExplanationType.SUMMARY) -> str:
        if format_type == ExplanationType.CLINICAL:
            return self._format_clinical()
        return self._format_summary()

    def _format_summary(self) -> str:
        head = f"Leading condition: {self.condition.display_name} (log-odds {self.log_odds:.2f})."
        if not self.findings:
            return (
                f"{head} No observed finding shifts the odds for this condition; "
                "the ranking reflects baseline prevalence and patient context."
            )
        return f"{head} Key findings: " + "; ".join(f.describe() for f in self.findings) + "."

    def _format_clinical(self) -> str:
        lines = [
            f"LEADING CONDITION: {self.condition.display_name}",
            f"LOG-ODDS: {self.log_odds:.3f}",
            f"RECOMMENDATION: {self.recommendation.value}",
            "",
            "FINDINGS:",
        ]
        if self.findings:
            for finding in self.findings:
                lines.append(f"  - {finding.describe()}")
        else:
            lines.append("  - none informative")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "condition": self.condition.value,
            "log_odds": round(self.log_odds, 4),
            "recommendation": self.recommendation.value,
            "message": self.message,
            "findings": [f.to_dict() for f in self.findings],
        }


class ExplanationBuilder:
    """
    Ranks observed features by their contribution to the leading condition
    and renders the message and rationale text.
    """

    def __init__(self, model: LikelihoodModel, top_k: int = DEFAULT_TOP_K):
        if top_k <= 0:
            raise ValueError("top_k must be positive")
        self._model = model
        self._top_k = top_k
        self._message_templates = self._load_message_templates()

    def _load_message_templates(self) -> Dict[Recommendation, str]:
        return {
            Recommendation.PRESCRIBE_ANTIBIOTICS: (
                "Prescribe antibiotics: the findings strongly favour {condition}."
            ),
            Recommendation.TEST_FOR_STREP: (
                "Test for strep: confirm with a rapid antigen test or throat culture before treating "
                "({condition} leads)."
            ),
            Recommendation.CONSIDER_ALTERNATIVES: (
                "Consider alternatives: no single condition stands out ({condition} leads narrowly)."
            ),
            Recommendation.REFER_SPECIALIST: (
                "Refer to a specialist: the picture warrants assessment beyond routine care "
                "({condition} leads)."
            ),
            Recommendation.WATCHFUL: (
                "Watchful waiting: {condition} is most likely; review if symptoms worsen or persist."
            ),
        }

    def rank_findings(
        self,
        evidence: EvidenceSet,
        condition: Condition,
        top_k: Optional[int] = None,
    ) -> List[Finding]:
        """
        Top-k observed features by absolute contribution to ``condition``.

        Ties are broken by Feature declaration order. Features that contribute
        nothing are uninformative and left out.
        """
        k = self._top_k if top_k is None else top_k
        if k <= 0:
            raise ValueError("top_k must be positive")

        findings = []
        for feature, value in evidence.items_ordered():
            contribution = self._model.contribution(feature, condition, value)
            if contribution != 0.0:
                findings.append(Finding(feature, value, contribution))

        findings.sort(key=lambda f: (-abs(f.contribution), f.feature.ordinal))
        return findings[:k]

    def build(
        self,
        evidence: EvidenceSet,
        log_odds: Mapping[Condition, float],
        recommendation: Recommendation,
    ) -> DiagnosisExplanation:
        condition = top_condition(log_odds)
        message = self._message_templates[recommendation].format(condition=condition.display_name)
        return DiagnosisExplanation(
            condition=condition,
            log_odds=log_odds[condition],
            recommendation=recommendation,
            message=message,
            findings=self.rank_findings(evidence, condition),
        )

    def explain(
        self,
        evidence: EvidenceSet,
        log_odds: Mapping[Condition, float],
        recommendation: Recommendation,
    ) -> Tuple[str, str]:
        """Return ``(message, explanation)`` for a scored observation."""
        explanation = self.build(evidence, log_odds, recommendation)
        return explanation.message, explanation.to_text()
