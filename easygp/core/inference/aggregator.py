"""
Evidence Aggregator

Combines prior log-odds, context shifts and feature evidence into one
log-odds value per condition.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from easygp.core.observation.base import Condition, Feature
from easygp.core.observation.encoder import EvidenceSet
from easygp.core.inference.likelihood import LikelihoodModel

LogOddsVector = Dict[Condition, float]


@dataclass
class Aggregation:
    """Per-condition log-odds plus the terms that produced them."""
    log_odds: LogOddsVector
    contributions: Dict[Condition, List[Tuple[Feature, float]]] = field(default_factory=dict)
    context: Dict[Condition, float] = field(default_factory=dict)

    def contributions_for(self, condition: Condition) -> List[Tuple[Feature, float]]:
        return self.contributions.get(condition, [])


def aggregate_with_contributions(
    evidence: EvidenceSet,
    model: LikelihoodModel,
    age: Optional[float] = None,
    contact_history: bool = False,
) -> Aggregation:
    """
    Sum prior + context + feature contributions for every condition.

    Terms are added in a fixed order (prior, context, then features in
    ``Feature`` declaration order) so results are bit-for-bit reproducible.
    Context shifts are skipped when ``age`` is None.
    """
    log_odds: LogOddsVector = {}
    contributions: Dict[Condition, List[Tuple[Feature, float]]] = {}
    context: Dict[Condition, float] = {}

    for condition in Condition:
        total = model.prior_log_odds[condition]

        shift = model.context_shift(condition, age, contact_history) if age is not None else 0.0
        context[condition] = shift
        total += shift

        terms = []
        for feature in Feature:
            if feature not in evidence:
                continue
            value = model.contribution(feature, condition, evidence[feature])
            terms.append((feature, value))
            total += value

        log_odds[condition] = total
        contributions[condition] = terms

    return Aggregation(log_odds=log_odds, contributions=contributions, context=context)


def aggregate(evidence: EvidenceSet, model: LikelihoodModel) -> LogOddsVector:
    """Prior plus feature evidence per condition (no age/contact context)."""
    return aggregate_with_contributions(evidence, model).log_odds


def top_condition(scores: Mapping[Condition, float]) -> Condition:
    """Highest-scoring condition; ties go to the earliest declared condition."""
    best = None
    for condition in Condition:
        if best is None or scores[condition] > scores[best]:
            best = condition
    return best


def rank_conditions(scores: Mapping[Condition, float]) -> List[Condition]:
    """Conditions sorted by score descending, ties by declaration order."""
    return sorted(Condition, key=lambda c: (-scores[c], c.ordinal))
