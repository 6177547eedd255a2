"""
Probability Normalizer

Converts a log-odds vector into a distribution over mutually exclusive,
exhaustive conditions using a max-shifted softmax.
"""
from typing import Dict, Mapping
import numpy as np

from easygp.core.observation.base import Condition

ProbabilityDistribution = Dict[Condition, float]

SUM_TOLERANCE = 1e-6


def softmax(scores: np.ndarray) -> np.ndarray:
    """Numerically stable softmax over a 1-D array."""
    shifted = scores - np.max(scores)
    exp = np.exp(shifted)
    return exp / np.sum(exp)


def normalize(log_odds: Mapping[Condition, float]) -> ProbabilityDistribution:
    """
    Map log-odds to probabilities that sum to 1.

    Conditions are treated as mutually exclusive and exhaustive.
    """
    conditions = list(Condition)
    scores = np.array([log_odds[c] for c in conditions], dtype=np.float64)
    if not np.all(np.isfinite(scores)):
        raise ValueError("log-odds must be finite")

    probs = softmax(scores)
    return {c: float(p) for c, p in zip(conditions, probs)}
