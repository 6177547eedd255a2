"""
Inference Module

Scores a patient observation against the likelihood model and produces a
differential diagnosis with a recommendation and explanation.
"""
from .likelihood import LikelihoodModel, get_likelihood_model, reset_likelihood_model
from .aggregator import aggregate, aggregate_with_contributions, Aggregation
from .normalizer import normalize
from .recommendation import PolicyThresholds, RecommendationPolicy
from .explanation import ExplanationBuilder, DiagnosisExplanation
from .engine import DiagnosisEngine, DiagnosisResult, evaluate, get_default_engine

__all__ = [
    "LikelihoodModel",
    "get_likelihood_model",
    "reset_likelihood_model",
    "aggregate",
    "aggregate_with_contributions",
    "Aggregation",
    "normalize",
    "PolicyThresholds",
    "RecommendationPolicy",
    "ExplanationBuilder",
    "DiagnosisExplanation",
    "DiagnosisEngine",
    "DiagnosisResult",
    "evaluate",
    "get_default_engine",
]
