"""
Machine learning models for tumor vs normal-adjacent classification.
"""

from .classifiers import (
    ClassifierEvaluation,
    ClassifierEvaluator,
    ClassifierFactory,
    ClassifierModel,
    PenalizedClassifier,
    RegularizationPath,
    cross_reference,
)

__all__ = [
    "ClassifierEvaluation",
    "ClassifierEvaluator",
    "ClassifierFactory",
    "ClassifierModel",
    "PenalizedClassifier",
    "RegularizationPath",
    "cross_reference",
]
