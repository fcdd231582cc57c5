"""
Statistical analysis stages: descriptive summary, univariate association
testing and principal component analysis.
"""

from .descriptive import DescriptiveSummarizer, DescriptiveSummary
from .pca import MethylationPCA, PCAResult, find_elbow
from .univariate import (
    AssociationResult,
    PermutationDiagnostic,
    UnivariateAssociationEngine,
    genomic_control,
    welch_t_test,
)

__all__ = [
    "DescriptiveSummarizer",
    "DescriptiveSummary",
    "MethylationPCA",
    "PCAResult",
    "find_elbow",
    "AssociationResult",
    "PermutationDiagnostic",
    "UnivariateAssociationEngine",
    "genomic_control",
    "welch_t_test",
]
