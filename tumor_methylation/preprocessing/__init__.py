"""
Preprocessing modules for methylation analysis.
"""

from .transformers import DataTransformer, TrainTestSplit

__all__ = ["DataTransformer", "TrainTestSplit"]
