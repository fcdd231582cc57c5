"""
Data loading modules for methylation analysis.

This module provides loaders that:
- Read methylation beta-value matrices (CpG sites x samples)
- Read clinical sample annotations with a fixed tissue vocabulary
- Align both tables into a single immutable dataset
"""

from .base import DataLoader
from .clinical import ClinicalLoader
from .dataset import MethylationDataset
from .methylation import MethylationDataLoader

__all__ = ["DataLoader", "ClinicalLoader", "MethylationDataset", "MethylationDataLoader"]
