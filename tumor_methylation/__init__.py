"""
Tumor vs Normal-Adjacent DNA Methylation Analysis

A modular pipeline for comparing CpG methylation between primary tumor
and normal-adjacent tissue: descriptive statistics, per-site association
testing with genomic control, PCA and elastic-net classification.
"""

__version__ = "1.0.0"
