#!/usr/bin/env python3
"""
Tumor vs Normal-Adjacent DNA Methylation Analysis

Main entry point for the full analysis: descriptive statistics, Welch
t-tests with genomic control and Bonferroni correction, PCA and an
elastic-net logistic regression.

Usage:
    python main.py                          # Run full analysis
    python main.py --skip-plots             # Tables only
    python main.py --config configs/analysis.yaml
    python main.py --help                   # All options
"""

import sys

from tumor_methylation.cli import main

if __name__ == "__main__":
    sys.exit(main())
