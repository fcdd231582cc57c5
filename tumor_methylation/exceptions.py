"""
Error types raised by the analysis stages.

Every error is fatal to a run: stages raise, the pipeline propagates,
and only the command-line entry point turns them into an exit status.
"""


class AnalysisError(Exception):
    """Base class for all analysis errors."""


class SchemaMismatch(AnalysisError):
    """Input tables disagree on samples, identifiers or vocabulary."""


class MissingDataError(AnalysisError):
    """An operation needs complete cases but the input still has gaps."""


class DegenerateFit(AnalysisError):
    """A statistic or model is undefined or failed to converge."""


class InsufficientSamples(AnalysisError):
    """Too few samples for the requested split, folds or test."""
