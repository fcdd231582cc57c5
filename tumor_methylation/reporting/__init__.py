"""
Result export for the external report renderer.
"""

from .writer import ResultWriter

__all__ = ["ResultWriter"]
