"""
Visualization modules for methylation analysis.
"""

from .plots import PlotGenerator
from .style import setup_publication_style

__all__ = ["PlotGenerator", "setup_publication_style"]
