"""
Shared figure style and tissue-group colors.
"""

from typing import Any, Dict, Optional

import seaborn as sns

# Group colors; "permuted" and "highlight" mark null and selected elements
DEFAULT_COLORS = {
    "tumor": "#e74c3c",
    "normal-adjacent": "#3498db",
    "permuted": "#95a5a6",
    "highlight": "#2ecc71",
}

DEFAULT_FONT_SIZES = {"title": 12, "label": 11, "tick": 10, "legend": 9}


def _viz_params(config: Optional[Any]) -> Dict[str, Any]:
    if config is None:
        return {}
    return getattr(config, "viz_params", {}) or {}


def setup_publication_style(config: Optional[Any] = None) -> None:
    """
    Apply the seaborn "ticks" theme with print-ready fonts and resolution.

    Fonts are embedded as TrueType so PDFs stay editable.

    Args:
        config: Optional configuration object with viz_params
    """
    viz = _viz_params(config)
    fonts = {**DEFAULT_FONT_SIZES, **viz.get("font_sizes", {})}
    dpi = viz.get("dpi", 300)

    sns.set_theme(
        context="paper",
        style="ticks",
        font="sans-serif",
        rc={
            "font.sans-serif": ["Arial", "Helvetica", "DejaVu Sans"],
            "font.size": fonts["tick"],
            "axes.titlesize": fonts["title"],
            "axes.labelsize": fonts["label"],
            "xtick.labelsize": fonts["tick"],
            "ytick.labelsize": fonts["tick"],
            "legend.fontsize": fonts["legend"],
            "figure.dpi": dpi,
            "savefig.dpi": dpi,
            "savefig.bbox": "tight",
            "axes.spines.top": False,
            "axes.spines.right": False,
            "pdf.fonttype": 42,
            "ps.fonttype": 42,
        },
    )


def get_color_palette(config: Optional[Any] = None) -> Dict[str, str]:
    """Group name -> hex color, with config overrides applied."""
    return {**DEFAULT_COLORS, **_viz_params(config).get("colors", {})}
