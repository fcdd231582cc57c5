"""
Diagnostic figures for the tumor vs normal-adjacent analysis.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from ..analysis import AssociationResult, PCAResult
from ..data_loaders import MethylationDataset
from .style import get_color_palette, setup_publication_style

logger = logging.getLogger(__name__)


class PlotGenerator:
    """
    Generate publication-ready diagnostic plots.
    """

    def __init__(self, config: Optional[Any] = None):
        """
        Initialize plot generator.

        Args:
            config: Configuration object with visualization parameters
        """
        self.config = config
        self.colors = get_color_palette(config)

        self.fig_sizes = {
            "single": (6, 5),
            "wide": (8, 6),
            "tall": (6, 8)
        }

        viz = getattr(config, "viz_params", None) or {}
        self.fig_sizes.update(viz.get("figure_sizes", {}))
        self.dpi = viz.get("dpi", 300)

        setup_publication_style(config)

    def _save(self, fig: plt.Figure, output_path: Path) -> None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, format=output_path.suffix.lstrip(".") or "pdf", dpi=self.dpi)
        plt.close(fig)

    def plot_density(
        self,
        dataset: MethylationDataset,
        output_path: Union[str, Path],
        title: Optional[str] = None
    ) -> None:
        """
        Density of all beta values per tissue group.

        Args:
            dataset: Aligned methylation data
            output_path: Path to save figure
            title: Optional custom title
        """
        output_path = Path(output_path)
        logger.info(f"Generating density plot -> {output_path}")

        fig, ax = plt.subplots(figsize=self.fig_sizes["wide"])

        for label, name in sorted(dataset.group_names.items()):
            values = dataset.beta.loc[:, dataset.group_mask(label)].to_numpy().ravel()
            values = values[~np.isnan(values)]
            if values.size == 0:
                continue
            sns.kdeplot(
                values,
                color=self.colors.get(name, "#333333"),
                linewidth=1.5,
                ax=ax,
                label=f"{name} (n={int(dataset.group_mask(label).sum())})",
                clip=(0, 1)
            )

        ax.set_xlabel("Methylation Level (Beta)")
        ax.set_ylabel("Density")
        ax.set_xlim(0, 1)
        ax.set_title(title or "Methylation Distribution by Tissue Type")
        ax.legend(loc="best", frameon=True, fancybox=False, edgecolor="black")

        self._save(fig, output_path)
        logger.info("  Density plot saved")

    def plot_qq(
        self,
        result: AssociationResult,
        output_path: Union[str, Path],
        title: Optional[str] = None
    ) -> None:
        """
        QQ plot of raw and genomic-control p-values against the uniform null.

        Args:
            result: Univariate association results
            output_path: Path to save figure
            title: Optional custom title
        """
        output_path = Path(output_path)
        logger.info(f"Generating QQ plot -> {output_path}")

        n = result.n_tests
        expected = -np.log10((np.arange(1, n + 1) - 0.5) / n)

        fig, ax = plt.subplots(figsize=self.fig_sizes["single"])

        for column, color, label in [
            ("p_value", self.colors["permuted"], "Raw"),
            ("p_value_gc", self.colors["tumor"], f"Genomic control (lambda = {result.lambda_gc:.2f})"),
        ]:
            observed = -np.log10(np.clip(np.sort(result.table[column].to_numpy()), 1e-300, 1))
            ax.scatter(expected, observed, s=8, alpha=0.7, color=color, label=label)

        limit = expected.max()
        ax.plot([0, limit], [0, limit], color="gray", lw=1.5, linestyle="--", alpha=0.7)

        ax.set_xlabel("Expected -log10(p)")
        ax.set_ylabel("Observed -log10(p)")
        ax.set_title(title or "Welch t-test p-values")
        ax.legend(loc="upper left", frameon=True, fancybox=False, edgecolor="black")
        ax.grid(True, alpha=0.3, linestyle="--")

        self._save(fig, output_path)
        logger.info("  QQ plot saved")

    def plot_pca(
        self,
        result: PCAResult,
        groups: pd.Series,
        output_path: Union[str, Path],
        components: Tuple[str, str] = ("PC1", "PC2"),
        title: Optional[str] = None
    ) -> None:
        """
        Generate PCA score scatter plot.

        Args:
            result: Fitted PCA
            groups: Group name per sample (indexed by sample id)
            output_path: Path to save figure
            components: Pair of components to plot
            title: Optional custom title
        """
        output_path = Path(output_path)
        logger.info(f"Generating PCA plot -> {output_path}")

        x_pc, y_pc = components
        scores = result.scores.copy()
        scores["group"] = groups.loc[scores.index].to_numpy()
        ratio = result.explained_variance_ratio

        fig, ax = plt.subplots(figsize=self.fig_sizes["single"])

        for group, subset in scores.groupby("group"):
            ax.scatter(
                subset[x_pc],
                subset[y_pc],
                c=self.colors.get(group, "#333333"),
                s=40,
                alpha=0.7,
                label=f"{group} (n={len(subset)})",
                edgecolors="white",
                linewidths=0.5,
            )

        ax.set_xlabel(f"{x_pc} ({ratio[x_pc] * 100:.1f}%)")
        ax.set_ylabel(f"{y_pc} ({ratio[y_pc] * 100:.1f}%)")
        ax.set_title(title or "PCA of Complete-Case Sites")
        ax.legend(loc="best", frameon=True, fancybox=False, edgecolor="black")
        ax.grid(True, alpha=0.3, linestyle="--")

        self._save(fig, output_path)
        logger.info("  PCA plot saved")

    def plot_scree(
        self,
        result: PCAResult,
        output_path: Union[str, Path],
        max_components: int = 20,
        title: Optional[str] = None
    ) -> None:
        """Explained variance per component with the elbow highlighted."""
        output_path = Path(output_path)
        logger.info(f"Generating scree plot -> {output_path}")

        ratio = result.explained_variance_ratio.iloc[:max_components] * 100
        x = np.arange(1, len(ratio) + 1)

        fig, ax = plt.subplots(figsize=self.fig_sizes["single"])
        ax.plot(x, ratio.to_numpy(), marker="o", color=self.colors["normal-adjacent"], lw=1.5)
        if result.elbow <= len(ratio):
            ax.axvline(result.elbow, color=self.colors["highlight"], linestyle="--",
                       lw=1.5, label=f"Elbow = PC{result.elbow}")
            ax.legend(loc="upper right", frameon=True, fancybox=False, edgecolor="black")

        ax.set_xlabel("Component")
        ax.set_ylabel("Explained Variance (%)")
        ax.set_xticks(x)
        ax.set_title(title or "Scree Plot")
        ax.grid(True, alpha=0.3, linestyle="--", axis="y")

        self._save(fig, output_path)
        logger.info("  Scree plot saved")

    def plot_roc_curve(
        self,
        roc_data: Tuple[np.ndarray, np.ndarray, float],
        output_path: Union[str, Path],
        title: Optional[str] = None
    ) -> None:
        """
        ROC curve of the held-out evaluation.

        Args:
            roc_data: Tuple of (fpr, tpr, auc)
            output_path: Path to save figure
            title: Optional custom title
        """
        output_path = Path(output_path)
        logger.info(f"Generating ROC curve -> {output_path}")

        fpr, tpr, auc = roc_data
        fig, ax = plt.subplots(figsize=self.fig_sizes["single"])

        ax.plot(fpr, tpr, lw=2, color=self.colors["tumor"],
                label=f"Elastic net (AUC = {auc:.3f})")
        ax.plot([0, 1], [0, 1], color="gray", lw=1.5, linestyle="--", alpha=0.7)

        ax.set_xlim([0.0, 1.0])
        ax.set_ylim([0.0, 1.05])
        ax.set_xlabel("False Positive Rate")
        ax.set_ylabel("True Positive Rate")
        ax.set_title(title or "ROC Curve: Held-Out Samples")
        ax.legend(loc="lower right", frameon=True, fancybox=False, edgecolor="black")
        ax.grid(True, alpha=0.3, linestyle="--")

        self._save(fig, output_path)
        logger.info("  ROC curve saved")
