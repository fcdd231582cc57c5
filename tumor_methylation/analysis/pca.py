"""
Principal component analysis of complete-case methylation profiles.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler

from ..data_loaders import MethylationDataset
from ..exceptions import InsufficientSamples, MissingDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PCAResult:
    """
    Fitted principal components.

    Attributes:
        scores: Samples x components
        loadings: Sites x components (unit-length component directions)
        sdev: Standard deviation of each component's scores
        explained_variance_ratio: Share of total variance per component
        elbow: 1-based index of the scree elbow
        scaled: Whether sites were scaled to unit variance
    """

    scores: pd.DataFrame
    loadings: pd.DataFrame
    sdev: pd.Series
    explained_variance_ratio: pd.Series
    elbow: int
    scaled: bool

    @property
    def n_components(self) -> int:
        return self.scores.shape[1]

    def top_loading_sites(self, component: str = "PC1", n: int = 10) -> pd.Series:
        """Sites with the largest absolute loading on ``component``."""
        loading = self.loadings[component]
        order = loading.abs().sort_values(ascending=False).index[:n]
        return loading.loc[order]

    def group_separation(self, labels: pd.Series) -> pd.DataFrame:
        """Mean component score per label (rows) for every component."""
        return self.scores.groupby(labels.loc[self.scores.index]).mean()


def find_elbow(explained: np.ndarray) -> int:
    """
    Locate the elbow of a scree curve.

    The elbow is the point farthest from the straight line joining the
    first and last points of the curve.

    Args:
        explained: Non-increasing explained-variance values

    Returns:
        1-based component index
    """
    n = len(explained)
    if n < 3:
        return 1

    x = np.arange(n, dtype=float)
    y = np.asarray(explained, dtype=float)
    start = np.array([x[0], y[0]])
    end = np.array([x[-1], y[-1]])
    chord = np.linalg.norm(end - start)
    if chord == 0:
        return 1
    direction = (end - start) / chord

    points = np.column_stack([x, y]) - start
    projection = np.outer(points @ direction, direction)
    distance = np.linalg.norm(points - projection, axis=1)
    return int(np.argmax(distance)) + 1


class MethylationPCA:
    """
    Standardized SVD-based PCA on samples x sites.

    Sites share the [0, 1] scale but not their variance; scaling to unit
    variance keeps a few highly variable sites from dominating. With
    ``scale=False`` sites are only centered.
    """

    def __init__(
        self,
        n_components: Optional[int] = None,
        scale: bool = True,
        random_state: int = 42
    ):
        """
        Args:
            n_components: Components to keep (default: all)
            scale: Scale each site to unit variance before the SVD
            random_state: Seed passed to the decomposition
        """
        self.n_components = n_components
        self.scale = scale
        self.random_state = random_state

    def fit(self, dataset: MethylationDataset) -> PCAResult:
        """Run PCA on the complete-case view of ``dataset``."""
        return self.fit_matrix(dataset.sample_matrix())

    def fit_matrix(self, X: pd.DataFrame) -> PCAResult:
        """
        Run PCA on a samples x sites matrix.

        Args:
            X: Samples as rows, sites as columns, no missing values

        Returns:
            PCAResult with components ordered by explained variance
        """
        if X.isna().to_numpy().any():
            raise MissingDataError("PCA input contains missing values")

        n_samples, n_sites = X.shape
        if n_samples < 2 or n_sites < 1:
            raise InsufficientSamples(
                f"PCA needs at least 2 samples and 1 site, got {X.shape}"
            )

        max_components = min(n_samples, n_sites)
        n_components = self.n_components or max_components
        n_components = min(n_components, max_components)

        logger.info(
            f"Running PCA on {n_samples} samples x {n_sites} sites "
            f"({n_components} components, scale={self.scale})"
        )

        scaler = StandardScaler(with_std=self.scale)
        X_scaled = scaler.fit_transform(X)

        pca = PCA(
            n_components=n_components,
            svd_solver="full",
            random_state=self.random_state
        )
        coords = pca.fit_transform(X_scaled)

        names = [f"PC{i + 1}" for i in range(n_components)]
        scores = pd.DataFrame(coords, index=X.index, columns=names)
        loadings = pd.DataFrame(pca.components_.T, index=X.columns, columns=names)
        sdev = pd.Series(np.sqrt(pca.explained_variance_), index=names, name="sdev")
        ratio = pd.Series(
            pca.explained_variance_ratio_, index=names, name="explained_variance_ratio"
        )
        elbow = find_elbow(pca.explained_variance_ratio_)

        logger.info(
            f"  PC1 explains {ratio.iloc[0]:.1%}; "
            f"first {min(5, n_components)} components explain "
            f"{ratio.iloc[:5].sum():.1%}; elbow at PC{elbow}"
        )

        return PCAResult(
            scores=scores,
            loadings=loadings,
            sdev=sdev,
            explained_variance_ratio=ratio,
            elbow=elbow,
            scaled=self.scale,
        )
