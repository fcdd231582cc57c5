"""
Descriptive statistics of the methylation matrix prior to modeling.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from ..data_loaders import MethylationDataset

logger = logging.getLogger(__name__)

# Beta values below/above these bounds count towards the low/high mode
LOW_MODE = 0.2
HIGH_MODE = 0.8


@dataclass(frozen=True)
class DescriptiveSummary:
    """
    Characterization of the input matrix.

    Attributes:
        group_stats: Per-site mean, variance and observed count per group,
            plus delta_beta (tumor mean - normal-adjacent mean) and n_missing
        site_correlation: Pearson correlation matrix over a site subset
        mean_abs_correlation: Mean absolute off-diagonal correlation
        value_histogram: Counts of all observed beta values in equal bins
        value_quantiles: Quantiles of all observed beta values
        low_fraction: Fraction of values below LOW_MODE
        high_fraction: Fraction of values above HIGH_MODE
    """

    group_stats: pd.DataFrame
    site_correlation: pd.DataFrame
    mean_abs_correlation: float
    value_histogram: pd.DataFrame
    value_quantiles: pd.Series
    low_fraction: float
    high_fraction: float


class DescriptiveSummarizer:
    """
    Per-group site statistics, cross-site correlation and value distribution.

    No inference happens here: bimodality of beta values, higher variance
    in tumor tissue and near-zero correlation between randomly drawn sites
    are checked by eye before modeling.
    """

    def __init__(
        self,
        correlation_max_sites: int = 500,
        n_bins: int = 50,
        random_state: int = 42
    ):
        """
        Args:
            correlation_max_sites: Upper bound on sites in the correlation matrix
            n_bins: Histogram bins over [0, 1]
            random_state: Seed for the correlation site subset
        """
        self.correlation_max_sites = correlation_max_sites
        self.n_bins = n_bins
        self.random_state = random_state

    def summarize(self, dataset: MethylationDataset) -> DescriptiveSummary:
        """Run every descriptive step on ``dataset``."""
        logger.info("Computing descriptive statistics...")

        group_stats = self.group_statistics(dataset)
        corr = self.site_correlation(dataset)
        mean_abs_corr = self.mean_abs_offdiagonal(corr)
        hist, quantiles, low, high = self.value_distribution(dataset.beta)

        logger.info(
            f"  Mean |r| between {corr.shape[0]} sites: {mean_abs_corr:.3f}"
        )
        logger.info(
            f"  Value distribution: {low:.1%} below {LOW_MODE}, "
            f"{high:.1%} above {HIGH_MODE}"
        )

        return DescriptiveSummary(
            group_stats=group_stats,
            site_correlation=corr,
            mean_abs_correlation=mean_abs_corr,
            value_histogram=hist,
            value_quantiles=quantiles,
            low_fraction=low,
            high_fraction=high,
        )

    def group_statistics(self, dataset: MethylationDataset) -> pd.DataFrame:
        """
        Per-site mean and variance stratified by tissue group.

        Missing values are skipped; variance uses ddof=1.

        Returns:
            DataFrame indexed by site id with ``mean_<group>``,
            ``var_<group>`` and ``n_<group>`` columns
        """
        beta = dataset.beta
        stats = {}
        for label, name in sorted(dataset.group_names.items()):
            group = beta.loc[:, dataset.group_mask(label)]
            stats[f"mean_{name}"] = group.mean(axis=1)
            stats[f"var_{name}"] = group.var(axis=1, ddof=1)
            stats[f"n_{name}"] = group.notna().sum(axis=1)

        df = pd.DataFrame(stats, index=beta.index)

        tumor = dataset.group_names.get(1)
        normal = dataset.group_names.get(0)
        if tumor is not None and normal is not None:
            df["delta_beta"] = df[f"mean_{tumor}"] - df[f"mean_{normal}"]
        df["n_missing"] = beta.isna().sum(axis=1)

        logger.debug(f"  Group statistics for {len(df)} sites")
        return df

    def site_correlation(
        self,
        dataset: MethylationDataset,
        max_sites: Optional[int] = None
    ) -> pd.DataFrame:
        """
        Pearson correlation matrix across complete-case sites.

        At most ``max_sites`` sites are used, drawn without replacement
        with the summarizer's seed.
        """
        if max_sites is None:
            max_sites = self.correlation_max_sites

        complete = dataset.complete_case_view()
        if complete.shape[0] > max_sites:
            rng = np.random.default_rng(self.random_state)
            picked = np.sort(rng.choice(complete.shape[0], size=max_sites, replace=False))
            complete = complete.iloc[picked]
            logger.debug(f"  Correlation restricted to {max_sites} random sites")

        return complete.T.corr(method="pearson")

    @staticmethod
    def mean_abs_offdiagonal(corr: pd.DataFrame) -> float:
        """Mean absolute value of the off-diagonal entries."""
        values = corr.to_numpy()
        n = values.shape[0]
        if n < 2:
            return float("nan")
        mask = ~np.eye(n, dtype=bool)
        return float(np.nanmean(np.abs(values[mask])))

    def value_distribution(self, beta: pd.DataFrame):
        """
        Distribution of every observed beta value.

        Returns:
            Tuple of (histogram DataFrame with bin_left/bin_right/count,
            quantile Series, low-mode fraction, high-mode fraction)
        """
        values = beta.to_numpy(dtype=float).ravel()
        values = values[~np.isnan(values)]

        counts, edges = np.histogram(values, bins=self.n_bins, range=(0.0, 1.0))
        hist = pd.DataFrame({
            "bin_left": edges[:-1],
            "bin_right": edges[1:],
            "count": counts,
        })

        probs = [0.0, 0.05, 0.25, 0.5, 0.75, 0.95, 1.0]
        if values.size:
            quantiles = pd.Series(np.quantile(values, probs), index=probs, name="beta")
            low = float(np.mean(values < LOW_MODE))
            high = float(np.mean(values > HIGH_MODE))
        else:
            quantiles = pd.Series(np.nan, index=probs, name="beta")
            low = high = float("nan")

        return hist, quantiles, low, high
