"""
Per-site association between methylation and tissue type.

Each CpG site is tested independently with Welch's t-test (tumor vs
normal-adjacent). Test statistics are corrected for genome-wide inflation
with genomic control and then for family-wise error with Bonferroni.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.multitest import multipletests

from ..data_loaders import MethylationDataset
from ..exceptions import DegenerateFit, InsufficientSamples

logger = logging.getLogger(__name__)

# Median of the chi-square distribution with one degree of freedom (~0.4549)
CHI2_1DF_MEDIAN = stats.chi2.ppf(0.5, df=1)


@dataclass(frozen=True)
class AssociationResult:
    """
    Univariate test results for every site.

    Attributes:
        table: One row per site (index ``site_id``) sorted ascending by raw
            p-value, with t_statistic, df, mean_tumor, mean_normal,
            delta_beta, p_value, p_value_gc, p_value_bonferroni, significant
        lambda_gc: Inflation factor applied to the statistics
        lambda_observed: Inflation factor before flooring at one
        alpha: Family-wise significance level
        n_tests: Number of sites tested
    """

    table: pd.DataFrame
    lambda_gc: float
    lambda_observed: float
    alpha: float
    n_tests: int

    @property
    def significant_sites(self) -> List[str]:
        return self.table.index[self.table["significant"]].tolist()

    @property
    def n_significant(self) -> int:
        return int(self.table["significant"].sum())


@dataclass(frozen=True)
class PermutationDiagnostic:
    """
    Observed vs label-permuted test statistics.

    Attributes:
        quantiles: |t| quantiles, one row for the observed labels and one
            per permutation
        permuted_lambdas: Inflation factor of each permutation
        null_max_abs_t: Largest |t| seen under any permutation
        n_sites_above_null_max: Observed sites whose |t| exceeds it
    """

    quantiles: pd.DataFrame
    permuted_lambdas: pd.Series
    null_max_abs_t: float
    n_sites_above_null_max: int


def welch_t_test(
    values: np.ndarray,
    in_group: np.ndarray,
    strict: bool = True
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Row-wise two-sided Welch t-test, ignoring missing values.

    Args:
        values: Sites x samples array (NaN allowed)
        in_group: Boolean mask over samples; True marks the first group
        strict: Raise on undefined tests instead of returning NaN

    Returns:
        Tuple of (t statistics, Welch-Satterthwaite degrees of freedom,
        p-values), one entry per row
    """
    a = values[:, in_group]
    b = values[:, ~in_group]

    n_a = np.sum(~np.isnan(a), axis=1)
    n_b = np.sum(~np.isnan(b), axis=1)

    too_small = (n_a < 2) | (n_b < 2)
    if strict and np.any(too_small):
        raise InsufficientSamples(
            f"{int(too_small.sum())} sites have fewer than two observed "
            "values in a group"
        )

    # Sites with an empty or single-observation group yield NaN here
    with warnings.catch_warnings(), np.errstate(invalid="ignore", divide="ignore"):
        warnings.simplefilter("ignore", RuntimeWarning)
        mean_a = np.nanmean(a, axis=1)
        mean_b = np.nanmean(b, axis=1)
        se2_a = np.nanvar(a, axis=1, ddof=1) / n_a
        se2_b = np.nanvar(b, axis=1, ddof=1) / n_b
        se2 = se2_a + se2_b

        zero_var = (se2 == 0) & ~too_small
        if strict and np.any(zero_var):
            raise DegenerateFit(
                f"{int(zero_var.sum())} sites have zero variance in both groups"
            )

        t = (mean_a - mean_b) / np.sqrt(se2)
        dof = se2 ** 2 / (se2_a ** 2 / (n_a - 1) + se2_b ** 2 / (n_b - 1))

    undefined = too_small | zero_var
    t[undefined] = np.nan
    dof[undefined] = np.nan

    p = 2 * stats.t.sf(np.abs(t), dof)
    return t, dof, p


def genomic_control(
    p_values: np.ndarray,
    floor_at_one: bool = True
) -> Tuple[np.ndarray, float, float]:
    """
    Rescale p-values by the genome-wide inflation factor.

    Each p-value is mapped to a 1-df chi-square statistic; lambda is the
    median statistic over its theoretical median. Statistics are divided
    by lambda and mapped back, so the ordering of p-values is preserved.

    Args:
        p_values: Raw p-values
        floor_at_one: Never deflate (lambda < 1 is treated as 1)

    Returns:
        Tuple of (adjusted p-values, applied lambda, observed lambda)
    """
    p_values = np.asarray(p_values, dtype=float)
    chi2 = stats.chi2.isf(p_values, df=1)
    lambda_observed = float(np.nanmedian(chi2) / CHI2_1DF_MEDIAN)

    if not np.isfinite(lambda_observed) or lambda_observed <= 0:
        raise DegenerateFit(f"Genomic control inflation factor is {lambda_observed}")

    lambda_gc = max(lambda_observed, 1.0) if floor_at_one else lambda_observed
    adjusted = stats.chi2.sf(chi2 / lambda_gc, df=1)
    return adjusted, lambda_gc, lambda_observed


class UnivariateAssociationEngine:
    """
    Welch t-test per site with genomic control and Bonferroni correction.
    """

    def __init__(
        self,
        alpha: float = 0.05,
        gc_floor_at_one: bool = True,
        random_state: int = 42
    ):
        """
        Initialize engine.

        Args:
            alpha: Family-wise significance level
            gc_floor_at_one: Do not deflate statistics when lambda < 1
            random_state: Seed for the permutation diagnostic
        """
        self.alpha = alpha
        self.gc_floor_at_one = gc_floor_at_one
        self.random_state = random_state

    def test(self, dataset: MethylationDataset) -> AssociationResult:
        """
        Test every site of ``dataset`` for a tumor vs normal-adjacent shift.

        Args:
            dataset: Aligned methylation data (missing values allowed)

        Returns:
            AssociationResult sorted by raw p-value
        """
        beta = dataset.beta
        n_tests = beta.shape[0]
        logger.info(f"Running Welch t-tests on {n_tests} sites...")

        tumor_mask = dataset.group_mask(1)
        values = beta.to_numpy(dtype=float)

        t, dof, p = welch_t_test(values, tumor_mask)
        p_gc, lambda_gc, lambda_observed = genomic_control(p, self.gc_floor_at_one)

        logger.info(
            f"  Genomic control lambda = {lambda_observed:.3f}"
            + (f" (applied {lambda_gc:.3f})" if lambda_gc != lambda_observed else "")
        )

        _, p_bonf, _, _ = multipletests(p_gc, alpha=self.alpha, method="bonferroni")

        mean_tumor = np.nanmean(values[:, tumor_mask], axis=1)
        mean_normal = np.nanmean(values[:, ~tumor_mask], axis=1)

        table = pd.DataFrame({
            "t_statistic": t,
            "df": dof,
            "mean_tumor": mean_tumor,
            "mean_normal": mean_normal,
            "delta_beta": mean_tumor - mean_normal,
            "p_value": p,
            "p_value_gc": p_gc,
            "p_value_bonferroni": p_bonf,
        }, index=beta.index)
        table["significant"] = table["p_value_bonferroni"] < self.alpha
        table = table.sort_values("p_value", kind="mergesort")

        result = AssociationResult(
            table=table,
            lambda_gc=lambda_gc,
            lambda_observed=lambda_observed,
            alpha=self.alpha,
            n_tests=n_tests,
        )

        logger.info(
            f"  {result.n_significant} sites significant at "
            f"Bonferroni alpha = {self.alpha}"
        )
        return result

    def permutation_diagnostic(
        self,
        dataset: MethylationDataset,
        n_permutations: int = 10
    ) -> PermutationDiagnostic:
        """
        Compare observed statistics with statistics under shuffled labels.

        Group sizes are preserved by each shuffle. Sites whose test is
        undefined under a particular shuffle are skipped for it.

        Args:
            dataset: Aligned methylation data
            n_permutations: Number of label shuffles

        Returns:
            PermutationDiagnostic
        """
        if n_permutations < 1:
            raise ValueError("n_permutations must be at least 1")

        logger.info(f"Running permutation diagnostic ({n_permutations} shuffles)...")

        values = dataset.beta.to_numpy(dtype=float)
        tumor_mask = dataset.group_mask(1)
        rng = np.random.default_rng(self.random_state)

        probs = [0.5, 0.9, 0.99, 1.0]
        columns = [f"q{int(q * 100)}" for q in probs]

        observed_t, _, _ = welch_t_test(values, tumor_mask)
        observed_abs = np.abs(observed_t)

        rows = {"observed": np.nanquantile(observed_abs, probs)}
        lambdas = {}
        null_max = 0.0

        for i in range(n_permutations):
            shuffled = rng.permutation(tumor_mask)
            t_perm, _, p_perm = welch_t_test(values, shuffled, strict=False)
            abs_perm = np.abs(t_perm)

            name = f"permutation_{i + 1}"
            rows[name] = np.nanquantile(abs_perm, probs)
            chi2 = stats.chi2.isf(p_perm, df=1)
            lambdas[name] = float(np.nanmedian(chi2) / CHI2_1DF_MEDIAN)
            null_max = max(null_max, float(np.nanmax(abs_perm)))

        quantiles = pd.DataFrame.from_dict(rows, orient="index", columns=columns)
        permuted_lambdas = pd.Series(lambdas, name="lambda")
        n_above = int(np.sum(observed_abs > null_max))

        logger.info(
            f"  Permuted lambda median = {permuted_lambdas.median():.3f}; "
            f"{n_above} sites exceed the null max |t| = {null_max:.2f}"
        )

        return PermutationDiagnostic(
            quantiles=quantiles,
            permuted_lambdas=permuted_lambdas,
            null_max_abs_t=null_max,
            n_sites_above_null_max=n_above,
        )
