"""
Aligned methylation matrix and clinical annotations.
"""

from dataclasses import dataclass
from functools import cached_property
from typing import Dict, List

import numpy as np
import pandas as pd

from ..exceptions import MissingDataError


@dataclass(frozen=True)
class MethylationDataset:
    """
    Methylation beta values with their aligned clinical records.

    Attributes:
        beta: Beta values, CpG sites as rows and samples as columns;
            missing values are kept
        clinical: One row per sample, indexed by sample id and ordered
            like ``beta.columns``; has ``patient_id``, ``tissue_type``
            and ``label`` columns
        labels: Binary label per sample (1 = tumor, 0 = normal-adjacent)
            in ``beta.columns`` order
        group_names: Label -> canonical group name
    """

    beta: pd.DataFrame
    clinical: pd.DataFrame
    labels: pd.Series
    group_names: Dict[int, str]

    @property
    def n_sites(self) -> int:
        return self.beta.shape[0]

    @property
    def n_samples(self) -> int:
        return self.beta.shape[1]

    @property
    def site_ids(self) -> List[str]:
        return self.beta.index.tolist()

    @property
    def sample_ids(self) -> List[str]:
        return self.beta.columns.tolist()

    @property
    def group_sizes(self) -> Dict[str, int]:
        counts = self.labels.value_counts()
        return {
            name: int(counts.get(label, 0))
            for label, name in self.group_names.items()
        }

    @cached_property
    def complete_cases(self) -> pd.DataFrame:
        """Sites without a single missing value across samples (may be empty)."""
        return self.beta.dropna(axis=0, how="any")

    def complete_case_view(self) -> pd.DataFrame:
        """
        Get the complete-case matrix for algorithms that cannot handle gaps.

        Returns:
            Sites x samples DataFrame with no missing values

        Raises:
            MissingDataError: If every site has at least one missing value
        """
        complete = self.complete_cases
        if complete.empty:
            raise MissingDataError(
                f"No complete-case sites: all {self.n_sites} sites "
                "have at least one missing value"
            )
        return complete

    def sample_matrix(self) -> pd.DataFrame:
        """Complete-case view transposed to samples x sites."""
        return self.complete_case_view().T

    def group_mask(self, label: int) -> np.ndarray:
        """Boolean mask over samples belonging to ``label``."""
        return (self.labels == label).to_numpy()

    def missing_fraction(self) -> float:
        """Fraction of missing cells in the primary view."""
        if self.beta.size == 0:
            return 0.0
        return float(self.beta.isna().to_numpy().mean())
