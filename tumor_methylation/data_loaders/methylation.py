"""
Methylation beta-value loader and sample alignment.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import pandas as pd

from ..exceptions import SchemaMismatch
from .base import DataLoader
from .clinical import LABEL_COL, ClinicalLoader
from .dataset import MethylationDataset

logger = logging.getLogger(__name__)

# R's read.csv turns TCGA-XX-XXXX-01A into TCGA.XX.XXXX.01A
R_MANGLED_BARCODE = re.compile(r"^TCGA(\.[A-Za-z0-9]+)+$")


class MethylationDataLoader(DataLoader):
    """
    Load and validate methylation beta-value matrices.

    Handles:
    - Sites-as-rows matrices with a site id first column
    - R-mangled TCGA barcodes in the header
    - Site/sample uniqueness and the [0, 1] value range
    - Alignment with clinical records
    """

    def load(
        self,
        file_path: Union[str, Path],
        site_filter: Optional[List[str]] = None,
        normalize_barcodes: bool = True,
        **kwargs
    ) -> pd.DataFrame:
        """
        Load a methylation matrix.

        Args:
            file_path: Path to methylation matrix (sites x samples)
            site_filter: Optional list of CpG site ids to keep
            normalize_barcodes: Restore dashes in R-mangled TCGA barcodes

        Returns:
            DataFrame with CpG sites as rows and samples as columns

        Raises:
            SchemaMismatch: On duplicated ids, non-numeric cells or values
                outside [0, 1]
        """
        path = self._locate(file_path)

        logger.info(f"Loading methylation data from {path.name}...")
        df = self._read_table(path, index_col=0)
        df.index = df.index.astype(str)
        df.index.name = "site_id"

        if normalize_barcodes:
            df = self._normalize_column_names(df)

        self._validate_matrix(df, path.name)

        if site_filter is not None:
            available_sites = [s for s in site_filter if s in df.index]
            df = df.loc[available_sites]
            logger.info(f"Filtered to {len(available_sites)} sites")

        n_missing = int(df.isna().to_numpy().sum())
        logger.info(
            f"Loaded {df.shape[0]} sites x {df.shape[1]} samples "
            f"({n_missing} missing values)"
        )
        return df

    def _normalize_column_names(self, df: pd.DataFrame) -> pd.DataFrame:
        """Replace dots with dashes in R-mangled TCGA barcodes."""
        new_cols = []
        for col in df.columns:
            col = str(col).strip()
            if R_MANGLED_BARCODE.match(col):
                new_cols.append(col.replace(".", "-"))
            else:
                new_cols.append(col)
        df.columns = new_cols
        return df

    def _validate_matrix(self, df: pd.DataFrame, name: str) -> None:
        """Check identifier uniqueness and the beta-value range."""
        dup_sites = df.index[df.index.duplicated()].unique().tolist()
        if dup_sites:
            raise SchemaMismatch(
                f"{len(dup_sites)} site ids duplicated in {name}: {dup_sites[:5]}"
            )

        dup_samples = df.columns[df.columns.duplicated()].unique().tolist()
        if dup_samples:
            raise SchemaMismatch(
                f"{len(dup_samples)} sample ids duplicated in {name}: {dup_samples[:5]}"
            )

        non_numeric = [c for c in df.columns if not pd.api.types.is_numeric_dtype(df[c])]
        if non_numeric:
            raise SchemaMismatch(
                f"Non-numeric values in sample columns of {name}: {non_numeric[:5]}"
            )

        values = df.to_numpy(dtype=float)
        out_of_range = (values < 0) | (values > 1)
        if np.any(out_of_range):
            raise SchemaMismatch(
                f"{int(out_of_range.sum())} beta values in {name} lie outside [0, 1]"
            )

    def load_with_clinical(
        self,
        meth_path: Union[str, Path],
        clinical_path: Union[str, Path],
        clinical_loader: Optional[ClinicalLoader] = None,
        **kwargs
    ) -> MethylationDataset:
        """
        Load methylation data and align it with clinical records.

        Args:
            meth_path: Path to methylation matrix
            clinical_path: Path to clinical table
            clinical_loader: Loader for the clinical table; a new one sharing
                             this loader's configuration by default

        Returns:
            MethylationDataset with clinical rows and labels ordered like
            the matrix columns

        Raises:
            SchemaMismatch: If the sample sets of the two files differ
        """
        beta = self.load(meth_path, **kwargs)

        if clinical_loader is None:
            clinical_loader = ClinicalLoader(self.config)
        clinical = clinical_loader.load(clinical_path)

        return self.align(beta, clinical)

    def align(self, beta: pd.DataFrame, clinical: pd.DataFrame) -> MethylationDataset:
        """
        Align a beta matrix with clinical records by sample id.

        Args:
            beta: Sites x samples matrix
            clinical: Clinical records indexed by sample id

        Returns:
            MethylationDataset
        """
        matrix_samples = set(beta.columns)
        clinical_samples = set(clinical.index)

        no_clinical = sorted(matrix_samples - clinical_samples)
        no_matrix = sorted(clinical_samples - matrix_samples)
        if no_clinical or no_matrix:
            raise SchemaMismatch(
                f"Sample sets differ: {len(no_clinical)} matrix samples without "
                f"clinical rows {no_clinical[:5]}, {len(no_matrix)} clinical rows "
                f"without matrix columns {no_matrix[:5]}"
            )

        clinical = clinical.loc[beta.columns]
        labels = clinical[LABEL_COL].copy()
        labels.name = "label"

        group_names = {int(v): k for k, v in self.config.class_mapping.items()}

        dataset = MethylationDataset(
            beta=beta,
            clinical=clinical,
            labels=labels,
            group_names=group_names,
        )

        sizes = ", ".join(f"{k}={v}" for k, v in dataset.group_sizes.items())
        logger.info(f"Aligned {dataset.n_samples} samples ({sizes})")
        logger.info(
            f"Complete-case view: {dataset.complete_cases.shape[0]} of "
            f"{dataset.n_sites} sites"
        )
        return dataset

