"""
Clinical metadata loader for sample annotations.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from ..exceptions import SchemaMismatch
from .base import DataLoader

logger = logging.getLogger(__name__)

# Standardized clinical columns produced by ClinicalLoader.load
SAMPLE_COL = "sample_id"
PATIENT_COL = "patient_id"
TISSUE_RAW_COL = "tissue_raw"
TISSUE_COL = "tissue_type"
LABEL_COL = "label"


class ClinicalLoader(DataLoader):
    """
    Load and validate clinical sample annotations.

    Handles:
    - Dataset-specific column naming (via ``column_mapping``)
    - Mapping raw tissue-type values onto a fixed vocabulary
    - Binary label encoding (normal-adjacent = 0, tumor = 1)
    """

    def load(
        self,
        file_path: Union[str, Path],
        column_mapping: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> pd.DataFrame:
        """
        Load clinical records from a delimited file.

        Args:
            file_path: Path to clinical table
            column_mapping: Mapping of standard keys ("sample_id", "tissue",
                           "patient") to column names in the file; defaults
                           to ``config.column_mapping``

        Returns:
            DataFrame indexed by sample id with patient_id, tissue_raw,
            tissue_type and label columns

        Raises:
            SchemaMismatch: On missing columns, duplicated sample ids or
                tissue values outside the vocabulary
        """
        path = self._locate(file_path)

        if column_mapping is None:
            column_mapping = self.config.column_mapping

        logger.info(f"Loading clinical records from {path.name}...")
        raw = self._read_table(path, dtype=str)

        required = {
            column_mapping["sample_id"]: SAMPLE_COL,
            column_mapping["patient"]: PATIENT_COL,
            column_mapping["tissue"]: TISSUE_RAW_COL,
        }
        missing_cols = [c for c in required if c not in raw.columns]
        if missing_cols:
            raise SchemaMismatch(
                f"Clinical file {path.name} lacks columns {missing_cols}; "
                f"found {raw.columns.tolist()}"
            )

        df = raw[list(required)].rename(columns=required)
        df[SAMPLE_COL] = df[SAMPLE_COL].str.strip()

        duplicated = df[SAMPLE_COL][df[SAMPLE_COL].duplicated()].unique().tolist()
        if duplicated:
            raise SchemaMismatch(
                f"{len(duplicated)} sample ids appear more than once in "
                f"{path.name}: {duplicated[:5]}"
            )

        df = self.encode_tissue(df)
        df = df.set_index(SAMPLE_COL)

        logger.info(
            f"Loaded clinical records for {len(df)} samples "
            f"from {df[PATIENT_COL].nunique()} patients"
        )
        return df

    def encode_tissue(
        self,
        df: pd.DataFrame,
        vocabulary: Optional[Dict[str, str]] = None,
        mapping: Optional[Dict[str, int]] = None
    ) -> pd.DataFrame:
        """
        Map raw tissue values onto canonical groups and binary labels.

        Matching ignores case and surrounding whitespace.

        Args:
            df: Clinical DataFrame with a ``tissue_raw`` column
            vocabulary: Raw value -> canonical group name
            mapping: Canonical group name -> label

        Returns:
            DataFrame with new ``tissue_type`` and ``label`` columns
        """
        if vocabulary is None:
            vocabulary = self.config.tissue_vocabulary
        if mapping is None:
            mapping = self.config.class_mapping

        lookup = {k.strip().lower(): v for k, v in vocabulary.items()}

        df = df.copy()
        normalized = df[TISSUE_RAW_COL].fillna("").str.strip().str.lower()
        df[TISSUE_COL] = normalized.map(lookup)

        unknown = df.loc[df[TISSUE_COL].isna(), TISSUE_RAW_COL].unique().tolist()
        if unknown:
            raise SchemaMismatch(
                f"Tissue values outside vocabulary {list(vocabulary)}: {unknown}"
            )

        df[LABEL_COL] = df[TISSUE_COL].map(mapping)
        if df[LABEL_COL].isna().any():
            raise SchemaMismatch(
                f"Tissue groups without a label mapping: "
                f"{sorted(set(df[TISSUE_COL]) - set(mapping))}"
            )
        df[LABEL_COL] = df[LABEL_COL].astype(int)
        return df

    def get_multi_sample_patients(self, df: pd.DataFrame) -> List[str]:
        """
        Get patients contributing more than one sample.

        These are kept as-is (tumor and normal-adjacent tissue from the same
        individual are both analysed); the list is informational.

        Args:
            df: Clinical DataFrame from :meth:`load`

        Returns:
            Sorted list of patient ids
        """
        counts = df[PATIENT_COL].value_counts()
        return sorted(counts[counts > 1].index.tolist())

    def group_counts(self, df: pd.DataFrame) -> Dict[str, int]:
        """Number of samples per canonical tissue group."""
        return {k: int(v) for k, v in df[TISSUE_COL].value_counts().items()}
