"""Shared fixtures: synthetic methylation matrices and clinical tables."""

from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from tumor_methylation.data_loaders import MethylationDataLoader
from tumor_methylation.utils.config import Config


def make_samples(n_tumor: int, n_normal: int) -> pd.DataFrame:
    """
    Clinical table in the default (Xena phenotype) layout.

    Normal-adjacent samples come from patients that also gave a tumor
    sample, so some patients contribute two rows.
    """
    rows = []
    for i in range(n_tumor):
        rows.append({
            "sampleID": f"TCGA-AA-{i:04d}-01",
            "_PATIENT": f"TCGA-AA-{i:04d}",
            "sample_type": "Primary Tumor",
        })
    for i in range(n_normal):
        rows.append({
            "sampleID": f"TCGA-AA-{i:04d}-11",
            "_PATIENT": f"TCGA-AA-{i:04d}",
            "sample_type": "Solid Tissue Normal",
        })
    return pd.DataFrame(rows)


def make_beta(
    clinical: pd.DataFrame,
    n_sites: int,
    shifts: Optional[Dict[int, float]] = None,
    noise_sd: float = 0.08,
    seed: int = 0
) -> pd.DataFrame:
    """
    Beta matrix (sites x samples) centred at 0.5 with optional tumor shifts.

    ``shifts`` maps a site position to the tumor minus normal mean difference.
    """
    rng = np.random.default_rng(seed)
    is_tumor = (clinical["sample_type"] == "Primary Tumor").to_numpy()
    values = 0.5 + rng.normal(0, noise_sd, size=(n_sites, len(clinical)))
    for site, shift in (shifts or {}).items():
        values[site, is_tumor] += shift / 2
        values[site, ~is_tumor] -= shift / 2
    values = np.clip(values, 0.0, 1.0)
    site_ids = [f"cg{i:08d}" for i in range(n_sites)]
    return pd.DataFrame(values, index=pd.Index(site_ids, name="ID"), columns=clinical["sampleID"].tolist())


def write_inputs(
    directory: Path,
    beta: pd.DataFrame,
    clinical: pd.DataFrame,
    suffix: str = ".csv"
) -> Tuple[Path, Path]:
    sep = "\t" if suffix == ".tsv" else ","
    meth_path = directory / f"beta{suffix}"
    clin_path = directory / f"clinical{suffix}"
    beta.to_csv(meth_path, sep=sep)
    clinical.to_csv(clin_path, sep=sep, index=False)
    return meth_path, clin_path


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Default configuration rooted in a temporary directory."""
    return Config(base_dir=tmp_path)


@pytest.fixture
def four_site_inputs(tmp_path: Path) -> Tuple[Path, Path]:
    """4 sites x 20 samples (10 tumor, 10 normal); only the first site is shifted."""
    clinical = make_samples(10, 10)
    beta = make_beta(clinical, n_sites=4, shifts={0: 0.4}, seed=1)
    return write_inputs(tmp_path, beta, clinical)


@pytest.fixture
def four_site_dataset(config: Config, four_site_inputs: Tuple[Path, Path]):
    meth_path, clin_path = four_site_inputs
    return MethylationDataLoader(config).load_with_clinical(meth_path, clin_path)


@pytest.fixture
def cohort_inputs(tmp_path: Path) -> Tuple[Path, Path]:
    """
    40 sites x 60 samples (45 tumor, 15 normal).

    Sites 0-4 are shifted; sites 35-39 carry missing values.
    """
    clinical = make_samples(45, 15)
    beta = make_beta(clinical, n_sites=40, shifts={i: 0.3 for i in range(5)}, seed=2)
    for offset, site in enumerate(range(35, 40)):
        beta.iloc[site, offset * 3] = np.nan
    return write_inputs(tmp_path, beta, clinical)


@pytest.fixture
def cohort_dataset(config: Config, cohort_inputs: Tuple[Path, Path]):
    meth_path, clin_path = cohort_inputs
    return MethylationDataLoader(config).load_with_clinical(meth_path, clin_path)


def small_model_params(config: Config, Cs: Sequence[float] = (0.01, 0.1, 1.0)) -> Config:
    """Shrink the classifier grid so tests stay fast."""
    params = config.analysis_params["classifier"]
    params.update({
        "Cs": list(Cs),
        "l1_ratios": [0.5],
        "path_Cs": [0.001, 0.01, 0.1, 1.0],
        "cv_folds": 3,
        "stratify_split": True,
        "strict_convergence": False,
    })
    config.analysis_params["correlation_max_sites"] = 20
    config.analysis_params["n_permutations"] = 3
    return config
