"""Tests for methylation/clinical loading, validation and alignment."""

import numpy as np
import pandas as pd
import pytest

from conftest import make_beta, make_samples, write_inputs
from tumor_methylation.data_loaders import ClinicalLoader, MethylationDataLoader
from tumor_methylation.exceptions import MissingDataError, SchemaMismatch


def load(config, beta, clinical, directory, suffix=".csv"):
    meth_path, clin_path = write_inputs(directory, beta, clinical, suffix=suffix)
    return MethylationDataLoader(config).load_with_clinical(meth_path, clin_path)


def test_aligned_dataset(four_site_dataset):
    ds = four_site_dataset
    assert (ds.n_sites, ds.n_samples) == (4, 20)
    assert ds.beta.index.name == "site_id"
    assert ds.site_ids[0] == "cg00000000"
    assert ds.group_sizes == {"normal-adjacent": 10, "tumor": 10}
    assert ds.clinical.index.tolist() == ds.sample_ids
    assert ds.labels.index.tolist() == ds.sample_ids
    assert set(ds.clinical["tissue_type"]) == {"tumor", "normal-adjacent"}


def test_tumor_encoded_as_one(four_site_dataset):
    ds = four_site_dataset
    tumor = ds.clinical["tissue_type"] == "tumor"
    assert (ds.labels[tumor] == 1).all()
    assert (ds.labels[~tumor] == 0).all()
    assert ds.group_names == {0: "normal-adjacent", 1: "tumor"}


def test_clinical_rows_follow_matrix_order(config, tmp_path):
    clinical = make_samples(4, 4)
    beta = make_beta(clinical, n_sites=3)
    shuffled = clinical.sample(frac=1.0, random_state=0)

    ds = load(config, beta, shuffled, tmp_path)

    assert ds.clinical.index.tolist() == beta.columns.tolist()
    assert ds.labels.tolist() == [1, 1, 1, 1, 0, 0, 0, 0]


def test_tab_separated_input(config, tmp_path):
    clinical = make_samples(3, 3)
    beta = make_beta(clinical, n_sites=5)
    ds = load(config, beta, clinical, tmp_path, suffix=".tsv")
    assert (ds.n_sites, ds.n_samples) == (5, 6)
    np.testing.assert_allclose(ds.beta.to_numpy(), beta.to_numpy())


def test_r_mangled_barcodes_are_restored(config, tmp_path):
    clinical = make_samples(3, 3)
    beta = make_beta(clinical, n_sites=2)
    beta.columns = [c.replace("-", ".") for c in beta.columns]

    ds = load(config, beta, clinical, tmp_path)

    assert ds.sample_ids == clinical["sampleID"].tolist()


def test_tissue_matching_ignores_case_and_whitespace(config, tmp_path):
    clinical = make_samples(2, 2)
    clinical["sample_type"] = ["primary tumor ", "PRIMARY TUMOR", " Solid Tissue Normal", "solid tissue normal"]
    beta = make_beta(clinical, n_sites=2)
    ds = load(config, beta, clinical, tmp_path)
    assert ds.labels.tolist() == [1, 1, 0, 0]


def test_unknown_tissue_value(config, tmp_path):
    clinical = make_samples(2, 2)
    clinical.loc[0, "sample_type"] = "Metastatic"
    beta = make_beta(clinical, n_sites=2)
    with pytest.raises(SchemaMismatch, match="Metastatic"):
        load(config, beta, clinical, tmp_path)


def test_matrix_sample_without_clinical_row(config, tmp_path):
    clinical = make_samples(3, 3)
    beta = make_beta(clinical, n_sites=2)
    with pytest.raises(SchemaMismatch, match="Sample sets differ"):
        load(config, beta, clinical.iloc[:-1], tmp_path)


def test_clinical_row_without_matrix_column(config, tmp_path):
    clinical = make_samples(3, 3)
    beta = make_beta(clinical, n_sites=2)
    with pytest.raises(SchemaMismatch, match="Sample sets differ"):
        load(config, beta.iloc[:, :-1], clinical, tmp_path)


def test_missing_clinical_column(config, tmp_path):
    clinical = make_samples(2, 2).drop(columns="_PATIENT")
    beta = make_beta(clinical, n_sites=2)
    with pytest.raises(SchemaMismatch, match="lacks columns"):
        load(config, beta, clinical, tmp_path)


def test_custom_column_mapping(config, tmp_path):
    clinical = make_samples(2, 2).rename(columns={
        "sampleID": "barcode", "sample_type": "tissue", "_PATIENT": "donor"
    })
    beta = make_beta(make_samples(2, 2), n_sites=2)
    config.column_mapping = {"sample_id": "barcode", "tissue": "tissue", "patient": "donor"}

    ds = load(config, beta, clinical, tmp_path)

    assert ds.group_sizes == {"normal-adjacent": 2, "tumor": 2}


def test_duplicate_sample_in_clinical(config, tmp_path):
    clinical = make_samples(2, 2)
    beta = make_beta(clinical, n_sites=2)
    clinical = pd.concat([clinical, clinical.iloc[[0]]], ignore_index=True)
    with pytest.raises(SchemaMismatch, match="more than once"):
        load(config, beta, clinical, tmp_path)


def test_duplicate_site_id(config, tmp_path):
    clinical = make_samples(2, 2)
    beta = make_beta(clinical, n_sites=3)
    beta.index = pd.Index(["cg1", "cg2", "cg1"], name="ID")
    with pytest.raises(SchemaMismatch, match="site ids duplicated"):
        load(config, beta, clinical, tmp_path)


def test_beta_out_of_range(config, tmp_path):
    clinical = make_samples(2, 2)
    beta = make_beta(clinical, n_sites=3)
    beta.iloc[1, 2] = 1.2
    with pytest.raises(SchemaMismatch, match=r"outside \[0, 1\]"):
        load(config, beta, clinical, tmp_path)


def test_non_numeric_cell(config, tmp_path):
    clinical = make_samples(2, 2)
    beta = make_beta(clinical, n_sites=3).astype(object)
    beta.iloc[0, 0] = "high"
    with pytest.raises(SchemaMismatch, match="Non-numeric"):
        load(config, beta, clinical, tmp_path)


def test_missing_values_are_kept(cohort_dataset):
    ds = cohort_dataset
    assert ds.n_sites == 40
    assert ds.beta.isna().to_numpy().sum() == 5
    assert ds.complete_cases.shape == (35, 60)
    assert ds.sample_matrix().shape == (60, 35)
    assert ds.missing_fraction() == pytest.approx(5 / (40 * 60))


def test_no_complete_case_sites(config, tmp_path):
    clinical = make_samples(3, 3)
    beta = make_beta(clinical, n_sites=3)
    for site in range(3):
        beta.iloc[site, site] = np.nan
    ds = load(config, beta, clinical, tmp_path)
    with pytest.raises(MissingDataError):
        ds.complete_case_view()


def test_missing_file(config, tmp_path):
    with pytest.raises(FileNotFoundError):
        MethylationDataLoader(config).load(tmp_path / "absent.csv")


def test_site_filter(config, tmp_path):
    clinical = make_samples(2, 2)
    meth_path, _ = write_inputs(tmp_path, make_beta(clinical, n_sites=5), clinical)
    beta = MethylationDataLoader(config).load(meth_path, site_filter=["cg00000003", "cg00000001", "cg9"])
    assert beta.index.tolist() == ["cg00000003", "cg00000001"]


def test_multi_sample_patients(config, tmp_path):
    clinical = make_samples(3, 2)
    _, clin_path = write_inputs(tmp_path, make_beta(clinical, n_sites=1), clinical)
    loader = ClinicalLoader(config)
    df = loader.load(clin_path)
    assert loader.get_multi_sample_patients(df) == ["TCGA-AA-0000", "TCGA-AA-0001"]
    assert loader.group_counts(df) == {"tumor": 3, "normal-adjacent": 2}
