"""Tests for the elastic-net classifier, its evaluation and the penalty path."""

import warnings

import numpy as np
import pandas as pd
import pytest

from conftest import make_beta, make_samples, small_model_params, write_inputs
from tumor_methylation.analysis import UnivariateAssociationEngine
from tumor_methylation.data_loaders import MethylationDataLoader
from tumor_methylation.exceptions import DegenerateFit, InsufficientSamples
from tumor_methylation.models import (
    ClassifierEvaluator,
    ClassifierFactory,
    PenalizedClassifier,
    cross_reference,
)
from tumor_methylation.preprocessing import TrainTestSplit

SHIFTED = {f"cg{i:08d}" for i in range(5)}


@pytest.fixture
def classifier(config):
    return PenalizedClassifier.from_config(small_model_params(config))


@pytest.fixture
def fitted(classifier, cohort_dataset):
    split = classifier.prepare(cohort_dataset)
    model = classifier.fit(split)
    return split, model


def test_from_config(config):
    config.analysis_params["random_state"] = 11
    clf = PenalizedClassifier.from_config(small_model_params(config))
    assert clf.cv_folds == 3
    assert clf.stratify_split is True
    assert clf.random_state == 11
    assert clf.factory.random_state == 11


def test_prepare_uses_complete_cases(classifier, cohort_dataset):
    split = classifier.prepare(cohort_dataset)
    assert split.X_train.shape[1] == 35
    assert len(split.X_train) + len(split.X_test) == 60
    assert len(split.X_test) == 18
    assert split.y_train.index.equals(split.X_train.index)


def test_fit_selects_shifted_sites(fitted):
    split, model = fitted
    assert model.coefficients.index.tolist() == split.X_train.columns.tolist()
    assert model.C in (0.01, 0.1, 1.0)
    assert model.penalty_strength == pytest.approx(1.0 / model.C)
    assert model.l1_ratio == 0.5
    assert model.cv_auc > 0.9
    assert len(model.cv_results) == 3
    assert set(model.selected_sites) & SHIFTED
    # tumor samples carry the higher beta values at the shifted sites
    for site in set(model.selected_sites) & SHIFTED:
        assert model.coefficients[site] > 0


def test_nonzero_coefficients_sorted_by_magnitude(fitted):
    _, model = fitted
    nonzero = model.nonzero_coefficients()
    assert (nonzero != 0).all()
    assert nonzero.abs().is_monotonic_decreasing


def test_scaler_statistics_come_from_training_partition(fitted, cohort_dataset):
    split, model = fitted
    raw = cohort_dataset.sample_matrix().loc[split.X_train.index]
    np.testing.assert_allclose(model.scaler_mean.to_numpy(), raw.mean().to_numpy())


def test_evaluation(classifier, fitted):
    split, model = fitted
    evaluation = classifier.evaluate(model, split)
    cm = evaluation.confusion

    assert cm.to_numpy().sum() == len(split.y_test)
    assert cm.loc["true_tumor"].sum() == int((split.y_test == 1).sum())
    assert cm.loc["true_normal-adjacent"].sum() == int((split.y_test == 0).sum())
    assert 0.0 <= evaluation.balanced_accuracy <= 1.0
    assert evaluation.accuracy > 0.8
    assert evaluation.no_information_rate == pytest.approx(
        split.y_test.value_counts().max() / len(split.y_test)
    )
    assert 0.0 <= evaluation.accuracy_p_value <= 1.0
    assert np.all((evaluation.y_prob >= 0) & (evaluation.y_prob <= 1))
    assert set(evaluation.to_dict()) >= {"accuracy", "balanced_accuracy", "auc"}

    fpr, tpr, auc = classifier.evaluator.get_roc_data(evaluation)
    assert fpr[0] == 0.0 and tpr[-1] == 1.0
    assert auc == evaluation.auc


def test_single_class_test_partition(fitted):
    split, model = fitted
    tumor_only = split.y_test[split.y_test == 1]
    evaluation = ClassifierEvaluator().evaluate(model, split.X_test.loc[tumor_only.index], tumor_only)
    assert np.isnan(evaluation.auc)
    assert np.isnan(evaluation.specificity)
    assert evaluation.no_information_rate == 1.0
    assert ClassifierEvaluator().get_roc_data(evaluation) is None


def test_single_class_training_partition(classifier, fitted):
    split, _ = fitted
    y_train = pd.Series(1, index=split.y_train.index)
    one_class = TrainTestSplit(split.X_train, split.X_test, y_train, split.y_test, split.scaler)
    with pytest.raises(InsufficientSamples):
        classifier.fit(one_class)


def test_too_few_samples_per_fold(config, fitted):
    split, _ = fitted
    config.analysis_params["classifier"]["cv_folds"] = 50
    with pytest.raises(InsufficientSamples):
        PenalizedClassifier.from_config(config).fit(split)


def test_non_convergence_is_degenerate(config, cohort_dataset):
    small_model_params(config)
    params = config.analysis_params["classifier"]
    params.update({"max_iter": 1, "strict_convergence": True})
    clf = PenalizedClassifier.from_config(config)
    split = clf.prepare(cohort_dataset)

    with pytest.raises(DegenerateFit):
        clf.regularization_path(split, [1.0])
    with pytest.raises(DegenerateFit):
        clf.fit(split)


def test_cross_reference(fitted, cohort_dataset):
    _, model = fitted
    association = UnivariateAssociationEngine().test(cohort_dataset)
    overlap = cross_reference(model, association)

    assert set(overlap) <= set(model.selected_sites)
    assert set(overlap) <= set(association.significant_sites)
    assert overlap == [s for s in model.selected_sites if s in overlap]


def test_sparsity_grows_with_penalty(config, tmp_path):
    clinical = make_samples(50, 50)
    beta = make_beta(clinical, n_sites=10, shifts={0: 0.15, 1: 0.1, 2: 0.05}, noise_sd=0.1, seed=5)
    meth_path, clin_path = write_inputs(tmp_path, beta, clinical)
    dataset = MethylationDataLoader(config).load_with_clinical(meth_path, clin_path)

    clf = PenalizedClassifier.from_config(small_model_params(config))
    split = clf.prepare(dataset)
    path = clf.regularization_path(split, [0.0001, 1.0, 0.01, 0.1], l1_ratio=0.9)

    summary = path.summary
    assert summary["C"].tolist() == [1.0, 0.1, 0.01, 0.0001]
    assert summary["penalty_strength"].is_monotonic_increasing
    assert summary["n_nonzero"].is_monotonic_decreasing
    assert summary["n_nonzero"].iloc[0] > 0
    assert summary["n_nonzero"].iloc[-1] == 0
    assert path.coefficients.shape == (4, 10)
    assert path.nonzero_sites(0.0001) == []
    assert "cg00000000" in path.nonzero_sites(1.0)


def test_elastic_net_configured_by_mixing_weight_alone():
    estimator = ClassifierFactory(random_state=0).create(C=1.0, l1_ratio=0.5)
    assert estimator.l1_ratio == 0.5
    assert estimator.solver == "saga"

    rng = np.random.default_rng(0)
    X = rng.normal(size=(40, 5))
    y = (X[:, 0] + 0.5 * rng.normal(size=40) > 0).astype(int)
    with warnings.catch_warnings():
        warnings.simplefilter("error", FutureWarning)
        estimator.fit(X, y)

    assert estimator.coef_.shape == (1, 5)
    assert abs(estimator.coef_[0, 0]) == np.abs(estimator.coef_).max()
