"""
Elastic-net logistic regression and evaluation utilities.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.stats import binomtest
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import (
    accuracy_score,
    balanced_accuracy_score,
    confusion_matrix,
    roc_auc_score,
    roc_curve,
)
from sklearn.model_selection import GridSearchCV, StratifiedKFold

from ..analysis.univariate import AssociationResult
from ..data_loaders import MethylationDataset
from ..exceptions import DegenerateFit, InsufficientSamples
from ..preprocessing import DataTransformer, TrainTestSplit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassifierModel:
    """
    Fitted elastic-net logistic regression.

    Coefficients are log-odds of "tumor" (label 1) versus the reference
    "normal-adjacent" (label 0) per unit of scaled methylation.

    Attributes:
        coefficients: One coefficient per site
        intercept: Model intercept
        C: Selected inverse penalty strength
        penalty_strength: Selected penalty strength (1 / C)
        l1_ratio: Selected L1/L2 mixing weight (1 = pure L1)
        cv_auc: Mean cross-validated ROC AUC of the selected setting
        cv_results: Mean/std CV AUC for every grid point
        scaler_mean: Training-partition site means used for scaling
        scaler_scale: Training-partition site standard deviations
        estimator: The refitted scikit-learn model
    """

    coefficients: pd.Series
    intercept: float
    C: float
    penalty_strength: float
    l1_ratio: float
    cv_auc: float
    cv_results: pd.DataFrame
    scaler_mean: pd.Series
    scaler_scale: pd.Series
    estimator: LogisticRegression = field(repr=False, compare=False)

    def nonzero_coefficients(self) -> pd.Series:
        """Non-zero site coefficients, largest magnitude first."""
        nonzero = self.coefficients[self.coefficients != 0]
        order = nonzero.abs().sort_values(ascending=False).index
        return nonzero.loc[order]

    @property
    def selected_sites(self) -> List[str]:
        return self.nonzero_coefficients().index.tolist()

    def predict_proba(self, X_scaled: pd.DataFrame) -> np.ndarray:
        """Probability of "tumor" for already scaled samples."""
        return self.estimator.predict_proba(X_scaled[self.coefficients.index].to_numpy())[:, 1]

    def predict(self, X_scaled: pd.DataFrame) -> np.ndarray:
        return self.estimator.predict(X_scaled[self.coefficients.index].to_numpy())


@dataclass(frozen=True)
class ClassifierEvaluation:
    """
    Held-out performance of a fitted model.

    ``confusion`` has true classes as rows and predicted classes as
    columns, both ordered (normal-adjacent, tumor).
    """

    confusion: pd.DataFrame
    accuracy: float
    balanced_accuracy: float
    sensitivity: float
    specificity: float
    no_information_rate: float
    accuracy_p_value: float
    auc: float
    y_true: np.ndarray = field(repr=False)
    y_pred: np.ndarray = field(repr=False)
    y_prob: np.ndarray = field(repr=False)

    def to_dict(self) -> Dict[str, float]:
        return {
            "accuracy": self.accuracy,
            "balanced_accuracy": self.balanced_accuracy,
            "sensitivity": self.sensitivity,
            "specificity": self.specificity,
            "no_information_rate": self.no_information_rate,
            "accuracy_p_value": self.accuracy_p_value,
            "auc": self.auc,
        }


@dataclass(frozen=True)
class RegularizationPath:
    """
    Coefficients along a grid of penalty strengths.

    Attributes:
        summary: One row per grid point ordered by increasing penalty
            strength, with C, penalty_strength and n_nonzero
        coefficients: Grid points (same order) x sites
    """

    summary: pd.DataFrame
    coefficients: pd.DataFrame

    def nonzero_sites(self, C: float) -> List[str]:
        row = self.coefficients.loc[C]
        return row.index[row != 0].tolist()


class ClassifierFactory:
    """
    Factory for elastic-net logistic regression models.

    Centralizes solver settings so the CV search, the final model and the
    regularization path fit identical estimators.
    """

    def __init__(
        self,
        max_iter: int = 5000,
        tol: float = 1e-4,
        random_state: int = 42
    ):
        """
        Initialize factory.

        Args:
            max_iter: Maximum solver iterations
            tol: Solver stopping tolerance
            random_state: Seed for the stochastic solver
        """
        self.max_iter = max_iter
        self.tol = tol
        self.random_state = random_state

    def create(self, C: float = 1.0, l1_ratio: float = 0.5) -> LogisticRegression:
        """
        Create an elastic-net logistic regression.

        Args:
            C: Inverse penalty strength
            l1_ratio: L1/L2 mixing weight

        Returns:
            Unfitted estimator
        """
        return LogisticRegression(
            solver="saga",
            C=C,
            l1_ratio=l1_ratio,
            max_iter=self.max_iter,
            tol=self.tol,
            random_state=self.random_state,
        )

    def create_search(
        self,
        Cs: Sequence[float],
        l1_ratios: Sequence[float],
        cv_folds: int = 5
    ) -> GridSearchCV:
        """
        Create a cross-validated search over penalty strength and mixing.

        Folds are stratified and seeded; the ranking metric is ROC AUC.
        """
        cv = StratifiedKFold(
            n_splits=cv_folds,
            shuffle=True,
            random_state=self.random_state
        )
        return GridSearchCV(
            self.create(),
            param_grid={"C": list(Cs), "l1_ratio": list(l1_ratios)},
            scoring="roc_auc",
            cv=cv,
            refit=True,
            error_score="raise",
        )


class PenalizedClassifier:
    """
    Train/test split, train-only scaling, CV-tuned elastic net, evaluation.
    """

    def __init__(
        self,
        cv_folds: int = 5,
        Cs: Sequence[float] = (0.001, 0.003, 0.01, 0.03, 0.1, 0.3, 1.0),
        l1_ratios: Sequence[float] = (0.1, 0.5, 0.9),
        test_size: float = 0.3,
        stratify_split: bool = False,
        max_iter: int = 5000,
        tol: float = 1e-4,
        strict_convergence: bool = True,
        random_state: int = 42
    ):
        """
        Initialize classifier stage.

        Args:
            cv_folds: Number of cross-validation folds
            Cs: Grid of inverse penalty strengths
            l1_ratios: Grid of L1/L2 mixing weights
            test_size: Fraction of samples held out for evaluation
            stratify_split: Stratify the train/test split by label
            max_iter: Maximum solver iterations
            tol: Solver stopping tolerance
            strict_convergence: Treat solver non-convergence as DegenerateFit
            random_state: Seed for split, folds and solver
        """
        self.cv_folds = cv_folds
        self.Cs = list(Cs)
        self.l1_ratios = list(l1_ratios)
        self.test_size = test_size
        self.stratify_split = stratify_split
        self.strict_convergence = strict_convergence
        self.random_state = random_state
        self.factory = ClassifierFactory(
            max_iter=max_iter, tol=tol, random_state=random_state
        )
        self.transformer = DataTransformer(random_state=random_state)
        self.evaluator = ClassifierEvaluator()

    @classmethod
    def from_config(cls, config: Any) -> "PenalizedClassifier":
        params = config.analysis_params["classifier"]
        return cls(
            cv_folds=params["cv_folds"],
            Cs=params["Cs"],
            l1_ratios=params["l1_ratios"],
            test_size=params["test_size"],
            stratify_split=params["stratify_split"],
            max_iter=params["max_iter"],
            tol=params["tol"],
            strict_convergence=params["strict_convergence"],
            random_state=config.random_state,
        )

    def prepare(self, dataset: MethylationDataset) -> TrainTestSplit:
        """Split the complete-case samples x sites matrix and scale it."""
        X = dataset.sample_matrix()
        y = dataset.labels.loc[X.index]
        return self.transformer.prepare_for_training(
            X, y, test_size=self.test_size, stratify=self.stratify_split
        )

    def _check_training_labels(self, y_train: pd.Series) -> None:
        counts = y_train.value_counts()
        if len(counts) < 2:
            raise InsufficientSamples(
                f"Training partition contains a single class: {counts.to_dict()}"
            )
        if counts.min() < self.cv_folds:
            raise InsufficientSamples(
                f"{self.cv_folds}-fold CV needs at least {self.cv_folds} training "
                f"samples per class; got {counts.to_dict()}"
            )

    def _fit_guarded(self, estimator: Any, X: np.ndarray, y: np.ndarray) -> Any:
        """Fit ``estimator`` and turn non-convergence into DegenerateFit."""
        with warnings.catch_warnings():
            if self.strict_convergence:
                warnings.simplefilter("error", ConvergenceWarning)
            try:
                return estimator.fit(X, y)
            except ConvergenceWarning as e:
                raise DegenerateFit(f"Logistic regression did not converge: {e}") from e

    def fit(self, split: TrainTestSplit) -> ClassifierModel:
        """
        Select C and the L1 ratio by CV on the training partition and refit.

        Args:
            split: Scaled partitions; only the training partition is used

        Returns:
            ClassifierModel
        """
        X_train, y_train = split.X_train, split.y_train
        self._check_training_labels(y_train)

        logger.info(
            f"Selecting elastic-net penalty by {self.cv_folds}-fold CV (ROC AUC) "
            f"over {len(self.Cs)} C x {len(self.l1_ratios)} L1-ratio values..."
        )

        search = self.factory.create_search(self.Cs, self.l1_ratios, self.cv_folds)
        self._fit_guarded(search, X_train.to_numpy(), y_train.to_numpy())

        cv_results = pd.DataFrame({
            "C": np.asarray(search.cv_results_["param_C"], dtype=float),
            "l1_ratio": np.asarray(search.cv_results_["param_l1_ratio"], dtype=float),
            "mean_auc": search.cv_results_["mean_test_score"],
            "std_auc": search.cv_results_["std_test_score"],
        })

        if not np.isfinite(search.best_score_):
            raise DegenerateFit("Cross-validated AUC is undefined for every setting")

        best = search.best_estimator_
        C = float(search.best_params_["C"])
        coefficients = pd.Series(best.coef_.ravel(), index=X_train.columns, name="coefficient")

        model = ClassifierModel(
            coefficients=coefficients,
            intercept=float(best.intercept_.ravel()[0]),
            C=C,
            penalty_strength=1.0 / C,
            l1_ratio=float(search.best_params_["l1_ratio"]),
            cv_auc=float(search.best_score_),
            cv_results=cv_results,
            scaler_mean=pd.Series(split.scaler.mean_, index=X_train.columns),
            scaler_scale=pd.Series(split.scaler.scale_, index=X_train.columns),
            estimator=best,
        )

        logger.info(
            f"  Selected C = {model.C:g} (penalty {model.penalty_strength:g}), "
            f"l1_ratio = {model.l1_ratio:g}, CV AUC = {model.cv_auc:.4f}"
        )
        logger.info(
            f"  {len(model.selected_sites)} of {len(coefficients)} sites "
            "have non-zero coefficients"
        )
        return model

    def evaluate(self, model: ClassifierModel, split: TrainTestSplit) -> ClassifierEvaluation:
        """Evaluate ``model`` on the held-out partition."""
        return self.evaluator.evaluate(model, split.X_test, split.y_test)

    def regularization_path(
        self,
        split: TrainTestSplit,
        Cs: Sequence[float],
        l1_ratio: float = 0.5
    ) -> RegularizationPath:
        """
        Fit the training partition at every C with a fixed L1 ratio.

        Args:
            split: Scaled partitions; only the training partition is used
            Cs: Inverse penalty strengths
            l1_ratio: L1/L2 mixing weight

        Returns:
            RegularizationPath ordered by increasing penalty strength
        """
        X = split.X_train.to_numpy()
        y = split.y_train.to_numpy()
        Cs = sorted({float(c) for c in Cs}, reverse=True)

        logger.info(f"Computing regularization path over {len(Cs)} penalties...")

        rows = []
        coefs = []
        for C in Cs:
            estimator = self._fit_guarded(self.factory.create(C=C, l1_ratio=l1_ratio), X, y)
            coef = estimator.coef_.ravel()
            coefs.append(coef)
            rows.append({
                "C": C,
                "penalty_strength": 1.0 / C,
                "l1_ratio": l1_ratio,
                "n_nonzero": int(np.count_nonzero(coef)),
            })
            logger.debug(f"  C = {C:g}: {rows[-1]['n_nonzero']} non-zero coefficients")

        summary = pd.DataFrame(rows)
        coefficients = pd.DataFrame(
            np.vstack(coefs), index=pd.Index(Cs, name="C"), columns=split.X_train.columns
        )
        return RegularizationPath(summary=summary, coefficients=coefficients)


class ClassifierEvaluator:
    """
    Evaluate a fitted model on held-out data.
    """

    def evaluate(
        self,
        model: ClassifierModel,
        X_test: pd.DataFrame,
        y_test: pd.Series
    ) -> ClassifierEvaluation:
        """
        Compute the confusion matrix and summary metrics.

        The accuracy p-value is a one-sided exact binomial test of the number
        of correct predictions against the no-information rate (share of
        the majority class in the test partition).

        Args:
            model: Fitted classifier
            X_test: Scaled test features
            y_test: Test labels

        Returns:
            ClassifierEvaluation
        """
        if len(y_test) == 0:
            raise InsufficientSamples("Test partition is empty")

        y_true = y_test.to_numpy().astype(int)
        y_pred = np.asarray(model.predict(X_test)).astype(int)
        y_prob = model.predict_proba(X_test)

        cm = confusion_matrix(y_true, y_pred, labels=[0, 1])
        tn, fp, fn, tp = cm.ravel()
        confusion = pd.DataFrame(
            cm,
            index=["true_normal-adjacent", "true_tumor"],
            columns=["pred_normal-adjacent", "pred_tumor"],
        )

        sensitivity = tp / (tp + fn) if (tp + fn) > 0 else np.nan
        specificity = tn / (tn + fp) if (tn + fp) > 0 else np.nan

        with warnings.catch_warnings():
            # Single-class test partitions average the recall that exists
            warnings.simplefilter("ignore", UserWarning)
            balanced = balanced_accuracy_score(y_true, y_pred)

        accuracy = accuracy_score(y_true, y_pred)
        n_correct = int(tn + tp)
        nir = float(np.bincount(y_true, minlength=2).max() / len(y_true))
        p_value = binomtest(n_correct, len(y_true), nir, alternative="greater").pvalue

        try:
            auc = roc_auc_score(y_true, y_prob)
        except ValueError:
            auc = np.nan
            logger.warning("Could not compute AUC (possibly single class in test)")

        evaluation = ClassifierEvaluation(
            confusion=confusion,
            accuracy=float(accuracy),
            balanced_accuracy=float(balanced),
            sensitivity=float(sensitivity),
            specificity=float(specificity),
            no_information_rate=nir,
            accuracy_p_value=float(p_value),
            auc=float(auc),
            y_true=y_true,
            y_pred=y_pred,
            y_prob=y_prob,
        )

        logger.info(
            f"  Test accuracy: {evaluation.accuracy:.4f} "
            f"(NIR {nir:.4f}, binomial p = {evaluation.accuracy_p_value:.3g}), "
            f"balanced accuracy: {evaluation.balanced_accuracy:.4f}, "
            f"AUC: {evaluation.auc:.4f}"
        )
        return evaluation

    def get_roc_data(self, evaluation: ClassifierEvaluation) -> Optional[tuple]:
        """
        Extract ROC curve data from an evaluation.

        Returns:
            Tuple of (fpr, tpr, auc), or None when AUC is undefined
        """
        if np.isnan(evaluation.auc):
            return None
        fpr, tpr, _ = roc_curve(evaluation.y_true, evaluation.y_prob)
        return fpr, tpr, evaluation.auc


def cross_reference(model: ClassifierModel, association: AssociationResult) -> List[str]:
    """
    Sites selected by the elastic net that are also univariately significant.

    Ordered like :meth:`ClassifierModel.nonzero_coefficients`.
    """
    significant = set(association.significant_sites)
    overlap = [site for site in model.selected_sites if site in significant]
    logger.info(
        f"{len(overlap)} of {len(model.selected_sites)} model sites are among the "
        f"{len(significant)} univariately significant sites"
    )
    return overlap
