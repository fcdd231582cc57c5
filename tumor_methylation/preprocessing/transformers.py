"""
Data transformation utilities for methylation analysis.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split
from sklearn.preprocessing import StandardScaler

from ..exceptions import InsufficientSamples, MissingDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainTestSplit:
    """
    Scaled train/test partitions of a samples x sites matrix.

    ``X_train``/``X_test`` keep sample ids as index and site ids as columns.
    The scaler is fitted on the training partition only.
    """

    X_train: pd.DataFrame
    X_test: pd.DataFrame
    y_train: pd.Series
    y_test: pd.Series
    scaler: StandardScaler


class DataTransformer:
    """
    Transform methylation data for model training.

    Handles the seeded train/test partition and standardization whose
    statistics come from the training partition alone.
    """

    def __init__(self, random_state: int = 42):
        """
        Initialize transformer.

        Args:
            random_state: Random seed for reproducibility
        """
        self.random_state = random_state
        self.scaler_: Optional[StandardScaler] = None

    def split_train_test(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        test_size: float = 0.3,
        stratify: bool = False
    ) -> Tuple[pd.DataFrame, pd.DataFrame, pd.Series, pd.Series]:
        """
        Split samples into a training and a held-out test partition.

        Args:
            X: Samples x sites matrix
            y: Labels aligned with ``X`` rows
            test_size: Fraction of samples held out
            stratify: Preserve the label ratio in both partitions

        Returns:
            Tuple of (X_train, X_test, y_train, y_test)
        """
        n_samples = len(X)
        n_test = int(np.ceil(n_samples * test_size))
        if n_test < 1 or n_samples - n_test < 1:
            raise InsufficientSamples(
                f"Cannot split {n_samples} samples with test_size={test_size}"
            )

        if stratify and y.value_counts().min() < 2:
            raise InsufficientSamples(
                "Stratified split needs at least two samples per class; "
                f"got {y.value_counts().to_dict()}"
            )

        X_train, X_test, y_train, y_test = train_test_split(
            X, y,
            test_size=test_size,
            random_state=self.random_state,
            stratify=y if stratify else None
        )

        logger.info(
            f"Split data: {len(X_train)} train / {len(X_test)} test samples "
            f"({'stratified' if stratify else 'unstratified'})"
        )
        logger.debug(f"  Train labels: {y_train.value_counts().to_dict()}")
        logger.debug(f"  Test labels: {y_test.value_counts().to_dict()}")
        if not stratify and y_test.nunique() < y.nunique():
            logger.warning(
                "Unstratified split left the test partition without class(es) "
                f"{sorted(set(y) - set(y_test))}; consider --stratify-split"
            )

        return X_train, X_test, y_train, y_test

    def fit_transform_scale(
        self,
        X_train: pd.DataFrame,
        X_test: Optional[pd.DataFrame] = None
    ) -> Tuple[pd.DataFrame, Optional[pd.DataFrame]]:
        """
        Fit scaler on training data and transform both sets.

        Args:
            X_train: Training features
            X_test: Optional test features

        Returns:
            Tuple of (X_train_scaled, X_test_scaled) as DataFrames
        """
        if X_train.isna().to_numpy().any():
            raise MissingDataError("Training matrix contains missing values")

        self.scaler_ = StandardScaler()
        X_train_scaled = pd.DataFrame(
            self.scaler_.fit_transform(X_train),
            index=X_train.index,
            columns=X_train.columns
        )

        X_test_scaled = None
        if X_test is not None:
            X_test_scaled = self.transform_scale(X_test)

        return X_train_scaled, X_test_scaled

    def transform_scale(self, X: pd.DataFrame) -> pd.DataFrame:
        """
        Transform data using fitted scaler.

        Args:
            X: Features to scale

        Returns:
            Scaled features as DataFrame
        """
        if self.scaler_ is None:
            raise RuntimeError("Scaler has not been fitted yet")
        if X.isna().to_numpy().any():
            raise MissingDataError("Matrix to scale contains missing values")
        return pd.DataFrame(
            self.scaler_.transform(X),
            index=X.index,
            columns=X.columns
        )

    def prepare_for_training(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        test_size: float = 0.3,
        stratify: bool = False
    ) -> TrainTestSplit:
        """
        Complete preparation pipeline for model training.

        Performs: seeded split -> scaling fitted on the training partition

        Args:
            X: Samples x sites matrix without missing values
            y: Labels aligned with ``X`` rows
            test_size: Fraction of samples held out
            stratify: Stratify the split by label

        Returns:
            TrainTestSplit with scaled partitions and the fitted scaler
        """
        X_train, X_test, y_train, y_test = self.split_train_test(
            X, y, test_size=test_size, stratify=stratify
        )
        X_train_scaled, X_test_scaled = self.fit_transform_scale(X_train, X_test)

        logger.info(
            f"Prepared data: {X_train_scaled.shape[0]} train, "
            f"{X_test_scaled.shape[0]} test samples "
            f"with {X_train_scaled.shape[1]} features"
        )

        return TrainTestSplit(
            X_train=X_train_scaled,
            X_test=X_test_scaled,
            y_train=y_train,
            y_test=y_test,
            scaler=self.scaler_,
        )
