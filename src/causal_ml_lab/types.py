# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.stats import norm


@dataclass
class Dataset:
    """
    Covariates, treatment and outcome for one sample.

    X has shape (n, d); A and Y have shape (n,). A is binary for the AIPW
    and meta-learner estimators and continuous for the partially linear model.
    """

    X: NDArray
    A: NDArray
    Y: NDArray

    def __post_init__(self) -> None:
        self.X = np.asarray(self.X)
        self.A = np.asarray(self.A)
        self.Y = np.asarray(self.Y)
        if self.X.ndim != 2:
            raise ValueError(f"X must be 2-dimensional, got shape {self.X.shape}")
        if self.A.ndim != 1 or self.Y.ndim != 1:
            raise ValueError(
                f"A and Y must be 1-dimensional, got shapes {self.A.shape} and {self.Y.shape}"
            )
        n = self.X.shape[0]
        if self.A.shape[0] != n or self.Y.shape[0] != n:
            raise ValueError(
                f"X, A and Y must have the same number of rows: "
                f"got {n}, {self.A.shape[0]} and {self.Y.shape[0]}"
            )

    @property
    def num_samples(self) -> int:
        return self.X.shape[0]

    def subset(self, indices: NDArray) -> "Dataset":
        """Return the rows selected by ``indices`` as a new Dataset."""
        return Dataset(X=self.X[indices], A=self.A[indices], Y=self.Y[indices])


@dataclass
class TrainingInferenceData:
    """Data container for estimation with training and inference splits."""

    train: Dataset
    inf: Dataset


@dataclass
class NuisancePredictions:
    """
    Nuisance predictions for every unit of a sample.

    When produced by cross-fitting, entry i was predicted by models that
    were fitted without unit i.
    """

    propensity: NDArray
    treated_outcome: NDArray
    control_outcome: NDArray

    def __post_init__(self) -> None:
        self.propensity = np.asarray(self.propensity)
        self.treated_outcome = np.asarray(self.treated_outcome)
        self.control_outcome = np.asarray(self.control_outcome)
        shapes = {
            self.propensity.shape,
            self.treated_outcome.shape,
            self.control_outcome.shape,
        }
        if len(shapes) != 1:
            raise ValueError(f"Nuisance predictions must share one shape, got {shapes}")


@dataclass
class AverageTreatmentEffect:
    """Container for average treatment effect estimates."""

    ate: float
    ate_se: float

    def conf_int(self, alpha: float = 0.05) -> Tuple[float, float]:
        """
        Normal-approximation confidence interval.

        Parameters
        ----------
        alpha : float, optional
            One minus the nominal coverage, by default 0.05

        Returns
        -------
        Tuple[float, float]
            Lower and upper interval bounds
        """
        assert 0.0 < alpha < 1.0, f"alpha must be between 0 and 1, got {alpha}"
        z = norm.ppf(1 - alpha / 2)
        return (self.ate - z * self.ate_se, self.ate + z * self.ate_se)

    def covers(self, value: float, alpha: float = 0.05) -> bool:
        lower, upper = self.conf_int(alpha)
        return bool(lower <= value <= upper)


class PropensityModel(ABC):
    """Abstract base class for propensity score models."""

    @abstractmethod
    def fit(self, data: Dataset) -> None:
        """
        Fit the propensity model to training data.

        Parameters
        ----------
        data : Dataset
            Training data containing features (X) and treatment assignments (A)
        """
        pass

    @abstractmethod
    def predict(self, data: Dataset) -> NDArray:
        """
        Predict P(A = 1 | X) for the rows of ``data``.

        Parameters
        ----------
        data : Dataset
            Data containing features (X) to predict propensity scores for

        Returns
        -------
        NDArray
            Predicted propensity scores
        """
        pass


class OutcomeModel(ABC):
    """Abstract base class for outcome models E[Y | A, X]."""

    @abstractmethod
    def fit(self, data: Dataset) -> None:
        pass

    @abstractmethod
    def predict(self, data: Dataset) -> NDArray:
        """
        Predict outcomes at the treatment values stored in ``data.A``.

        Set ``data.A`` to all ones or all zeros to obtain the potential
        outcome regressions mu1(X) and mu0(X).
        """
        pass


class DataGenerator(ABC):
    """Abstract base class for synthetic data-generating processes."""

    @abstractmethod
    def generate(
        self,
        num_samples: int,
        treatment_effect: float,
        seed: int | None = None,
    ) -> Dataset:
        """
        Generate synthetic data for causal inference experiments.

        Parameters
        ----------
        num_samples : int
            Number of samples to generate
        treatment_effect : float
            Average treatment effect embedded in the data
        seed : int | None
            Random seed for reproducible data generation

        Returns
        -------
        Dataset
            Generated dataset containing features (X), treatment (A), and outcomes (Y)
        """
        pass


class OutcomeNoiseModel(ABC):
    """Abstract base class for outcome noise models."""

    @abstractmethod
    def sample(self, size: int, seed: int | None = None) -> NDArray:
        pass


class DataDecomposer(ABC):
    """Abstract base class for splitting a sample into training and inference sets."""

    @abstractmethod
    def decompose(self, data: Dataset) -> TrainingInferenceData:
        pass
