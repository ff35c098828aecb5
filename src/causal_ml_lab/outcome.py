# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import logging
from typing import Any, Dict

import numpy as np
import statsmodels.api as sm
from numpy.typing import NDArray
from sklearn.base import RegressorMixin, clone
from sklearn.ensemble import RandomForestRegressor
from sklearn.linear_model import LassoCV

from .types import Dataset, OutcomeModel

logger = logging.getLogger(__name__)


def _treatment_design(data: Dataset) -> NDArray:
    """Stack the treatment column in front of the covariates."""
    return np.column_stack((data.A, data.X))


class OLSOutcomeModel(OutcomeModel):
    """Linear regression of Y on (1, A, X); the treatment effect is a single coefficient."""

    def __init__(self) -> None:
        self._fitted_model: Any = None

    def fit(self, data: Dataset) -> None:
        design = sm.add_constant(_treatment_design(data), has_constant="add")
        self._fitted_model = sm.OLS(data.Y, design).fit()

    def predict(self, data: Dataset) -> NDArray:
        if self._fitted_model is None:
            raise ValueError("Model must be fitted before prediction")

        design = sm.add_constant(_treatment_design(data), has_constant="add")
        return np.asarray(self._fitted_model.predict(design))

    @property
    def treatment_coefficient(self) -> float:
        if self._fitted_model is None:
            raise ValueError("Model must be fitted before reading coefficients")
        return float(self._fitted_model.params[1])


class LassoOutcomeModel(OutcomeModel):
    """Lasso of Y on (A, X) with the penalty chosen by cross-validation."""

    def __init__(
        self,
        alphas: NDArray | None = None,
        cv_folds: int = 3,
        max_iter: int = 10000,
    ) -> None:
        """
        Initialize a LassoOutcomeModel instance.

        Parameters
        ----------
        alphas : NDArray, optional
            Penalty grid; LassoCV builds its own path when None
        cv_folds : int, optional
            Number of cross-validation folds, by default 3
        max_iter : int, optional
            Coordinate descent iterations, by default 10000
        """
        self.alphas = alphas
        self.cv_folds = cv_folds
        self.max_iter = max_iter
        self._fitted_model: Any = None

    def fit(self, data: Dataset) -> None:
        kwargs: Dict[str, Any] = {"cv": self.cv_folds, "max_iter": self.max_iter}
        if self.alphas is not None:
            kwargs["alphas"] = self.alphas
        model = LassoCV(**kwargs)
        model.fit(_treatment_design(data), data.Y)
        logger.debug("LassoOutcomeModel selected alpha=%g", model.alpha_)
        self._fitted_model = model

    def predict(self, data: Dataset) -> NDArray:
        if self._fitted_model is None:
            raise ValueError("Model must be fitted before prediction")

        return self._fitted_model.predict(_treatment_design(data))


class RandomForestOutcomeModel(OutcomeModel):
    """Single regression forest on (A, X), the S-learner style nuisance."""

    def __init__(
        self,
        n_estimators: int = 200,
        min_samples_leaf: int = 5,
        max_depth: int | None = None,
        random_state: int | None = None,
    ) -> None:
        self.n_estimators = n_estimators
        self.min_samples_leaf = min_samples_leaf
        self.max_depth = max_depth
        self.random_state = random_state
        self._fitted_model: Any = None

    def fit(self, data: Dataset) -> None:
        forest = RandomForestRegressor(
            n_estimators=self.n_estimators,
            min_samples_leaf=self.min_samples_leaf,
            max_depth=self.max_depth,
            random_state=self.random_state,
        )
        forest.fit(_treatment_design(data), data.Y)
        self._fitted_model = forest

    def predict(self, data: Dataset) -> NDArray:
        if self._fitted_model is None:
            raise ValueError("Model must be fitted before prediction")

        return self._fitted_model.predict(_treatment_design(data))


def _check_binary_arms(data: Dataset) -> None:
    if not np.all(np.isin(data.A, [0, 1])):
        raise ValueError("SeparateArmsOutcomeModel requires a binary treatment coded 0/1")


class SeparateArmsOutcomeModel(OutcomeModel):
    """
    Fits one copy of a scikit-learn regressor per treatment arm.

    Predictions for a unit use the regressor of the arm stored in ``data.A``,
    so the model can express arbitrary effect heterogeneity. This is the
    nuisance used by the T-learner.
    """

    def __init__(self, regressor: RegressorMixin | None = None) -> None:
        if regressor is None:
            regressor = RandomForestRegressor(n_estimators=200, min_samples_leaf=5)
        self.regressor = regressor
        self._arm_models: Dict[int, Any] = {}

    def fit(self, data: Dataset) -> None:
        _check_binary_arms(data)
        arm_models = {}
        for arm in (0, 1):
            mask = data.A == arm
            if not np.any(mask):
                raise ValueError(f"No units with treatment {arm} in training data")
            model = clone(self.regressor)
            model.fit(data.X[mask], data.Y[mask])
            arm_models[arm] = model
        self._arm_models = arm_models

    def predict(self, data: Dataset) -> NDArray:
        if not self._arm_models:
            raise ValueError("Model must be fitted before prediction")

        _check_binary_arms(data)
        predictions = np.empty(data.num_samples)
        for arm, model in self._arm_models.items():
            mask = data.A == arm
            if np.any(mask):
                predictions[mask] = model.predict(data.X[mask])
        return predictions


class LinearOutcomeModel(OutcomeModel):
    """
    Baseline outcome X @ coefficients with known coefficients.

    Used by the data generators; ``fit`` only checks dimensions and the
    treatment column is ignored.
    """

    def __init__(self, coefficients: NDArray, intercept: float = 0.0) -> None:
        self.coefficients = np.asarray(coefficients, dtype=float)
        self.intercept = intercept

    def fit(self, data: Dataset) -> None:
        if data.X.shape[1] != self.coefficients.shape[0]:
            raise ValueError(
                f"Expected {self.coefficients.shape[0]} covariates, got {data.X.shape[1]}"
            )

    def predict(self, data: Dataset) -> NDArray:
        return self.intercept + data.X @ self.coefficients
