# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import logging
from typing import Any, Union

import numpy as np
import statsmodels.api as sm
from numpy.typing import NDArray
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegressionCV

from .types import Dataset, PropensityModel

logger = logging.getLogger(__name__)


def sigmoid(z: Union[float, NDArray]) -> Union[float, NDArray]:
    """
    Compute the logistic sigmoid 1 / (1 + exp(-z)).

    Parameters
    ----------
    z : float or NDArray
        Linear index

    Returns
    -------
    float or NDArray
        Value(s) in (0, 1)
    """
    return 1 / (1 + np.exp(-z))


def _clip_scores(scores: NDArray, clip: float) -> NDArray:
    """Clip propensity scores to [clip, 1 - clip], logging how many were moved."""
    scores = np.asarray(scores, dtype=float)
    num_clipped = int(np.sum((scores < clip) | (scores > 1 - clip)))
    if num_clipped > 0:
        logger.warning(
            "Clipped %d of %d propensity scores to [%g, %g]",
            num_clipped,
            scores.shape[0],
            clip,
            1 - clip,
        )
    return np.clip(scores, clip, 1 - clip)


def _check_binary_treatment(data: Dataset) -> None:
    if not np.all(np.isin(data.A, [0, 1])):
        raise ValueError("Propensity models require a binary treatment coded 0/1")
    treated_share = float(np.mean(data.A))
    if treated_share in (0.0, 1.0):
        raise ValueError(
            f"Propensity model needs both treatment arms, got treated share {treated_share}"
        )


class ConstantPropensityModel(PropensityModel):
    """Known propensity score, e.g. a Bernoulli randomized experiment."""

    def __init__(self, propensity_score: float = 0.5) -> None:
        assert (
            0.0 < propensity_score < 1.0
        ), f"Propensity score must be between 0 and 1: got {propensity_score}"
        self._propensity_score = propensity_score

    def fit(self, data: Dataset) -> None:
        pass

    def predict(self, data: Dataset) -> NDArray:
        return np.full(data.num_samples, self._propensity_score)


class AveragePropensityModel(PropensityModel):
    """Predicts the treated share of the training sample for every unit."""

    def __init__(self) -> None:
        self._propensity_score: float | None = None

    def fit(self, data: Dataset) -> None:
        propensity_score = float(np.mean(data.A))
        assert (
            0.0 < propensity_score < 1.0
        ), f"Propensity score must be between 0 and 1: got {propensity_score}"
        self._propensity_score = propensity_score

    def predict(self, data: Dataset) -> NDArray:
        if self._propensity_score is None:
            raise ValueError("Model must be fitted before prediction")
        return np.full(data.num_samples, self._propensity_score)


class LogisticPropensityModel(PropensityModel):
    """Unpenalized logistic regression of A on X with an intercept (statsmodels Logit)."""

    def __init__(
        self,
        maxiter: int = 1000,
        fit_method: str = "bfgs",
        clip_for_stability: float = 1e-3,
    ) -> None:
        """
        Initialize a logistic propensity model.

        Parameters
        ----------
        maxiter : int, optional
            Maximum number of optimizer iterations, by default 1000
        fit_method : str, optional
            statsmodels optimizer name, by default 'bfgs'
        clip_for_stability : float, optional
            Scores are clipped to [clip, 1 - clip], by default 1e-3
        """
        self.maxiter = maxiter
        self.fit_method = fit_method
        self.clip_for_stability = clip_for_stability
        self._fitted_model: Any = None

    def fit(self, data: Dataset) -> None:
        _check_binary_treatment(data)
        design = sm.add_constant(data.X, has_constant="add")
        self._fitted_model = sm.Logit(data.A, design).fit(
            maxiter=self.maxiter, method=self.fit_method, disp=False
        )

    def predict(self, data: Dataset) -> NDArray:
        if self._fitted_model is None:
            raise ValueError("Model must be fitted before prediction")

        design = sm.add_constant(data.X, has_constant="add")
        return _clip_scores(
            np.asarray(self._fitted_model.predict(design)), self.clip_for_stability
        )


class LassoLogisticPropensityModel(PropensityModel):
    """L1-penalized logistic regression with the penalty chosen by cross-validation."""

    def __init__(
        self,
        Cs: Union[int, NDArray] = 10,
        cv_folds: int = 3,
        clip_for_stability: float = 1e-3,
        solver: str = "liblinear",
    ) -> None:
        """
        Initialize a Lasso logistic propensity model.

        Parameters
        ----------
        Cs : int or NDArray, optional
            Inverse regularization strengths searched by LogisticRegressionCV, by default 10
        cv_folds : int, optional
            Number of cross-validation folds, by default 3
        clip_for_stability : float, optional
            Scores are clipped to [clip, 1 - clip], by default 1e-3
        solver : str, optional
            Solver supporting the L1 penalty, by default "liblinear"
        """
        self.Cs = Cs
        self.cv_folds = cv_folds
        self.clip_for_stability = clip_for_stability
        self.solver = solver
        self._fitted_model: Any = None

    def fit(self, data: Dataset) -> None:
        _check_binary_treatment(data)
        model = LogisticRegressionCV(
            Cs=self.Cs,
            cv=self.cv_folds,
            penalty="l1",
            solver=self.solver,
            scoring="neg_log_loss",
        )
        model.fit(data.X, data.A)
        logger.debug("LassoLogisticPropensityModel selected C=%g", model.C_[0])
        self._fitted_model = model

    def predict(self, data: Dataset) -> NDArray:
        if self._fitted_model is None:
            raise ValueError("Model must be fitted before prediction")

        propensity_scores = self._fitted_model.predict_proba(data.X)[:, 1]
        return _clip_scores(propensity_scores, self.clip_for_stability)


class RandomForestPropensityModel(PropensityModel):
    """Classification forest estimate of the propensity score."""

    def __init__(
        self,
        n_estimators: int = 200,
        min_samples_leaf: int = 5,
        max_depth: int | None = None,
        clip_for_stability: float = 1e-2,
        random_state: int | None = None,
    ) -> None:
        self.n_estimators = n_estimators
        self.min_samples_leaf = min_samples_leaf
        self.max_depth = max_depth
        self.clip_for_stability = clip_for_stability
        self.random_state = random_state
        self._fitted_model: Any = None

    def fit(self, data: Dataset) -> None:
        _check_binary_treatment(data)
        forest = RandomForestClassifier(
            n_estimators=self.n_estimators,
            min_samples_leaf=self.min_samples_leaf,
            max_depth=self.max_depth,
            random_state=self.random_state,
        )
        forest.fit(data.X, data.A)
        self._fitted_model = forest

    def predict(self, data: Dataset) -> NDArray:
        if self._fitted_model is None:
            raise ValueError("Model must be fitted before prediction")

        treated_column = list(self._fitted_model.classes_).index(1)
        scores = self._fitted_model.predict_proba(data.X)[:, treated_column]
        return _clip_scores(scores, self.clip_for_stability)


class SigmoidPropensityModel(PropensityModel):
    """
    Propensity score sigmoid(offset + X @ weight) with known weights.

    Used by the data generators to assign treatment; ``fit`` is a no-op.
    """

    def __init__(
        self,
        sigmoid_weight: NDArray,
        offset: float = 0.0,
        clip_for_stability: float = 1e-3,
    ) -> None:
        self.sigmoid_weight = np.asarray(sigmoid_weight)
        self.offset = offset
        self.clip_for_stability = clip_for_stability

    def fit(self, data: Dataset) -> None:
        pass

    def predict(self, data: Dataset) -> NDArray:
        if data.X.shape[1] != self.sigmoid_weight.shape[0]:
            raise ValueError(
                f"Expected {self.sigmoid_weight.shape[0]} covariates, got {data.X.shape[1]}"
            )
        propensity_scores = sigmoid(self.offset + data.X @ self.sigmoid_weight)
        return np.clip(
            propensity_scores, self.clip_for_stability, 1 - self.clip_for_stability
        )
