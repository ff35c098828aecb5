# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

"""
Estimators for the partially linear model Y = theta A + g(X) + eps.

``PartiallyLinearDML`` partials X out of Y and A with cross-fitted learners
and regresses residual on residual. ``DoubleSelection`` is the Lasso-based
post-selection OLS; with ``selection="single"`` it only keeps controls that
predict Y, which omits confounders that mainly drive A.
"""

import logging
from typing import Any, List

import numpy as np
import statsmodels.api as sm
from numpy.typing import NDArray
from sklearn.ensemble import RandomForestRegressor
from sklearn.linear_model import LassoCV

from .cross_fitting import CrossFitter
from .types import AverageTreatmentEffect, Dataset

logger = logging.getLogger(__name__)


class PartiallyLinearDML:
    """Cross-fitted residual-on-residual (Robinson) estimator of theta."""

    def __init__(
        self,
        outcome_regressor: Any = None,
        treatment_regressor: Any = None,
        cross_fitter: CrossFitter | None = None,
    ) -> None:
        """
        Parameters
        ----------
        outcome_regressor : Any, optional
            scikit-learn regressor for l(X) = E[Y | X], by default a random forest
        treatment_regressor : Any, optional
            scikit-learn regressor for m(X) = E[A | X], by default a random forest
        cross_fitter : CrossFitter, optional
            Fold scheme, by default 5 unstratified folds
        """
        self.outcome_regressor = (
            outcome_regressor
            if outcome_regressor is not None
            else RandomForestRegressor(n_estimators=200, min_samples_leaf=5)
        )
        self.treatment_regressor = (
            treatment_regressor
            if treatment_regressor is not None
            else RandomForestRegressor(n_estimators=200, min_samples_leaf=5)
        )
        self.cross_fitter = (
            cross_fitter
            if cross_fitter is not None
            else CrossFitter(stratify_by_treatment=False)
        )
        self._effect: AverageTreatmentEffect | None = None
        self._outcome_residuals: NDArray | None = None
        self._treatment_residuals: NDArray | None = None

    def fit(self, data: Dataset) -> None:
        outcome_residuals = data.Y - self.cross_fitter.predict_regression(
            data.X, data.Y, self.outcome_regressor
        )
        treatment_residuals = data.A - self.cross_fitter.predict_regression(
            data.X, data.A, self.treatment_regressor
        )

        denominator = np.mean(treatment_residuals**2)
        if denominator <= 0:
            raise ValueError("Treatment is perfectly predicted by X; theta is not identified")
        theta = np.mean(treatment_residuals * outcome_residuals) / denominator

        score = (outcome_residuals - theta * treatment_residuals) * treatment_residuals
        n = data.num_samples
        se = np.sqrt(np.mean(score**2)) / (denominator * np.sqrt(n))

        self._outcome_residuals = outcome_residuals
        self._treatment_residuals = treatment_residuals
        self._effect = AverageTreatmentEffect(ate=float(theta), ate_se=float(se))
        logger.debug("PartiallyLinearDML theta=%.4f se=%.4f", theta, se)

    def effect(self) -> AverageTreatmentEffect:
        if self._effect is None:
            raise ValueError("Model has not been fitted yet. Call fit() first.")
        return self._effect

    def residuals(self) -> tuple[NDArray, NDArray]:
        """Cross-fitted (outcome, treatment) residuals."""
        if self._outcome_residuals is None or self._treatment_residuals is None:
            raise ValueError("Model has not been fitted yet. Call fit() first.")
        return self._outcome_residuals, self._treatment_residuals


class DoubleSelection:
    """Post-Lasso OLS of Y on A and the selected controls."""

    def __init__(
        self,
        selection: str = "double",
        cv_folds: int = 5,
        max_iter: int = 10000,
        cov_type: str = "HC1",
    ) -> None:
        """
        Parameters
        ----------
        selection : str, optional
            "double" selects controls predictive of Y or of A; "single" only of Y
        cv_folds : int, optional
            Folds used by LassoCV to pick the penalty, by default 5
        max_iter : int, optional
            Coordinate descent iterations, by default 10000
        cov_type : str, optional
            statsmodels covariance type for the final OLS, by default "HC1"
        """
        if selection not in ("double", "single"):
            raise ValueError(f"selection must be 'double' or 'single', got {selection!r}")
        self.selection = selection
        self.cv_folds = cv_folds
        self.max_iter = max_iter
        self.cov_type = cov_type
        self._selected: List[int] | None = None
        self._effect: AverageTreatmentEffect | None = None
        self._fitted_model: Any = None

    def _lasso_support(self, X: NDArray, target: NDArray) -> NDArray:
        lasso = LassoCV(cv=self.cv_folds, max_iter=self.max_iter)
        lasso.fit(X, target)
        return np.flatnonzero(np.abs(lasso.coef_) > 1e-10)

    def fit(self, data: Dataset) -> None:
        selected = set(self._lasso_support(data.X, data.Y).tolist())
        if self.selection == "double":
            selected |= set(self._lasso_support(data.X, data.A).tolist())
        columns = sorted(selected)
        logger.debug(
            "%s selection kept %d of %d controls",
            self.selection,
            len(columns),
            data.X.shape[1],
        )

        design = sm.add_constant(
            np.column_stack((data.A, data.X[:, columns])), has_constant="add"
        )
        fitted = sm.OLS(data.Y, design).fit(cov_type=self.cov_type)
        self._selected = columns
        self._fitted_model = fitted
        self._effect = AverageTreatmentEffect(
            ate=float(fitted.params[1]), ate_se=float(fitted.bse[1])
        )

    def effect(self) -> AverageTreatmentEffect:
        if self._effect is None:
            raise ValueError("Model has not been fitted yet. Call fit() first.")
        return self._effect

    def selected_columns(self) -> List[int]:
        if self._selected is None:
            raise ValueError("Model has not been fitted yet. Call fit() first.")
        return self._selected
