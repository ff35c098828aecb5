# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

"""
Meta-learners for the conditional average treatment effect tau(x).

The S-learner and T-learner plug in outcome regressions directly; their
regularization bias does not vanish in the difference mu1 - mu0. The
DR-learner regresses cross-fitted AIPW pseudo-outcomes on X instead.
"""

import logging
from typing import Any

import numpy as np
from numpy.typing import NDArray
from sklearn.base import clone
from sklearn.ensemble import RandomForestRegressor

from .cross_fitting import CrossFitter
from .outcome import SeparateArmsOutcomeModel
from .propensity import LogisticPropensityModel
from .pseudo_outcome import aipw_pseudo_outcome
from .types import AverageTreatmentEffect, Dataset, OutcomeModel, PropensityModel

logger = logging.getLogger(__name__)


def _default_forest() -> RandomForestRegressor:
    return RandomForestRegressor(n_estimators=200, min_samples_leaf=5)


class SLearner:
    """One regressor on (A, X); tau(x) = f(1, x) - f(0, x)."""

    def __init__(self, regressor: Any = None) -> None:
        self.regressor = regressor if regressor is not None else _default_forest()
        self._fitted_model: Any = None

    def fit(self, data: Dataset) -> None:
        model = clone(self.regressor)
        model.fit(np.column_stack((data.A, data.X)), data.Y)
        self._fitted_model = model

    def effect(self, X: NDArray) -> NDArray:
        if self._fitted_model is None:
            raise ValueError("Learner must be fitted before predicting effects")
        n = X.shape[0]
        treated = self._fitted_model.predict(np.column_stack((np.ones(n), X)))
        control = self._fitted_model.predict(np.column_stack((np.zeros(n), X)))
        return treated - control


class TLearner:
    """Separate regressors per arm; tau(x) = mu1(x) - mu0(x)."""

    def __init__(self, regressor: Any = None) -> None:
        self.regressor = regressor if regressor is not None else _default_forest()
        self._outcome_model: SeparateArmsOutcomeModel | None = None

    def fit(self, data: Dataset) -> None:
        outcome_model = SeparateArmsOutcomeModel(self.regressor)
        outcome_model.fit(data)
        self._outcome_model = outcome_model

    def effect(self, X: NDArray) -> NDArray:
        if self._outcome_model is None:
            raise ValueError("Learner must be fitted before predicting effects")
        n = X.shape[0]
        treated = self._outcome_model.predict(Dataset(X=X, A=np.ones(n), Y=np.zeros(n)))
        control = self._outcome_model.predict(Dataset(X=X, A=np.zeros(n), Y=np.zeros(n)))
        return treated - control


class DRLearner:
    """
    Doubly robust learner.

    Nuisances are cross-fitted, the AIPW pseudo-outcome is formed for every
    unit and ``final_regressor`` is fitted to it on X.
    """

    def __init__(
        self,
        propensity_model: PropensityModel | None = None,
        outcome_model: OutcomeModel | None = None,
        final_regressor: Any = None,
        cross_fitter: CrossFitter | None = None,
    ) -> None:
        """
        Parameters
        ----------
        propensity_model : PropensityModel, optional
            Template for e(X), by default LogisticPropensityModel()
        outcome_model : OutcomeModel, optional
            Template for E[Y | A, X], by default a SeparateArmsOutcomeModel forest
        final_regressor : Any, optional
            scikit-learn regressor for the pseudo-outcome, by default a random forest
        cross_fitter : CrossFitter, optional
            Fold scheme, by default CrossFitter(n_folds=5)
        """
        self.propensity_model = (
            propensity_model if propensity_model is not None else LogisticPropensityModel()
        )
        self.outcome_model = (
            outcome_model if outcome_model is not None else SeparateArmsOutcomeModel()
        )
        self.final_regressor = (
            final_regressor if final_regressor is not None else _default_forest()
        )
        self.cross_fitter = cross_fitter if cross_fitter is not None else CrossFitter()
        self._final_model: Any = None
        self._pseudo_outcomes: NDArray | None = None

    def fit(self, data: Dataset) -> None:
        nuisances = self.cross_fitter.predict_nuisances(
            data, self.propensity_model, self.outcome_model
        )
        pseudo_outcomes = aipw_pseudo_outcome(data.A, data.Y, nuisances)
        final_model = clone(self.final_regressor)
        final_model.fit(data.X, pseudo_outcomes)
        self._final_model = final_model
        self._pseudo_outcomes = pseudo_outcomes
        logger.debug(
            "DRLearner fitted on %d pseudo-outcomes (mean %.4f)",
            pseudo_outcomes.shape[0],
            pseudo_outcomes.mean(),
        )

    def effect(self, X: NDArray) -> NDArray:
        if self._final_model is None:
            raise ValueError("Learner must be fitted before predicting effects")
        return self._final_model.predict(X)

    def pseudo_outcomes(self) -> NDArray:
        if self._pseudo_outcomes is None:
            raise ValueError("Learner must be fitted before reading pseudo-outcomes")
        return self._pseudo_outcomes

    def ate(self) -> AverageTreatmentEffect:
        scores = self.pseudo_outcomes()
        return AverageTreatmentEffect(
            ate=float(scores.mean()),
            ate_se=float(scores.std(ddof=1) / np.sqrt(len(scores))),
        )
