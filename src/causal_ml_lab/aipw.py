# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-unsafe

import copy
import logging

import numpy as np
from numpy.typing import NDArray

from .cross_fitting import CrossFitter, nuisance_predictions
from .pseudo_outcome import aipw_pseudo_outcome
from .types import (
    AverageTreatmentEffect,
    Dataset,
    NuisancePredictions,
    OutcomeModel,
    PropensityModel,
    TrainingInferenceData,
)

logger = logging.getLogger(__name__)


class AIPW:
    """Augmented Inverse Probability Weighting (AIPW) estimator."""

    def __init__(self, cross_fitter: CrossFitter | None = None):
        """
        Parameters
        ----------
        cross_fitter : CrossFitter, optional
            Fold scheme used when ``fit`` receives a full Dataset, by default
            CrossFitter(n_folds=5)
        """
        self.cross_fitter = cross_fitter if cross_fitter is not None else CrossFitter()
        self._ate = None
        self._scores = None
        self._nuisances = None

    def fit(
        self,
        data: Dataset | TrainingInferenceData,
        propensity_model: PropensityModel,
        outcome_model: OutcomeModel,
        cross_fit: bool = False,
    ) -> None:
        """
        Fit the AIPW estimator.

        Parameters
        ----------
        data : Dataset or TrainingInferenceData
            A full sample, scored with K-fold cross-fitting; or a single
            train/inference split, scored on the inference half
        propensity_model : PropensityModel
            Propensity score model
        outcome_model : OutcomeModel
            Outcome model
        cross_fit : bool, optional
            Only for TrainingInferenceData: also fit on the inference half,
            score the training half and pool both, by default False
        """
        if isinstance(data, Dataset):
            if cross_fit:
                logger.debug("cross_fit flag ignored: a full Dataset is always cross-fitted")
            nuisances = self.cross_fitter.predict_nuisances(
                data, propensity_model, outcome_model
            )
            scores = aipw_pseudo_outcome(data.A, data.Y, nuisances)
        else:
            nuisances, scores = self._split_sample_scores(
                data.train, data.inf, propensity_model, outcome_model
            )
            if cross_fit:
                swapped_nuisances, swapped_scores = self._split_sample_scores(
                    data.inf, data.train, propensity_model, outcome_model
                )
                nuisances = NuisancePredictions(
                    propensity=np.concatenate(
                        [nuisances.propensity, swapped_nuisances.propensity]
                    ),
                    treated_outcome=np.concatenate(
                        [nuisances.treated_outcome, swapped_nuisances.treated_outcome]
                    ),
                    control_outcome=np.concatenate(
                        [nuisances.control_outcome, swapped_nuisances.control_outcome]
                    ),
                )
                scores = np.concatenate([scores, swapped_scores])

        self._nuisances = nuisances
        self._scores = scores
        ate_se = scores.std(ddof=1) / np.sqrt(len(scores))
        self._ate = AverageTreatmentEffect(ate=float(scores.mean()), ate_se=float(ate_se))
        logger.debug(
            "AIPW estimate %.4f (se %.4f) from %d scores",
            self._ate.ate,
            self._ate.ate_se,
            len(scores),
        )

    @staticmethod
    def _split_sample_scores(
        fit_data: Dataset,
        score_data: Dataset,
        propensity_model: PropensityModel,
        outcome_model: OutcomeModel,
    ) -> tuple[NuisancePredictions, NDArray]:
        """Fit copies of the models on ``fit_data`` and score ``score_data``."""
        fitted_propensity = copy.deepcopy(propensity_model)
        fitted_outcome = copy.deepcopy(outcome_model)
        fitted_propensity.fit(fit_data)
        fitted_outcome.fit(fit_data)
        nuisances = nuisance_predictions(score_data, fitted_propensity, fitted_outcome)
        return nuisances, aipw_pseudo_outcome(score_data.A, score_data.Y, nuisances)

    def ate(self) -> AverageTreatmentEffect:
        """
        Get the average treatment effect estimate.

        Returns
        -------
        AverageTreatmentEffect
            The estimated ATE and its standard error

        Raises
        ------
        ValueError
            If the model has not been fitted yet
        """
        if self._ate is None:
            raise ValueError("Model has not been fitted yet. Call fit() first.")
        return self._ate

    def scores(self) -> NDArray:
        """AIPW pseudo-outcomes underlying the last estimate."""
        if self._scores is None:
            raise ValueError("Model has not been fitted yet. Call fit() first.")
        return self._scores

    def nuisances(self) -> NuisancePredictions:
        if self._nuisances is None:
            raise ValueError("Model has not been fitted yet. Call fit() first.")
        return self._nuisances
