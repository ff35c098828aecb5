# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

"""
K-fold cross-fitting of nuisance functions.

Every unit receives predictions from models fitted on the other folds only,
which removes the own-observation overfitting bias that in-sample nuisance
estimates carry into plug-in and AIPW estimators.
"""

import copy
import logging
from typing import Any, List, Tuple

import numpy as np
from numpy.typing import NDArray
from sklearn.base import clone
from sklearn.model_selection import KFold, StratifiedKFold

from .types import Dataset, NuisancePredictions, OutcomeModel, PropensityModel

logger = logging.getLogger(__name__)


def make_folds(
    num_samples: int,
    n_folds: int,
    shuffle: bool = True,
    seed: int | None = None,
    strata: NDArray | None = None,
) -> List[NDArray]:
    """
    Partition ``range(num_samples)`` into ``n_folds`` disjoint index arrays.

    Parameters
    ----------
    num_samples : int
        Sample size n
    n_folds : int
        Number of folds K, 2 <= K <= n
    shuffle : bool, optional
        Permute units before partitioning, by default True
    seed : int | None, optional
        Seed for the permutation; the global numpy RNG is used when None
    strata : NDArray | None, optional
        Labels to stratify on (e.g. the treatment); each fold then keeps
        roughly the sample share of every label

    Returns
    -------
    List[NDArray]
        Sorted held-out indices for each fold. Without strata fold sizes
        differ by at most one; with strata by at most the number of labels.
    """
    if not 2 <= n_folds <= num_samples:
        raise ValueError(
            f"n_folds must be between 2 and the sample size {num_samples}, got {n_folds}"
        )
    random_state = seed if shuffle else None
    placeholder = np.zeros((num_samples, 1))
    if strata is None:
        splitter = KFold(n_splits=n_folds, shuffle=shuffle, random_state=random_state)
        splits = splitter.split(placeholder)
    else:
        strata = np.asarray(strata)
        if strata.shape[0] != num_samples:
            raise ValueError(
                f"strata has {strata.shape[0]} entries for {num_samples} samples"
            )
        splitter = StratifiedKFold(
            n_splits=n_folds, shuffle=shuffle, random_state=random_state
        )
        splits = splitter.split(placeholder, strata)
    return [np.sort(test_idx) for _, test_idx in splits]


def nuisance_predictions(
    data: Dataset,
    propensity_model: PropensityModel,
    outcome_model: OutcomeModel,
) -> NuisancePredictions:
    """
    Evaluate fitted nuisance models on ``data``.

    The outcome model is queried twice, with the treatment set to one and to
    zero for every unit, to obtain mu1(X) and mu0(X).
    """
    n = data.num_samples
    treated_data = Dataset(X=data.X, A=np.ones(n), Y=data.Y)
    control_data = Dataset(X=data.X, A=np.zeros(n), Y=data.Y)
    return NuisancePredictions(
        propensity=propensity_model.predict(data),
        treated_outcome=outcome_model.predict(treated_data),
        control_outcome=outcome_model.predict(control_data),
    )


def in_sample_nuisances(
    data: Dataset,
    propensity_model: PropensityModel,
    outcome_model: OutcomeModel,
) -> NuisancePredictions:
    """
    Fit the nuisance models on all of ``data`` and predict on the same units.

    This is the no-sample-splitting baseline; with flexible learners its
    predictions are overfitted to each unit's own outcome.
    """
    propensity_model.fit(data)
    outcome_model.fit(data)
    return nuisance_predictions(data, propensity_model, outcome_model)


class CrossFitter:
    """
    K-fold cross-fitting of propensity and outcome models.

    The models passed to ``predict_nuisances`` act as templates: a fresh
    deep copy is fitted on each training complement, so the caller's objects
    are never fitted or mutated.
    """

    def __init__(
        self,
        n_folds: int = 5,
        shuffle: bool = True,
        stratify_by_treatment: bool = True,
        seed: int | None = None,
    ) -> None:
        """
        Parameters
        ----------
        n_folds : int, optional
            Number of folds K, by default 5
        shuffle : bool, optional
            Permute units before partitioning, by default True
        stratify_by_treatment : bool, optional
            Keep the treated share roughly constant across folds, by default True.
            Only used for binary treatments.
        seed : int | None, optional
            Seed for the fold permutation
        """
        assert n_folds >= 2, f"n_folds must be at least 2, got {n_folds}"
        self.n_folds = n_folds
        self.shuffle = shuffle
        self.stratify_by_treatment = stratify_by_treatment
        self.seed = seed

    def folds(self, data: Dataset) -> List[NDArray]:
        strata = None
        if self.stratify_by_treatment and np.all(np.isin(data.A, [0, 1])):
            smallest_arm = int(min(np.sum(data.A == 1), np.sum(data.A == 0)))
            if smallest_arm >= self.n_folds:
                strata = data.A
            else:
                # StratifiedKFold needs every arm to reach each fold
                logger.debug(
                    "Smallest treatment arm has %d units for %d folds; "
                    "using unstratified folds",
                    smallest_arm,
                    self.n_folds,
                )
        return make_folds(
            data.num_samples,
            self.n_folds,
            shuffle=self.shuffle,
            seed=self.seed,
            strata=strata,
        )

    def split(self, data: Dataset) -> List[Tuple[NDArray, NDArray]]:
        """Return (training complement, held-out fold) index pairs."""
        all_idx = np.arange(data.num_samples)
        return [
            (np.setdiff1d(all_idx, test_idx, assume_unique=True), test_idx)
            for test_idx in self.folds(data)
        ]

    def predict_nuisances(
        self,
        data: Dataset,
        propensity_model: PropensityModel,
        outcome_model: OutcomeModel,
    ) -> NuisancePredictions:
        """
        Out-of-fold propensity and potential-outcome predictions.

        Parameters
        ----------
        data : Dataset
            Full sample with a binary treatment
        propensity_model : PropensityModel
            Unfitted template for e(X)
        outcome_model : OutcomeModel
            Unfitted template for E[Y | A, X]

        Returns
        -------
        NuisancePredictions
            Predictions aligned with the original row order of ``data``
        """
        n = data.num_samples
        propensity = np.empty(n)
        treated_outcome = np.empty(n)
        control_outcome = np.empty(n)

        for fold, (train_idx, test_idx) in enumerate(self.split(data)):
            train = data.subset(train_idx)
            treated_share = float(np.mean(train.A))
            if treated_share in (0.0, 1.0):
                raise ValueError(
                    f"Training complement of fold {fold} contains a single treatment arm"
                )
            logger.debug(
                "Fold %d/%d: training on %d units (treated share %.3f), predicting %d",
                fold + 1,
                self.n_folds,
                train_idx.shape[0],
                treated_share,
                test_idx.shape[0],
            )
            fold_propensity = copy.deepcopy(propensity_model)
            fold_outcome = copy.deepcopy(outcome_model)
            fold_propensity.fit(train)
            fold_outcome.fit(train)

            predictions = nuisance_predictions(
                data.subset(test_idx), fold_propensity, fold_outcome
            )
            propensity[test_idx] = predictions.propensity
            treated_outcome[test_idx] = predictions.treated_outcome
            control_outcome[test_idx] = predictions.control_outcome

        return NuisancePredictions(
            propensity=propensity,
            treated_outcome=treated_outcome,
            control_outcome=control_outcome,
        )

    def predict_regression(
        self,
        X: NDArray,
        y: NDArray,
        estimator: Any,
        method: str = "predict",
        strata: NDArray | None = None,
    ) -> NDArray:
        """
        Out-of-fold predictions of a scikit-learn estimator.

        Parameters
        ----------
        X : NDArray
            Features, shape (n, d)
        y : NDArray
            Target, shape (n,)
        estimator : Any
            Unfitted scikit-learn estimator; cloned for every fold
        method : str, optional
            "predict", or "predict_proba" to return P(y = 1), by default "predict"
        strata : NDArray | None, optional
            Labels to stratify the folds on

        Returns
        -------
        NDArray
            Predictions aligned with the rows of ``X``
        """
        if method not in ("predict", "predict_proba"):
            raise ValueError(f"method must be 'predict' or 'predict_proba', got {method!r}")
        X = np.asarray(X)
        y = np.asarray(y)
        if X.shape[0] != y.shape[0]:
            raise ValueError(f"X has {X.shape[0]} rows but y has {y.shape[0]} entries")

        n = X.shape[0]
        all_idx = np.arange(n)
        predictions = np.empty(n)
        folds = make_folds(
            n, self.n_folds, shuffle=self.shuffle, seed=self.seed, strata=strata
        )
        for fold, test_idx in enumerate(folds):
            train_idx = np.setdiff1d(all_idx, test_idx, assume_unique=True)
            model = clone(estimator)
            model.fit(X[train_idx], y[train_idx])
            if method == "predict":
                predictions[test_idx] = model.predict(X[test_idx])
            else:
                positive = list(model.classes_).index(1)
                predictions[test_idx] = model.predict_proba(X[test_idx])[:, positive]
            logger.debug("Fold %d/%d fitted %s", fold + 1, self.n_folds, type(model).__name__)
        return predictions
