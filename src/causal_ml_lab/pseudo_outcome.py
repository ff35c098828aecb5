# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import numpy as np
from numpy.typing import NDArray

from .types import NuisancePredictions


def _check_lengths(**arrays: NDArray) -> None:
    lengths = {name: np.asarray(array).shape for name, array in arrays.items()}
    if len(set(lengths.values())) != 1:
        raise ValueError(f"Arrays must share one shape, got {lengths}")


def aipw_pseudo_outcome(
    A: NDArray, Y: NDArray, nuisances: NuisancePredictions
) -> NDArray:
    """
    Augmented inverse-probability-weighted score for each unit.

        psi = mu1 - mu0 + A (Y - mu1) / e - (1 - A)(Y - mu0) / (1 - e)

    Its sample mean estimates the ATE; its regression on X estimates the CATE.

    Parameters
    ----------
    A : NDArray
        Binary treatment
    Y : NDArray
        Observed outcome
    nuisances : NuisancePredictions
        Propensity e(X) and potential-outcome regressions mu1(X), mu0(X)

    Returns
    -------
    NDArray
        Pseudo-outcomes, one per unit
    """
    _check_lengths(A=A, Y=Y, propensity=nuisances.propensity)
    e = nuisances.propensity
    mu1 = nuisances.treated_outcome
    mu0 = nuisances.control_outcome
    return (
        mu1
        - mu0
        + (A / e) * (Y - mu1)
        - ((1 - A) / (1 - e)) * (Y - mu0)
    )


def ipw_pseudo_outcome(A: NDArray, Y: NDArray, propensity: NDArray) -> NDArray:
    """Horvitz-Thompson score A Y / e - (1 - A) Y / (1 - e)."""
    _check_lengths(A=A, Y=Y, propensity=propensity)
    return A * Y / propensity - (1 - A) * Y / (1 - propensity)
