# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

from typing import Callable

import numpy as np
from numpy.typing import NDArray
from scipy.stats import betaprime

from .outcome import LinearOutcomeModel
from .propensity import SigmoidPropensityModel
from .types import (
    DataGenerator,
    Dataset,
    OutcomeModel,
    OutcomeNoiseModel,
    PropensityModel,
)


def random_coefficients(
    dim: int, std_coefficients: float = 1.0, sparsity_factor: float = 0.0
) -> NDArray:
    """
    Draw Gaussian coefficients and zero out the trailing fraction ``sparsity_factor``.

    Parameters
    ----------
    dim : int
        Number of coefficients
    std_coefficients : float, optional
        Standard deviation of the nonzero coefficients, by default 1.0
    sparsity_factor : float, optional
        Fraction of coefficients set to zero, 0.0 <= sparsity_factor < 1.0

    Returns
    -------
    NDArray
        Coefficient vector of length ``dim``
    """
    assert (
        0.0 <= sparsity_factor < 1.0
    ), f"sparsity_factor must be between 0.0 (inclusive) and 1.0 (exclusive), got {sparsity_factor}"
    coefficients = np.random.randn(dim) * std_coefficients
    num_zeros = int(np.ceil(dim * sparsity_factor))
    if num_zeros >= dim:
        num_zeros = dim - 1
    if num_zeros > 0:
        coefficients[-num_zeros:] = 0.0
    return coefficients


def toeplitz_covariance(dim: int, correlation: float) -> NDArray:
    """Covariance with entries correlation ** |j - k|."""
    assert 0.0 <= correlation < 1.0, f"correlation must be in [0, 1), got {correlation}"
    idx = np.arange(dim)
    return correlation ** np.abs(idx[:, None] - idx[None, :])


def _gaussian_covariates(
    num_samples: int, dim: int, std_covariates: float, correlation: float
) -> NDArray:
    return (
        np.random.multivariate_normal(
            np.zeros(dim), toeplitz_covariance(dim, correlation), size=num_samples
        )
        * std_covariates
    )


class HomoGaussian(OutcomeNoiseModel):
    """I.i.d. N(0, std_noise^2) noise."""

    def __init__(self, std_noise: float) -> None:
        self.std_noise = std_noise

    def sample(self, size: int, seed: int | None = None) -> NDArray:
        if seed is not None:
            np.random.seed(seed)
        return np.random.normal(0, self.std_noise, size)


class HeteroGaussian(OutcomeNoiseModel):
    """
    Zero-mean Gaussian noise with unit-specific variance.

    Each unit draws a variance multiplier from a Beta-prime distribution, so
    the noise is a scale mixture of normals with heavier tails than
    ``HomoGaussian``.
    """

    def __init__(
        self, std_noise: float, betaprime_a: float, betaprime_b: float
    ) -> None:
        """
        Parameters
        ----------
        std_noise : float
            Base standard deviation for the noise
        betaprime_a : float
            Alpha parameter of the Beta-prime variance multiplier
        betaprime_b : float
            Beta parameter of the Beta-prime variance multiplier
        """
        self.std_noise = std_noise
        self.betaprime_a = betaprime_a
        self.betaprime_b = betaprime_b

    def sample(self, size: int, seed: int | None = None) -> NDArray:
        if seed is not None:
            np.random.seed(seed)
        variance_scale = np.asarray(
            betaprime.rvs(a=self.betaprime_a, b=self.betaprime_b, size=size)
        )
        return np.random.normal(0, 1, size) * self.std_noise * np.sqrt(variance_scale)


class BinomialGaussian(DataGenerator):
    """
    Gaussian covariates, Bernoulli treatment and a constant treatment effect.

    - X ~ N(0, std_covariates^2 * Sigma) with Toeplitz correlation Sigma
    - A ~ Bernoulli(e(X)) with e given by ``propensity_model``
    - Y = mu0(X) + A * treatment_effect + noise
    """

    def __init__(
        self,
        dim_covariates: int,
        std_covariates: float = 1.0,
        outcome_model: OutcomeModel | None = None,
        propensity_model: PropensityModel | None = None,
        outcome_noise_model: OutcomeNoiseModel | None = None,
        correlation: float = 0.0,
    ) -> None:
        """
        Initialize the generator.

        Missing models are replaced by linear ones with random Gaussian
        coefficients, drawn once here from the global numpy RNG.

        Parameters
        ----------
        dim_covariates : int
            Dimension of covariates
        std_covariates : float, optional
            Standard deviation of each covariate, by default 1.0
        outcome_model : OutcomeModel, optional
            Baseline outcome mu0(X); must not need fitting
        propensity_model : PropensityModel, optional
            Treatment assignment model; must not need fitting
        outcome_noise_model : OutcomeNoiseModel, optional
            Noise model, by default HomoGaussian(1.0)
        correlation : float, optional
            Toeplitz correlation between covariates, by default 0.0
        """
        if outcome_model is None:
            outcome_model = LinearOutcomeModel(random_coefficients(dim_covariates))
        if propensity_model is None:
            propensity_model = SigmoidPropensityModel(
                random_coefficients(dim_covariates, std_coefficients=0.5)
            )
        if outcome_noise_model is None:
            outcome_noise_model = HomoGaussian(std_noise=1.0)
        self.dim_covariates = dim_covariates
        self.std_covariates = std_covariates
        self.outcome_model = outcome_model
        self.propensity_model = propensity_model
        self.outcome_noise_model = outcome_noise_model
        self.correlation = correlation

    def _covariates_and_treatment(self, num_samples: int) -> Dataset:
        X = _gaussian_covariates(
            num_samples, self.dim_covariates, self.std_covariates, self.correlation
        )
        placeholder = Dataset(X=X, A=np.zeros(num_samples), Y=np.zeros(num_samples))
        propensity_scores = self.propensity_model.predict(placeholder)
        A = np.random.binomial(1, propensity_scores)
        return Dataset(X=X, A=A, Y=np.zeros(num_samples))

    def _baseline(self, data: Dataset) -> NDArray:
        control_data = Dataset(
            X=data.X, A=np.zeros(data.num_samples), Y=np.zeros(data.num_samples)
        )
        return self.outcome_model.predict(control_data)

    def generate(
        self,
        num_samples: int,
        treatment_effect: float,
        seed: int | None = None,
    ) -> Dataset:
        if seed is not None:
            np.random.seed(seed)
        data = self._covariates_and_treatment(num_samples)
        noise = self.outcome_noise_model.sample(num_samples)
        Y = self._baseline(data) + data.A * treatment_effect + noise
        return Dataset(X=data.X, A=data.A, Y=Y)


class HeterogeneousEffectGaussian(BinomialGaussian):
    """
    Like ``BinomialGaussian`` but with a covariate-dependent effect.

    The CATE is tau(x) = treatment_effect + effect_modifier(x). When
    ``effect_modifier`` has mean zero under the covariate distribution the
    ATE equals ``treatment_effect``.
    """

    def __init__(
        self,
        effect_modifier: Callable[[NDArray], NDArray],
        dim_covariates: int,
        std_covariates: float = 1.0,
        outcome_model: OutcomeModel | None = None,
        propensity_model: PropensityModel | None = None,
        outcome_noise_model: OutcomeNoiseModel | None = None,
        correlation: float = 0.0,
    ) -> None:
        super().__init__(
            dim_covariates=dim_covariates,
            std_covariates=std_covariates,
            outcome_model=outcome_model,
            propensity_model=propensity_model,
            outcome_noise_model=outcome_noise_model,
            correlation=correlation,
        )
        self.effect_modifier = effect_modifier

    def true_cate(self, X: NDArray, treatment_effect: float) -> NDArray:
        return treatment_effect + np.asarray(self.effect_modifier(X))

    def generate(
        self,
        num_samples: int,
        treatment_effect: float,
        seed: int | None = None,
    ) -> Dataset:
        if seed is not None:
            np.random.seed(seed)
        data = self._covariates_and_treatment(num_samples)
        noise = self.outcome_noise_model.sample(num_samples)
        cate = self.true_cate(data.X, treatment_effect)
        Y = self._baseline(data) + data.A * cate + noise
        return Dataset(X=data.X, A=data.A, Y=Y)


class PartiallyLinearGaussian(DataGenerator):
    """
    Partially linear model with a continuous treatment.

        A = X @ gamma + v,          v ~ N(0, std_treatment_noise^2)
        Y = theta * A + X @ beta + eps

    With ``confounding="sparse"`` only the first ``num_confounders``
    covariates enter gamma and beta, each with coefficient
    ``confounding_strength``. With ``confounding="dense"`` every covariate
    enters with coefficient ``confounding_strength / sqrt(dim_covariates)``:
    the total confounding is comparable but no single coefficient is large
    enough for a Lasso to select.
    """

    def __init__(
        self,
        dim_covariates: int,
        confounding: str = "sparse",
        num_confounders: int = 3,
        confounding_strength: float = 1.0,
        std_treatment_noise: float = 1.0,
        outcome_noise_model: OutcomeNoiseModel | None = None,
        std_covariates: float = 1.0,
        correlation: float = 0.0,
    ) -> None:
        if confounding not in ("sparse", "dense"):
            raise ValueError(
                f"confounding must be 'sparse' or 'dense', got {confounding!r}"
            )
        if confounding == "sparse" and not 0 < num_confounders <= dim_covariates:
            raise ValueError(
                f"num_confounders must be in [1, {dim_covariates}], got {num_confounders}"
            )
        self.dim_covariates = dim_covariates
        self.confounding = confounding
        self.num_confounders = num_confounders
        self.confounding_strength = confounding_strength
        self.std_treatment_noise = std_treatment_noise
        self.outcome_noise_model = outcome_noise_model or HomoGaussian(std_noise=1.0)
        self.std_covariates = std_covariates
        self.correlation = correlation

    def confounder_coefficients(self) -> NDArray:
        """Coefficient vector shared by the treatment and outcome equations."""
        if self.confounding == "dense":
            return np.full(
                self.dim_covariates,
                self.confounding_strength / np.sqrt(self.dim_covariates),
            )
        coefficients = np.zeros(self.dim_covariates)
        coefficients[: self.num_confounders] = self.confounding_strength
        return coefficients

    def generate(
        self,
        num_samples: int,
        treatment_effect: float,
        seed: int | None = None,
    ) -> Dataset:
        if seed is not None:
            np.random.seed(seed)
        X = _gaussian_covariates(
            num_samples, self.dim_covariates, self.std_covariates, self.correlation
        )
        coefficients = self.confounder_coefficients()
        A = X @ coefficients + np.random.normal(
            0, self.std_treatment_noise, num_samples
        )
        noise = self.outcome_noise_model.sample(num_samples)
        Y = treatment_effect * A + X @ coefficients + noise
        return Dataset(X=X, A=A, Y=Y)
