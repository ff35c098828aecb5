# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import numpy as np
import testslide

from causal_ml_lab.data_decomposer import Splitting
from causal_ml_lab.data_generator import (
    BinomialGaussian,
    HeteroGaussian,
    HeterogeneousEffectGaussian,
    HomoGaussian,
    PartiallyLinearGaussian,
    random_coefficients,
    toeplitz_covariance,
)
from causal_ml_lab.outcome import LinearOutcomeModel
from causal_ml_lab.propensity import SigmoidPropensityModel
from causal_ml_lab.types import Dataset


class TestHelpers(testslide.TestCase):
    def setUp(self) -> None:
        super().setUp()
        np.random.seed(42)

    def test_random_coefficients_sparsity(self) -> None:
        coefficients = random_coefficients(10, sparsity_factor=0.5)

        self.assertEqual(coefficients.shape, (10,))
        self.assertTrue(np.all(coefficients[-5:] == 0))
        self.assertTrue(np.all(coefficients[:5] != 0))

    def test_random_coefficients_keeps_one_nonzero(self) -> None:
        coefficients = random_coefficients(3, sparsity_factor=0.99)
        self.assertTrue(coefficients[0] != 0)
        self.assertTrue(np.all(coefficients[1:] == 0))

    def test_random_coefficients_invalid_sparsity(self) -> None:
        with self.assertRaises(AssertionError):
            random_coefficients(5, sparsity_factor=1.0)

    def test_toeplitz_covariance(self) -> None:
        covariance = toeplitz_covariance(3, 0.5)
        expected = np.array([[1.0, 0.5, 0.25], [0.5, 1.0, 0.5], [0.25, 0.5, 1.0]])
        self.assertTrue(np.allclose(covariance, expected))


class TestNoiseModels(testslide.TestCase):
    def setUp(self) -> None:
        super().setUp()
        np.random.seed(42)

    def test_homo_gaussian(self) -> None:
        noise = HomoGaussian(std_noise=2.0).sample(5000)

        self.assertEqual(noise.shape, (5000,))
        self.assertAlmostEqual(float(np.mean(noise)), 0.0, delta=0.1)
        self.assertAlmostEqual(float(np.std(noise)), 2.0, delta=0.1)

    def test_homo_gaussian_seed(self) -> None:
        model = HomoGaussian(std_noise=1.0)
        self.assertTrue(np.array_equal(model.sample(10, seed=1), model.sample(10, seed=1)))

    def test_hetero_gaussian(self) -> None:
        model = HeteroGaussian(std_noise=1.0, betaprime_a=2.0, betaprime_b=5.0)
        noise = model.sample(5000)

        self.assertEqual(noise.shape, (5000,))
        self.assertAlmostEqual(float(np.mean(noise)), 0.0, delta=0.1)
        self.assertTrue(np.any(noise < 0))
        self.assertTrue(np.any(noise > 0))

    def test_hetero_gaussian_seed(self) -> None:
        model = HeteroGaussian(std_noise=1.0, betaprime_a=2.0, betaprime_b=5.0)
        self.assertTrue(np.array_equal(model.sample(10, seed=3), model.sample(10, seed=3)))


class TestBinomialGaussian(testslide.TestCase):
    def setUp(self) -> None:
        super().setUp()
        np.random.seed(42)
        self.generator = BinomialGaussian(dim_covariates=5)

    def test_shapes_and_binary_treatment(self) -> None:
        data = self.generator.generate(num_samples=200, treatment_effect=1.0)

        self.assertEqual(data.X.shape, (200, 5))
        self.assertEqual(data.A.shape, (200,))
        self.assertEqual(data.Y.shape, (200,))
        self.assertTrue(np.all(np.isin(data.A, [0, 1])))
        self.assertGreater(np.sum(data.A), 0)
        self.assertLess(np.sum(data.A), 200)

    def test_seed_reproducibility(self) -> None:
        data1 = self.generator.generate(num_samples=50, treatment_effect=1.0, seed=7)
        data2 = self.generator.generate(num_samples=50, treatment_effect=1.0, seed=7)

        self.assertTrue(np.array_equal(data1.X, data2.X))
        self.assertTrue(np.array_equal(data1.A, data2.A))
        self.assertTrue(np.array_equal(data1.Y, data2.Y))

    def test_treatment_effect_shifts_treated_only(self) -> None:
        small = self.generator.generate(num_samples=100, treatment_effect=0.5, seed=7)
        large = self.generator.generate(num_samples=100, treatment_effect=5.0, seed=7)

        self.assertTrue(np.allclose(large.Y - small.Y, 4.5 * small.A))

    def test_known_models(self) -> None:
        generator = BinomialGaussian(
            dim_covariates=2,
            outcome_model=LinearOutcomeModel(np.array([1.0, 0.0])),
            propensity_model=SigmoidPropensityModel(np.zeros(2)),
            outcome_noise_model=HomoGaussian(0.0),
        )
        data = generator.generate(num_samples=100, treatment_effect=2.0, seed=0)

        self.assertTrue(np.allclose(data.Y, data.X[:, 0] + 2.0 * data.A))

    def test_correlated_covariates(self) -> None:
        generator = BinomialGaussian(dim_covariates=3, correlation=0.9)
        data = generator.generate(num_samples=2000, treatment_effect=1.0)

        self.assertGreater(np.corrcoef(data.X[:, 0], data.X[:, 1])[0, 1], 0.8)


class TestHeterogeneousEffectGaussian(testslide.TestCase):
    def setUp(self) -> None:
        super().setUp()
        np.random.seed(42)
        self.generator = HeterogeneousEffectGaussian(
            effect_modifier=lambda X: X[:, 0],
            dim_covariates=3,
            outcome_model=LinearOutcomeModel(np.array([0.0, 1.0, 0.0])),
            outcome_noise_model=HomoGaussian(0.0),
        )

    def test_true_cate(self) -> None:
        X = np.array([[1.0, 0.0, 0.0], [-2.0, 5.0, 5.0]])
        self.assertTrue(np.allclose(self.generator.true_cate(X, 1.0), [2.0, -1.0]))

    def test_outcomes_follow_cate(self) -> None:
        data = self.generator.generate(num_samples=200, treatment_effect=1.0, seed=0)

        cate = self.generator.true_cate(data.X, 1.0)
        self.assertTrue(np.allclose(data.Y, data.X[:, 1] + data.A * cate))


class TestPartiallyLinearGaussian(testslide.TestCase):
    def setUp(self) -> None:
        super().setUp()
        np.random.seed(42)

    def test_sparse_coefficients(self) -> None:
        generator = PartiallyLinearGaussian(
            dim_covariates=10, confounding="sparse", num_confounders=3
        )
        coefficients = generator.confounder_coefficients()

        self.assertTrue(np.all(coefficients[:3] == 1.0))
        self.assertTrue(np.all(coefficients[3:] == 0.0))

    def test_dense_coefficients(self) -> None:
        generator = PartiallyLinearGaussian(dim_covariates=16, confounding="dense")
        coefficients = generator.confounder_coefficients()

        self.assertTrue(np.allclose(coefficients, 0.25))
        self.assertAlmostEqual(float(np.linalg.norm(coefficients)), 1.0)

    def test_invalid_arguments(self) -> None:
        with self.assertRaises(ValueError):
            PartiallyLinearGaussian(dim_covariates=5, confounding="weird")
        with self.assertRaises(ValueError):
            PartiallyLinearGaussian(dim_covariates=5, num_confounders=6)

    def test_ols_with_all_controls_recovers_theta(self) -> None:
        generator = PartiallyLinearGaussian(dim_covariates=5)
        data = generator.generate(num_samples=2000, treatment_effect=0.5)

        self.assertEqual(data.X.shape, (2000, 5))
        design = np.column_stack((np.ones(2000), data.A, data.X))
        params = np.linalg.lstsq(design, data.Y, rcond=None)[0]
        self.assertAlmostEqual(float(params[1]), 0.5, delta=0.1)


class TestSplitting(testslide.TestCase):
    def setUp(self) -> None:
        super().setUp()
        np.random.seed(42)
        n = 100
        X = np.random.randn(n, 3)
        A = np.concatenate([np.ones(30), np.zeros(70)])
        self.data = Dataset(X=X, A=A, Y=np.arange(n, dtype=float))

    def test_split_sizes(self) -> None:
        decomposed = Splitting(train_ratio=0.6).decompose(self.data)

        self.assertEqual(decomposed.train.num_samples, 60)
        self.assertEqual(decomposed.inf.num_samples, 40)

    def test_split_without_shuffle_keeps_order(self) -> None:
        train_idx, inference_idx = Splitting().split_indices(self.data)

        self.assertTrue(np.array_equal(train_idx, np.arange(50)))
        self.assertTrue(np.array_equal(inference_idx, np.arange(50, 100)))

    def test_split_partitions_units(self) -> None:
        train_idx, inference_idx = Splitting(shuffle=True).split_indices(self.data)

        self.assertEqual(len(np.intersect1d(train_idx, inference_idx)), 0)
        self.assertTrue(
            np.array_equal(np.sort(np.concatenate([train_idx, inference_idx])), np.arange(100))
        )

    def test_stratified_split_keeps_treated_share(self) -> None:
        decomposed = Splitting(stratify_by_treatment=True, shuffle=True).decompose(
            self.data
        )

        self.assertEqual(int(np.sum(decomposed.train.A)), 15)
        self.assertEqual(int(np.sum(decomposed.inf.A)), 15)
        self.assertEqual(decomposed.train.num_samples, 50)

    def test_invalid_ratio(self) -> None:
        for ratio in (0.0, 1.0, 1.5):
            with self.assertRaises(AssertionError):
                Splitting(train_ratio=ratio)
