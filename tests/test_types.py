# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import numpy as np
import testslide

from causal_ml_lab.types import AverageTreatmentEffect, Dataset, NuisancePredictions


class TestDataset(testslide.TestCase):
    def setUp(self) -> None:
        super().setUp()
        np.random.seed(42)
        self.X = np.random.randn(20, 3)
        self.A = np.random.binomial(1, 0.5, 20)
        self.Y = np.random.randn(20)

    def test_num_samples(self) -> None:
        data = Dataset(X=self.X, A=self.A, Y=self.Y)
        self.assertEqual(data.num_samples, 20)

    def test_subset_keeps_rows_aligned(self) -> None:
        data = Dataset(X=self.X, A=self.A, Y=self.Y)
        idx = np.array([3, 0, 7])
        subset = data.subset(idx)

        self.assertEqual(subset.num_samples, 3)
        self.assertTrue(np.array_equal(subset.X, self.X[idx]))
        self.assertTrue(np.array_equal(subset.A, self.A[idx]))
        self.assertTrue(np.array_equal(subset.Y, self.Y[idx]))

    def test_lists_are_converted_to_arrays(self) -> None:
        data = Dataset(X=[[0.0], [1.0]], A=[0, 1], Y=[0.5, 1.5])
        self.assertIsInstance(data.X, np.ndarray)
        self.assertEqual(data.X.shape, (2, 1))

    def test_shape_mismatch_rejected(self) -> None:
        with self.assertRaises(ValueError):
            Dataset(X=self.X, A=self.A[:-1], Y=self.Y)

        with self.assertRaises(ValueError):
            Dataset(X=self.X, A=self.A, Y=self.Y[:5])

    def test_dimensions_rejected(self) -> None:
        with self.assertRaises(ValueError):
            Dataset(X=self.X[:, 0], A=self.A, Y=self.Y)

        with self.assertRaises(ValueError):
            Dataset(X=self.X, A=self.A.reshape(-1, 1), Y=self.Y)


class TestNuisancePredictions(testslide.TestCase):
    def test_shape_mismatch_rejected(self) -> None:
        with self.assertRaises(ValueError):
            NuisancePredictions(
                propensity=np.full(5, 0.5),
                treated_outcome=np.zeros(5),
                control_outcome=np.zeros(4),
            )


class TestAverageTreatmentEffect(testslide.TestCase):
    def test_conf_int(self) -> None:
        effect = AverageTreatmentEffect(ate=0.0, ate_se=1.0)
        lower, upper = effect.conf_int()

        self.assertAlmostEqual(lower, -1.959964, places=5)
        self.assertAlmostEqual(upper, 1.959964, places=5)

    def test_conf_int_narrower_for_larger_alpha(self) -> None:
        effect = AverageTreatmentEffect(ate=2.0, ate_se=0.5)
        lower_95, upper_95 = effect.conf_int(0.05)
        lower_90, upper_90 = effect.conf_int(0.10)

        self.assertGreater(lower_90, lower_95)
        self.assertLess(upper_90, upper_95)

    def test_covers(self) -> None:
        effect = AverageTreatmentEffect(ate=1.0, ate_se=0.1)
        self.assertTrue(effect.covers(1.1))
        self.assertFalse(effect.covers(1.5))

    def test_invalid_alpha(self) -> None:
        effect = AverageTreatmentEffect(ate=1.0, ate_se=0.1)
        with self.assertRaises(AssertionError):
            effect.conf_int(0.0)
