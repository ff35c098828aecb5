# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import numpy as np
import testslide

from causal_ml_lab.propensity import sigmoid
from causal_ml_lab.pseudo_outcome import aipw_pseudo_outcome, ipw_pseudo_outcome
from causal_ml_lab.types import NuisancePredictions


class TestAIPWPseudoOutcome(testslide.TestCase):
    def setUp(self) -> None:
        super().setUp()
        np.random.seed(42)
        n = 20000
        self.X = np.random.randn(n)
        self.propensity = sigmoid(0.8 * self.X)
        self.A = np.random.binomial(1, self.propensity)
        self.mu0 = self.X
        self.mu1 = self.X + 1.0
        self.Y = np.where(self.A == 1, self.mu1, self.mu0) + np.random.randn(n)

    def test_hand_computed_values(self) -> None:
        nuisances = NuisancePredictions(
            propensity=np.array([0.5, 0.5]),
            treated_outcome=np.array([2.0, 2.0]),
            control_outcome=np.array([1.0, 1.0]),
        )
        scores = aipw_pseudo_outcome(np.array([1, 0]), np.array([3.0, 1.0]), nuisances)

        # 2 - 1 + (3 - 2) / 0.5 and 2 - 1 - (1 - 1) / 0.5
        self.assertTrue(np.allclose(scores, [3.0, 1.0]))

    def test_true_nuisances(self) -> None:
        nuisances = NuisancePredictions(self.propensity, self.mu1, self.mu0)
        scores = aipw_pseudo_outcome(self.A, self.Y, nuisances)

        self.assertAlmostEqual(float(np.mean(scores)), 1.0, delta=0.1)

    def test_wrong_propensity_correct_outcomes(self) -> None:
        nuisances = NuisancePredictions(np.full_like(self.X, 0.5), self.mu1, self.mu0)
        scores = aipw_pseudo_outcome(self.A, self.Y, nuisances)

        self.assertAlmostEqual(float(np.mean(scores)), 1.0, delta=0.1)

    def test_correct_propensity_wrong_outcomes(self) -> None:
        zeros = np.zeros_like(self.X)
        nuisances = NuisancePredictions(self.propensity, zeros, zeros)
        scores = aipw_pseudo_outcome(self.A, self.Y, nuisances)

        self.assertAlmostEqual(float(np.mean(scores)), 1.0, delta=0.15)

    def test_difference_in_means_is_confounded(self) -> None:
        naive = np.mean(self.Y[self.A == 1]) - np.mean(self.Y[self.A == 0])
        self.assertGreater(naive, 1.3)

    def test_shape_mismatch(self) -> None:
        nuisances = NuisancePredictions(
            propensity=np.full(3, 0.5),
            treated_outcome=np.zeros(3),
            control_outcome=np.zeros(3),
        )
        with self.assertRaises(ValueError):
            aipw_pseudo_outcome(np.array([1, 0]), np.array([1.0, 0.0]), nuisances)


class TestIPWPseudoOutcome(testslide.TestCase):
    def test_hand_computed_values(self) -> None:
        scores = ipw_pseudo_outcome(
            np.array([1, 0]), np.array([2.0, 3.0]), np.array([0.25, 0.25])
        )
        self.assertTrue(np.allclose(scores, [8.0, -4.0]))

    def test_shape_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            ipw_pseudo_outcome(np.array([1, 0]), np.array([2.0]), np.array([0.5, 0.5]))
