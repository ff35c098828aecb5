# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import numpy as np
import testslide
from sklearn.ensemble import RandomForestRegressor
from sklearn.linear_model import LinearRegression

from causal_ml_lab.cross_fitting import CrossFitter
from causal_ml_lab.data_generator import HeterogeneousEffectGaussian
from causal_ml_lab.learners import DRLearner, SLearner, TLearner
from causal_ml_lab.outcome import LinearOutcomeModel, SeparateArmsOutcomeModel
from causal_ml_lab.propensity import LogisticPropensityModel, SigmoidPropensityModel


class TestMetaLearners(testslide.TestCase):
    def setUp(self) -> None:
        super().setUp()
        np.random.seed(42)

        self.generator = HeterogeneousEffectGaussian(
            effect_modifier=lambda X: X[:, 0],
            dim_covariates=3,
            outcome_model=LinearOutcomeModel(np.array([1.0, 0.5, 0.0])),
            propensity_model=SigmoidPropensityModel(np.array([0.3, 0.0, 0.0])),
        )
        self.data = self.generator.generate(num_samples=2000, treatment_effect=1.0)
        self.true_cate = self.generator.true_cate(self.data.X, 1.0)

    def test_t_learner_linear_arms(self) -> None:
        learner = TLearner(LinearRegression())
        learner.fit(self.data)

        effect = learner.effect(self.data.X)
        self.assertEqual(effect.shape, (2000,))
        self.assertLess(np.mean(np.abs(effect - self.true_cate)), 0.2)

    def test_s_learner_linear_model_has_no_heterogeneity(self) -> None:
        learner = SLearner(LinearRegression())
        learner.fit(self.data)

        effect = learner.effect(self.data.X)
        # Without interaction terms the treatment shifts every prediction equally
        self.assertTrue(np.allclose(effect, effect[0]))
        self.assertAlmostEqual(float(effect[0]), 1.0, delta=0.2)

    def test_s_learner_forest(self) -> None:
        learner = SLearner(RandomForestRegressor(n_estimators=50, random_state=0))
        learner.fit(self.data)

        self.assertEqual(learner.effect(self.data.X[:10]).shape, (10,))

    def test_dr_learner_linear_final_stage(self) -> None:
        learner = DRLearner(
            propensity_model=LogisticPropensityModel(),
            outcome_model=SeparateArmsOutcomeModel(LinearRegression()),
            final_regressor=LinearRegression(),
            cross_fitter=CrossFitter(n_folds=5, seed=0),
        )
        learner.fit(self.data)

        effect = learner.effect(self.data.X)
        self.assertGreater(np.corrcoef(effect, self.true_cate)[0, 1], 0.9)
        self.assertEqual(learner.pseudo_outcomes().shape, (2000,))
        self.assertAlmostEqual(learner.ate().ate, 1.0, delta=0.3)
        self.assertGreater(learner.ate().ate_se, 0)

    def test_dr_learner_default_components(self) -> None:
        learner = DRLearner()

        self.assertIsInstance(learner.propensity_model, LogisticPropensityModel)
        self.assertIsInstance(learner.outcome_model, SeparateArmsOutcomeModel)
        self.assertIsInstance(learner.final_regressor, RandomForestRegressor)
        self.assertEqual(learner.cross_fitter.n_folds, 5)

    def test_must_fit_before_effect(self) -> None:
        for learner in (SLearner(), TLearner(), DRLearner()):
            with self.assertRaises(ValueError):
                learner.effect(self.data.X)

        with self.assertRaises(ValueError):
            DRLearner().pseudo_outcomes()
