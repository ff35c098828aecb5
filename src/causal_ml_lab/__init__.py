# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""
Causal ML Lab

Simulation-first building blocks for a causal machine learning course:
cross-fitted nuisance estimation, AIPW pseudo-outcomes, CATE meta-learners,
double machine learning, bandit policies and Monte Carlo helpers.
"""

__version__ = "0.1.0"
__author__ = "Meta Platforms, Inc."
__license__ = "MIT"

# Import main components for easy access
from .aipw import AIPW
from .bandits import (
    BanditHistory,
    EpsilonGreedy,
    GaussianThompsonSampling,
    UCB1,
    simulate_bandit,
)
from .config import SimulationConfig, load_config
from .cross_fitting import (
    CrossFitter,
    in_sample_nuisances,
    make_folds,
    nuisance_predictions,
)
from .data_decomposer import Splitting
from .data_generator import (
    BinomialGaussian,
    HeteroGaussian,
    HeterogeneousEffectGaussian,
    HomoGaussian,
    PartiallyLinearGaussian,
)
from .dml import DoubleSelection, PartiallyLinearDML
from .learners import DRLearner, SLearner, TLearner
from .outcome import (
    LassoOutcomeModel,
    LinearOutcomeModel,
    OLSOutcomeModel,
    RandomForestOutcomeModel,
    SeparateArmsOutcomeModel,
)
from .propensity import (
    AveragePropensityModel,
    ConstantPropensityModel,
    LassoLogisticPropensityModel,
    LogisticPropensityModel,
    RandomForestPropensityModel,
    SigmoidPropensityModel,
)
from .pseudo_outcome import aipw_pseudo_outcome, ipw_pseudo_outcome
from .simulation import run_replications, summarize_estimates
from .types import (
    AverageTreatmentEffect,
    DataDecomposer,
    DataGenerator,
    Dataset,
    NuisancePredictions,
    OutcomeModel,
    OutcomeNoiseModel,
    PropensityModel,
    TrainingInferenceData,
)

__all__ = [
    # Core types
    "Dataset",
    "TrainingInferenceData",
    "NuisancePredictions",
    "AverageTreatmentEffect",
    # Abstract base classes
    "PropensityModel",
    "OutcomeModel",
    "DataGenerator",
    "OutcomeNoiseModel",
    "DataDecomposer",
    # Cross-fitting and pseudo-outcomes
    "CrossFitter",
    "make_folds",
    "nuisance_predictions",
    "in_sample_nuisances",
    "aipw_pseudo_outcome",
    "ipw_pseudo_outcome",
    "Splitting",
    # Estimators
    "AIPW",
    "SLearner",
    "TLearner",
    "DRLearner",
    "PartiallyLinearDML",
    "DoubleSelection",
    # Data generators and noise models
    "BinomialGaussian",
    "HeterogeneousEffectGaussian",
    "PartiallyLinearGaussian",
    "HomoGaussian",
    "HeteroGaussian",
    # Outcome models
    "OLSOutcomeModel",
    "LassoOutcomeModel",
    "RandomForestOutcomeModel",
    "SeparateArmsOutcomeModel",
    "LinearOutcomeModel",
    # Propensity models
    "ConstantPropensityModel",
    "AveragePropensityModel",
    "LogisticPropensityModel",
    "LassoLogisticPropensityModel",
    "RandomForestPropensityModel",
    "SigmoidPropensityModel",
    # Bandits
    "EpsilonGreedy",
    "UCB1",
    "GaussianThompsonSampling",
    "BanditHistory",
    "simulate_bandit",
    # Simulation and configuration
    "run_replications",
    "summarize_estimates",
    "SimulationConfig",
    "load_config",
]
