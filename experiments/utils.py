# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""
Utilities for experiment configuration and shared functionality.
"""

import pickle
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.patches import Patch

from causal_ml_lab.aipw import AIPW
from causal_ml_lab.bandits import (
    EpsilonGreedy,
    GaussianThompsonSampling,
    UCB1,
    simulate_bandit,
)
from causal_ml_lab.config import SimulationConfig
from causal_ml_lab.cross_fitting import CrossFitter, in_sample_nuisances
from causal_ml_lab.data_generator import (
    BinomialGaussian,
    HomoGaussian,
    PartiallyLinearGaussian,
)
from causal_ml_lab.dml import DoubleSelection, PartiallyLinearDML
from causal_ml_lab.outcome import LinearOutcomeModel, SeparateArmsOutcomeModel
from causal_ml_lab.propensity import RandomForestPropensityModel, SigmoidPropensityModel
from causal_ml_lab.pseudo_outcome import aipw_pseudo_outcome
from causal_ml_lab.types import Dataset
from sklearn.ensemble import RandomForestRegressor
from sklearn.linear_model import LassoCV

EXPERIMENTS_DIR = Path(__file__).parent
CONFIGS_DIR = EXPERIMENTS_DIR / "configs"
RESULTS_DIR = EXPERIMENTS_DIR / "results"
PLOTS_DIR = EXPERIMENTS_DIR / "plots"


def save_results(results: pd.DataFrame, config_name: str) -> Path:
    """Pickle a results frame under experiments/results with a timestamp."""
    RESULTS_DIR.mkdir(exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = RESULTS_DIR / f"{config_name}_results_{timestamp}.pkl"
    with open(filepath, "wb") as f:
        pickle.dump(results, f)
    print(f"Saved results to {filepath}")
    return filepath


def plot_savepath(stem: str) -> Path:
    PLOTS_DIR.mkdir(exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return PLOTS_DIR / f"{stem}_{timestamp}.pdf"


# Data generation functions for different experiments


def generate_confounded_nonlinear_data(
    config: SimulationConfig, num_samples: int
) -> Dataset:
    """Linear-logistic design whose outcome also has a quadratic term in X_0."""
    dim = config.dim_covariates
    coefficients = np.zeros(dim)
    coefficients[: min(3, dim)] = 1.0
    propensity_weight = np.zeros(dim)
    propensity_weight[: min(3, dim)] = 0.5

    generator = BinomialGaussian(
        dim_covariates=dim,
        std_covariates=config.extra.get("std_covariates", 1.0),
        outcome_model=LinearOutcomeModel(coefficients),
        propensity_model=SigmoidPropensityModel(
            propensity_weight, clip_for_stability=0.05
        ),
        outcome_noise_model=HomoGaussian(config.extra.get("std_dgp_noise", 1.0)),
    )
    data = generator.generate(num_samples=num_samples, treatment_effect=config.true_ate)
    return Dataset(X=data.X, A=data.A, Y=data.Y + data.X[:, 0] ** 2)


def crossfitting_replication(
    config: SimulationConfig, num_samples: int
) -> List[Dict[str, Any]]:
    """AIPW with forest nuisances, fitted in-sample and with K-fold cross-fitting."""
    data = generate_confounded_nonlinear_data(config, num_samples)
    forest_settings = config.extra.get("forest", {})

    def propensity_model() -> RandomForestPropensityModel:
        return RandomForestPropensityModel(
            n_estimators=forest_settings.get("n_estimators", 100),
            min_samples_leaf=forest_settings.get("min_samples_leaf", 1),
        )

    def outcome_model() -> SeparateArmsOutcomeModel:
        return SeparateArmsOutcomeModel(
            RandomForestRegressor(
                n_estimators=forest_settings.get("n_estimators", 100),
                min_samples_leaf=forest_settings.get("min_samples_leaf", 1),
            )
        )

    in_sample_scores = aipw_pseudo_outcome(
        data.A, data.Y, in_sample_nuisances(data, propensity_model(), outcome_model())
    )
    estimator = AIPW(cross_fitter=CrossFitter(n_folds=config.n_folds))
    estimator.fit(data, propensity_model(), outcome_model())
    cross_fit = estimator.ate()

    return [
        {
            "method": "in_sample",
            "num_samples": num_samples,
            "ate": float(in_sample_scores.mean()),
            "ate_se": float(in_sample_scores.std(ddof=1) / np.sqrt(num_samples)),
        },
        {
            "method": "cross_fit",
            "num_samples": num_samples,
            "ate": cross_fit.ate,
            "ate_se": cross_fit.ate_se,
        },
    ]


def double_selection_replication(
    config: SimulationConfig, confounding: str
) -> List[Dict[str, Any]]:
    """Single selection, double selection and Lasso DML on one partially linear sample."""
    generator = PartiallyLinearGaussian(
        dim_covariates=config.dim_covariates,
        confounding=confounding,
        num_confounders=config.extra.get("num_confounders", 3),
        confounding_strength=config.extra.get("confounding_strength", 1.0),
        std_treatment_noise=config.extra.get("std_treatment_noise", 1.0),
        outcome_noise_model=HomoGaussian(config.extra.get("std_dgp_noise", 1.0)),
    )
    data = generator.generate(
        num_samples=config.num_samples, treatment_effect=config.true_ate
    )

    rows = []
    for selection in ("single", "double"):
        estimator = DoubleSelection(selection=selection)
        estimator.fit(data)
        effect = estimator.effect()
        rows.append(
            {
                "method": f"{selection}_selection",
                "confounding": confounding,
                "ate": effect.ate,
                "ate_se": effect.ate_se,
                "num_selected": len(estimator.selected_columns()),
            }
        )

    dml = PartiallyLinearDML(
        outcome_regressor=LassoCV(cv=3, max_iter=10000),
        treatment_regressor=LassoCV(cv=3, max_iter=10000),
        cross_fitter=CrossFitter(n_folds=config.n_folds, stratify_by_treatment=False),
    )
    dml.fit(data)
    rows.append(
        {
            "method": "lasso_dml",
            "confounding": confounding,
            "ate": dml.effect().ate,
            "ate_se": dml.effect().ate_se,
            "num_selected": np.nan,
        }
    )
    return rows


BANDIT_POLICIES = {
    "epsilon_greedy": lambda config, num_arms: EpsilonGreedy(
        num_arms, epsilon=config.extra.get("epsilon", 0.1)
    ),
    "ucb1": lambda config, num_arms: UCB1(num_arms),
    "thompson": lambda config, num_arms: GaussianThompsonSampling(
        num_arms, reward_std=config.extra.get("reward_std", 1.0)
    ),
}


def bandit_replication(config: SimulationConfig, checkpoints: np.ndarray) -> List[Dict[str, Any]]:
    """Average regret of each policy at the given rounds; ``num_samples`` is the horizon."""
    arm_means = np.asarray(config.extra["arm_means"], dtype=float)
    rows = []
    for policy_name, make_policy in BANDIT_POLICIES.items():
        history = simulate_bandit(
            make_policy(config, arm_means.shape[0]),
            arm_means,
            horizon=config.num_samples,
            reward_std=config.extra.get("reward_std", 1.0),
        )
        average_regret = history.average_regret
        for t in checkpoints:
            rows.append(
                {
                    "policy": policy_name,
                    "round": int(t),
                    "average_regret": float(average_regret[t - 1]),
                }
            )
    return rows


def plot_estimate_boxplots(
    results: pd.DataFrame,
    config: SimulationConfig,
    x: str,
    savepath: str | None = None,
) -> None:
    """Boxplots of estimate / true effect per method along ``x``."""
    plot_settings = config.extra.get("plot_settings", {})
    fontsize = plot_settings.get("fontsize", 15)
    dpi = plot_settings.get("dpi", 300)

    plot_results = results.copy()
    plot_results["ate_norm"] = plot_results["ate"] / config.true_ate

    plt.figure(figsize=(12, 8))
    sns.set_style("whitegrid")
    box = sns.boxplot(
        data=plot_results, x=x, y="ate_norm", hue="method", palette="pastel"
    )

    hatches = ["//", "\\\\", "||", "--"]
    methods = list(plot_results["method"].unique())
    num_groups = plot_results[x].nunique()
    for i, patch in enumerate(box.patches[: num_groups * len(methods)]):
        patch.set_hatch(hatches[(i // num_groups) % len(hatches)])

    palette = sns.color_palette("pastel", len(methods))
    handles = [
        Patch(facecolor=color, edgecolor="black", hatch=hatch, label=method)
        for color, hatch, method in zip(palette, hatches, methods)
    ]

    for spine in plt.gca().spines.values():
        spine.set_edgecolor("black")
        spine.set_linewidth(2)

    plt.axhline(1, color="green", linewidth=0.8, linestyle="--")
    plt.xlabel(x, fontsize=fontsize)
    plt.ylabel("Estimate / True Effect", fontsize=fontsize)
    plt.title(config.name, fontsize=fontsize + 2)
    plt.legend(handles=handles, title="Method", fontsize=fontsize, title_fontsize=fontsize)
    plt.xticks(fontsize=fontsize)
    plt.yticks(fontsize=fontsize)

    if savepath:
        plt.savefig(savepath, dpi=dpi, bbox_inches="tight")
    plt.show()
    plt.close()


def plot_coverage(
    summary: pd.DataFrame,
    x: str,
    savepath: str | None = None,
    nominal: float = 0.95,
    fontsize: int = 15,
    dpi: int = 300,
) -> None:
    """Confidence interval coverage per method along ``x``."""
    plt.figure(figsize=(12, 8))
    sns.lineplot(
        data=summary,
        x=x,
        y="coverage",
        hue="method",
        style="method",
        markers=True,
        markersize=10,
        dashes=False,
        palette="tab10",
    )
    plt.axhline(nominal, color="black", linewidth=0.8, linestyle="--")
    plt.ylim(0, 1)
    plt.xlabel(x, fontsize=fontsize)
    plt.ylabel("Coverage of 95% CI", fontsize=fontsize)
    plt.xticks(fontsize=fontsize)
    plt.yticks(fontsize=fontsize)

    if savepath:
        plt.savefig(savepath, dpi=dpi, bbox_inches="tight")
    plt.show()
    plt.close()


def plot_regret(
    results: pd.DataFrame,
    config: SimulationConfig,
    savepath: str | None = None,
) -> None:
    plot_settings = config.extra.get("plot_settings", {})
    fontsize = plot_settings.get("fontsize", 15)
    dpi = plot_settings.get("dpi", 300)

    plt.figure(figsize=(12, 8))
    sns.lineplot(
        data=results, x="round", y="average_regret", hue="policy", palette="tab10"
    )
    plt.xscale("log")
    plt.xlabel("Round", fontsize=fontsize)
    plt.ylabel("Average regret per round", fontsize=fontsize)
    plt.title(config.name, fontsize=fontsize + 2)
    plt.xticks(fontsize=fontsize)
    plt.yticks(fontsize=fontsize)

    if savepath:
        plt.savefig(savepath, dpi=dpi, bbox_inches="tight")
    plt.show()
    plt.close()
