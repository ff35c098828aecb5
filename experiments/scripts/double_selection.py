#!/usr/bin/env python3

# Copyright (c) Meta Platforms, Inc. and affiliates.
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""
Double Selection Experiment

Partially linear model with sparse or dense confounding. Compares
post-single-selection, post-double-selection and cross-fitted Lasso DML.
Under dense confounding no individual coefficient is large enough to be
selected and both selection estimators are biased.
"""

import sys
from pathlib import Path
from typing import Optional

import pandas as pd

# Add the experiments directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from causal_ml_lab.config import SimulationConfig
from causal_ml_lab.simulation import run_replications, summarize_estimates
from utils import (
    CONFIGS_DIR,
    double_selection_replication,
    plot_estimate_boxplots,
    plot_savepath,
    save_results,
)


def run_double_selection_experiment(
    config: SimulationConfig,
    repetitions: Optional[int] = None,
    create_plots: bool = True,
) -> pd.DataFrame:
    repetitions = repetitions or config.repetitions
    designs = config.extra.get("confounding", ["sparse", "dense"])

    print(f"\n=== Running {config.name} ===")
    print(f"Description: {config.description}")

    results = pd.concat(
        [
            run_replications(
                lambda _, design=design: double_selection_replication(config, design),
                repetitions=repetitions,
                seed=config.seed,
                description=f"confounding={design}",
            )
            for design in designs
        ],
        ignore_index=True,
    )

    summary = summarize_estimates(
        results, config.true_ate, group_by=["method", "confounding"]
    )
    print(summary.to_string(index=False))

    if create_plots:
        plot_estimate_boxplots(
            results,
            config,
            x="confounding",
            savepath=str(plot_savepath("double_selection")),
        )
    return results


def main():
    """Main function to run the double selection experiment."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Post-selection inference under sparse and dense confounding"
    )
    parser.add_argument(
        "--config",
        default=str(CONFIGS_DIR / "double_selection.yaml"),
        help="YAML configuration file",
    )
    parser.add_argument(
        "--quick", action="store_true", help="Run in quick mode (fewer repetitions)"
    )
    parser.add_argument("--no-plots", action="store_true", help="Skip creating plots")
    args = parser.parse_args()

    config = SimulationConfig.from_yaml(args.config)
    results = run_double_selection_experiment(
        config,
        repetitions=10 if args.quick else None,
        create_plots=not args.no_plots,
    )
    save_results(results, Path(args.config).stem)
    return results


if __name__ == "__main__":
    main()
