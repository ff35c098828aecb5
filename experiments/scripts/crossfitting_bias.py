#!/usr/bin/env python3

# Copyright (c) Meta Platforms, Inc. and affiliates.
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""
Cross-fitting Experiment

AIPW with random forest nuisances, comparing:
- nuisances fitted and evaluated on the same sample (overfitting bias)
- K-fold cross-fitted nuisances

for a range of sample sizes. Reports bias, RMSE and CI coverage.
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
    crossfitting_replication,
    plot_coverage,
    plot_estimate_boxplots,
    plot_savepath,
    save_results,
)


def run_crossfitting_experiment(
    config: SimulationConfig,
    repetitions: Optional[int] = None,
    create_plots: bool = True,
) -> pd.DataFrame:
    repetitions = repetitions or config.repetitions
    sample_sizes = config.sample_sizes or [config.num_samples]

    print(f"\n=== Running {config.name} ===")
    print(f"Description: {config.description}")

    results = pd.concat(
        [
            run_replications(
                lambda _, n=n: crossfitting_replication(config, n),
                repetitions=repetitions,
                seed=None if config.seed is None else config.seed + n,
                description=f"num_samples={n}",
            )
            for n in sample_sizes
        ],
        ignore_index=True,
    )

    summary = summarize_estimates(
        results, config.true_ate, group_by=["method", "num_samples"]
    )
    print(summary.to_string(index=False))

    if create_plots:
        plot_estimate_boxplots(
            results, config, x="num_samples", savepath=str(plot_savepath("crossfitting"))
        )
        plot_coverage(
            summary,
            x="num_samples",
            savepath=str(plot_savepath("crossfitting_coverage")),
        )
    return results


def main():
    """Main function to run the cross-fitting experiment."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Compare in-sample and cross-fitted AIPW nuisances"
    )
    parser.add_argument(
        "--config",
        default=str(CONFIGS_DIR / "crossfitting_bias.yaml"),
        help="YAML configuration file",
    )
    parser.add_argument(
        "--quick", action="store_true", help="Run in quick mode (fewer repetitions)"
    )
    parser.add_argument("--no-plots", action="store_true", help="Skip creating plots")
    args = parser.parse_args()

    config = SimulationConfig.from_yaml(args.config)
    results = run_crossfitting_experiment(
        config,
        repetitions=10 if args.quick else None,
        create_plots=not args.no_plots,
    )
    save_results(results, Path(args.config).stem)
    return results


if __name__ == "__main__":
    main()
