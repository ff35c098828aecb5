#!/usr/bin/env python3

# Copyright (c) Meta Platforms, Inc. and affiliates.
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""
Bandit Regret Experiment

Plays epsilon-greedy, UCB1 and Gaussian Thompson sampling against the same
arms and plots average regret per round. Epsilon-greedy with a fixed epsilon
keeps exploring and its average regret levels off above zero.
"""

import sys
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

# Add the experiments directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from causal_ml_lab.config import SimulationConfig
from causal_ml_lab.simulation import run_replications
from utils import (
    CONFIGS_DIR,
    bandit_replication,
    plot_regret,
    plot_savepath,
    save_results,
)


def run_bandit_experiment(
    config: SimulationConfig,
    repetitions: Optional[int] = None,
    create_plots: bool = True,
) -> pd.DataFrame:
    repetitions = repetitions or config.repetitions
    checkpoints = np.unique(
        np.logspace(0, np.log10(config.num_samples), num=30).astype(int)
    )

    print(f"\n=== Running {config.name} ===")
    print(f"Description: {config.description}")

    results = run_replications(
        lambda _: bandit_replication(config, checkpoints),
        repetitions=repetitions,
        seed=config.seed,
        description="bandits",
    )
    final = results[results["round"] == checkpoints[-1]]
    print(final.groupby("policy")["average_regret"].describe().to_string())

    if create_plots:
        plot_regret(results, config, savepath=str(plot_savepath("bandit_regret")))
    return results


def main():
    """Main function to run the bandit experiment."""
    import argparse

    parser = argparse.ArgumentParser(description="Compare bandit policies by regret")
    parser.add_argument(
        "--config",
        default=str(CONFIGS_DIR / "bandit_regret.yaml"),
        help="YAML configuration file",
    )
    parser.add_argument(
        "--quick", action="store_true", help="Run in quick mode (fewer repetitions)"
    )
    parser.add_argument("--no-plots", action="store_true", help="Skip creating plots")
    args = parser.parse_args()

    config = SimulationConfig.from_yaml(args.config)
    results = run_bandit_experiment(
        config,
        repetitions=5 if args.quick else None,
        create_plots=not args.no_plots,
    )
    save_results(results, Path(args.config).stem)
    return results


if __name__ == "__main__":
    main()
