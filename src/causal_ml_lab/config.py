# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml

REQUIRED_KEYS = ("name", "num_samples", "repetitions", "true_ate")


def load_config(config_path: str | Path) -> Dict[str, Any]:
    """
    Load experiment configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Dictionary containing configuration parameters
    """
    with open(config_path, "r") as f:
        config = yaml.safe_load(f)
    if not isinstance(config, dict):
        raise ValueError(f"{config_path} does not contain a YAML mapping")
    return config


@dataclass
class SimulationConfig:
    """Settings shared by the Monte Carlo studies."""

    name: str
    num_samples: int
    repetitions: int
    true_ate: float
    description: str = ""
    dim_covariates: int = 10
    n_folds: int = 5
    seed: int | None = None
    sample_sizes: List[int] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.num_samples < 2:
            raise ValueError(f"num_samples must be at least 2, got {self.num_samples}")
        if self.repetitions < 1:
            raise ValueError(f"repetitions must be positive, got {self.repetitions}")
        if not 2 <= self.n_folds <= self.num_samples:
            raise ValueError(
                f"n_folds must be between 2 and num_samples, got {self.n_folds}"
            )

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "SimulationConfig":
        missing = [key for key in REQUIRED_KEYS if key not in config]
        if missing:
            raise ValueError(f"Config is missing required keys: {missing}")
        known = {
            "name",
            "num_samples",
            "repetitions",
            "true_ate",
            "description",
            "dim_covariates",
            "n_folds",
            "seed",
            "sample_sizes",
        }
        kwargs = {key: value for key, value in config.items() if key in known}
        kwargs["extra"] = {
            key: value for key, value in config.items() if key not in known
        }
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "SimulationConfig":
        return cls.from_dict(load_config(config_path))
