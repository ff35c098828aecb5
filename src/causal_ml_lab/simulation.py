# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""
Monte Carlo harness: run independent replications and summarize the
sampling distribution of estimators against a known truth.
"""

import logging
import warnings
from typing import Any, Callable, Dict, List, Union

import numpy as np
import pandas as pd
from scipy.stats import norm
from tqdm import tqdm

logger = logging.getLogger(__name__)

ReplicationResult = Union[Dict[str, Any], List[Dict[str, Any]]]


def run_replications(
    replicate: Callable[[int], ReplicationResult],
    repetitions: int,
    seed: int | None = None,
    progress: bool = True,
    description: str = "replications",
) -> pd.DataFrame:
    """
    Call ``replicate(run_number)`` for each replication and collect rows.

    Parameters
    ----------
    replicate : Callable[[int], dict or list of dict]
        One replication; returns a row (or one row per method)
    repetitions : int
        Number of replications
    seed : int | None, optional
        Seeds the global numpy RNG once before the first replication
    progress : bool, optional
        Show a tqdm progress bar, by default True
    description : str, optional
        Progress bar label

    Returns
    -------
    pd.DataFrame
        One row per returned dict with an added ``run_number`` column
    """
    if repetitions < 1:
        raise ValueError(f"repetitions must be positive, got {repetitions}")
    if seed is not None:
        np.random.seed(seed)

    rows = []
    for run_number in tqdm(range(repetitions), desc=description, disable=not progress):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            result = replicate(run_number)
        for row in result if isinstance(result, list) else [result]:
            rows.append({**row, "run_number": run_number + 1})
    logger.debug("Collected %d rows from %d replications", len(rows), repetitions)
    return pd.DataFrame(rows)


def summarize_estimates(
    results: pd.DataFrame,
    true_value: float,
    group_by: str | List[str] = "method",
    estimate_col: str = "ate",
    se_col: str = "ate_se",
    alpha: float = 0.05,
) -> pd.DataFrame:
    """
    Bias, spread and confidence interval coverage per group.

    Returns columns ``mean_estimate``, ``bias``, ``empirical_sd``,
    ``mean_se``, ``rmse`` and ``coverage`` (share of normal intervals that
    contain ``true_value``).
    """
    missing = {estimate_col, se_col} - set(results.columns)
    if missing:
        raise ValueError(f"results is missing columns {sorted(missing)}")

    z = norm.ppf(1 - alpha / 2)
    frame = results.assign(
        _error=results[estimate_col] - true_value,
        _covered=(
            (results[estimate_col] - z * results[se_col] <= true_value)
            & (true_value <= results[estimate_col] + z * results[se_col])
        ).astype(float),
    )
    grouped = frame.groupby(group_by)
    summary = pd.DataFrame(
        {
            "mean_estimate": grouped[estimate_col].mean(),
            "bias": grouped["_error"].mean(),
            "empirical_sd": grouped[estimate_col].std(ddof=1),
            "mean_se": grouped[se_col].mean(),
            "rmse": grouped["_error"].apply(lambda e: float(np.sqrt(np.mean(e**2)))),
            "coverage": grouped["_covered"].mean(),
            "replications": grouped[estimate_col].count(),
        }
    )
    return summary.reset_index()
