# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

from typing import Any, Dict, List

import numpy as np
import pandas as pd
import testslide

from causal_ml_lab.simulation import run_replications, summarize_estimates


class TestRunReplications(testslide.TestCase):
    def test_single_row_per_replication(self) -> None:
        results = run_replications(
            lambda run: {"ate": float(run), "ate_se": 1.0}, repetitions=4, progress=False
        )

        self.assertEqual(len(results), 4)
        self.assertEqual(list(results["run_number"]), [1, 2, 3, 4])
        self.assertEqual(list(results["ate"]), [0.0, 1.0, 2.0, 3.0])

    def test_rows_per_method(self) -> None:
        def replicate(run: int) -> List[Dict[str, Any]]:
            return [
                {"method": "a", "ate": 1.0, "ate_se": 0.1},
                {"method": "b", "ate": 2.0, "ate_se": 0.1},
            ]

        results = run_replications(replicate, repetitions=3, progress=False)

        self.assertEqual(len(results), 6)
        self.assertEqual(sorted(results["method"].unique()), ["a", "b"])
        self.assertEqual(list(results["run_number"][:2]), [1, 1])

    def test_seed_reproducibility(self) -> None:
        def replicate(run: int) -> Dict[str, Any]:
            return {"ate": float(np.random.randn()), "ate_se": 1.0}

        results1 = run_replications(replicate, repetitions=5, seed=9, progress=False)
        results2 = run_replications(replicate, repetitions=5, seed=9, progress=False)

        self.assertTrue(np.array_equal(results1["ate"], results2["ate"]))

    def test_invalid_repetitions(self) -> None:
        with self.assertRaises(ValueError):
            run_replications(lambda run: {}, repetitions=0)


class TestSummarizeEstimates(testslide.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.results = pd.DataFrame(
            {
                "method": ["good", "good", "bad", "bad"],
                "ate": [1.0, 3.0, 10.0, 10.0],
                "ate_se": [1.0, 1.0, 0.1, 0.1],
            }
        )

    def test_summary_values(self) -> None:
        summary = summarize_estimates(self.results, true_value=2.0).set_index("method")

        self.assertAlmostEqual(summary.loc["good", "mean_estimate"], 2.0)
        self.assertAlmostEqual(summary.loc["good", "bias"], 0.0)
        self.assertAlmostEqual(summary.loc["good", "empirical_sd"], np.sqrt(2.0))
        self.assertAlmostEqual(summary.loc["good", "rmse"], 1.0)
        self.assertAlmostEqual(summary.loc["good", "coverage"], 1.0)
        self.assertAlmostEqual(summary.loc["bad", "bias"], 8.0)
        self.assertAlmostEqual(summary.loc["bad", "coverage"], 0.0)
        self.assertEqual(summary.loc["bad", "replications"], 2)

    def test_group_by_several_columns(self) -> None:
        results = self.results.assign(num_samples=[100, 200, 100, 200])
        summary = summarize_estimates(
            results, true_value=2.0, group_by=["method", "num_samples"]
        )

        self.assertEqual(len(summary), 4)
        self.assertIn("num_samples", summary.columns)

    def test_missing_columns(self) -> None:
        with self.assertRaises(ValueError):
            summarize_estimates(self.results.drop(columns="ate_se"), true_value=2.0)
