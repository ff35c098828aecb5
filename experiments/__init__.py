# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""
Monte Carlo studies for the causal ML course.

Each script in ``scripts/`` reads a YAML file from ``configs/``, runs
replications and writes pickled results and plots.
"""
