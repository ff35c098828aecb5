# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import numpy as np
from numpy.typing import NDArray

from .types import DataDecomposer, Dataset, TrainingInferenceData


class Splitting(DataDecomposer):
    """
    Single sample split into a training half (nuisance fitting) and an
    inference half (scoring).

    Supports stratified splitting by treatment assignment and optional shuffling.
    """

    def __init__(
        self,
        train_ratio: float = 0.5,
        shuffle: bool = False,
        stratify_by_treatment: bool = False,
    ) -> None:
        """
        Parameters
        ----------
        train_ratio : float, optional
            Share of units used for training, by default 0.5
        shuffle : bool, optional
            Permute units before splitting, by default False
        stratify_by_treatment : bool, optional
            Apply ``train_ratio`` within each treatment arm, by default False
        """
        super().__init__()
        assert (
            0.0 < train_ratio < 1.0
        ), f"train_ratio must be between 0 and 1, got {train_ratio}"
        self.train_ratio = train_ratio
        self.shuffle = shuffle
        self.stratify_by_treatment = stratify_by_treatment

    def _head(self, indices: NDArray) -> int:
        return int(len(indices) * self.train_ratio)

    def split_indices(self, data: Dataset) -> tuple[NDArray, NDArray]:
        """Return (train_idx, inference_idx) into the rows of ``data``."""
        order = np.arange(data.num_samples)
        if self.shuffle:
            order = np.random.permutation(data.num_samples)

        if not self.stratify_by_treatment:
            cut = self._head(order)
            return order[:cut], order[cut:]

        train_parts = []
        inference_parts = []
        for arm in (1, 0):
            arm_order = order[data.A[order] == arm]
            cut = self._head(arm_order)
            train_parts.append(arm_order[:cut])
            inference_parts.append(arm_order[cut:])
        return np.concatenate(train_parts), np.concatenate(inference_parts)

    def decompose(self, data: Dataset) -> TrainingInferenceData:
        train_idx, inference_idx = self.split_indices(data)
        return TrainingInferenceData(
            train=data.subset(train_idx), inf=data.subset(inference_idx)
        )
