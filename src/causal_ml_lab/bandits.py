# Copyright (c) Meta Platforms, Inc. and affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

"""
Multi-armed bandit policies and a regret simulator.

Arms pay Gaussian rewards. A policy that balances exploration and
exploitation has average regret per round tending to zero.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)


class BanditPolicy(ABC):
    """Sample-average bookkeeping shared by all policies."""

    def __init__(self, num_arms: int) -> None:
        assert num_arms >= 2, f"num_arms must be at least 2, got {num_arms}"
        self.num_arms = num_arms
        self.counts = np.zeros(num_arms, dtype=int)
        self.means = np.zeros(num_arms)

    @abstractmethod
    def select_arm(self) -> int:
        pass

    def update(self, arm: int, reward: float) -> None:
        if not 0 <= arm < self.num_arms:
            raise ValueError(f"arm must be in [0, {self.num_arms}), got {arm}")
        self.counts[arm] += 1
        self.means[arm] += (reward - self.means[arm]) / self.counts[arm]

    def _untried_arm(self) -> int | None:
        untried = np.flatnonzero(self.counts == 0)
        return int(untried[0]) if untried.size > 0 else None


class EpsilonGreedy(BanditPolicy):
    """Explore a uniformly random arm with probability epsilon, else play the best mean."""

    def __init__(self, num_arms: int, epsilon: float = 0.1) -> None:
        super().__init__(num_arms)
        assert 0.0 <= epsilon <= 1.0, f"epsilon must be in [0, 1], got {epsilon}"
        self.epsilon = epsilon

    def select_arm(self) -> int:
        untried = self._untried_arm()
        if untried is not None:
            return untried
        if np.random.random() < self.epsilon:
            return int(np.random.randint(self.num_arms))
        return int(np.argmax(self.means))


class UCB1(BanditPolicy):
    """Upper confidence bound: mean + c * sqrt(2 log t / n_a)."""

    def __init__(self, num_arms: int, exploration: float = 1.0) -> None:
        super().__init__(num_arms)
        self.exploration = exploration

    def select_arm(self) -> int:
        untried = self._untried_arm()
        if untried is not None:
            return untried
        total = self.counts.sum()
        bonus = self.exploration * np.sqrt(2 * np.log(total) / self.counts)
        return int(np.argmax(self.means + bonus))


class GaussianThompsonSampling(BanditPolicy):
    """
    Thompson sampling with a N(0, prior_std^2) prior on each arm mean and
    known reward standard deviation.
    """

    def __init__(
        self, num_arms: int, reward_std: float = 1.0, prior_std: float = 10.0
    ) -> None:
        super().__init__(num_arms)
        self.reward_std = reward_std
        self.prior_std = prior_std

    def posterior(self) -> tuple[NDArray, NDArray]:
        """Posterior mean and standard deviation of every arm mean."""
        precision = 1 / self.prior_std**2 + self.counts / self.reward_std**2
        mean = (self.counts * self.means / self.reward_std**2) / precision
        return mean, 1 / np.sqrt(precision)

    def select_arm(self) -> int:
        mean, std = self.posterior()
        return int(np.argmax(np.random.normal(mean, std)))


@dataclass
class BanditHistory:
    """Arms played, rewards received and cumulative (pseudo-)regret per round."""

    arms: NDArray
    rewards: NDArray
    cumulative_regret: NDArray

    @property
    def average_regret(self) -> NDArray:
        rounds = np.arange(1, self.cumulative_regret.shape[0] + 1)
        return self.cumulative_regret / rounds


def simulate_bandit(
    policy: BanditPolicy,
    arm_means: NDArray,
    horizon: int,
    reward_std: float = 1.0,
    seed: int | None = None,
) -> BanditHistory:
    """
    Play ``policy`` for ``horizon`` rounds against Gaussian arms.

    Parameters
    ----------
    policy : BanditPolicy
        Fresh policy; it is updated in place
    arm_means : NDArray
        True mean reward of each arm
    horizon : int
        Number of rounds
    reward_std : float, optional
        Reward noise standard deviation, by default 1.0
    seed : int | None, optional
        Seed for the global numpy RNG

    Returns
    -------
    BanditHistory
        Regret uses the gap between the best and the played arm's true mean
    """
    arm_means = np.asarray(arm_means, dtype=float)
    if arm_means.shape[0] != policy.num_arms:
        raise ValueError(
            f"policy has {policy.num_arms} arms but {arm_means.shape[0]} means were given"
        )
    if seed is not None:
        np.random.seed(seed)

    arms = np.empty(horizon, dtype=int)
    rewards = np.empty(horizon)
    for t in range(horizon):
        arm = policy.select_arm()
        reward = np.random.normal(arm_means[arm], reward_std)
        policy.update(arm, reward)
        arms[t] = arm
        rewards[t] = reward

    gaps = arm_means.max() - arm_means[arms]
    history = BanditHistory(arms=arms, rewards=rewards, cumulative_regret=np.cumsum(gaps))
    logger.debug(
        "%s: cumulative regret %.2f after %d rounds",
        type(policy).__name__,
        history.cumulative_regret[-1] if horizon > 0 else 0.0,
        horizon,
    )
    return history
