"""
Depth-Limited Lookahead Evaluator
=================================

Greedy approximation of the exact solver for interactive use, where a full
expectimax over a large candidate set is too slow:

    H(S, d) = 1                                   if |S| = 1
    H(S, d) = leaf_cost(|S|)                      if d = 0
    H(S, d) = min_{g in S} 1 + sum_{s != GG..G} |S_s|/|S| * H(S_s, d - 1)

Each explored level picks its best next guess from the current bucket only
(hard mode), so beyond the first ply the result is a local optimum, not the
global one. Runtime grows exponentially with the ply; 1-8 is practical.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .cache import BoundedMemoCache
from .errors import ConfigError
from .partition import candidate_set, set_key
from .patterns import PatternTable
from .solver import BaseEvaluator, GuessPolicy, Solution


log = logging.getLogger(__name__)


LeafCost = Callable[[int], float]


# ============================================================================
# LEAF COST POLICIES
# ============================================================================

@dataclass(frozen=True)
class ConstantLeafCost:
    """Every unresolved bucket beyond the horizon costs ``value`` guesses."""
    value: float = 2.0

    def __post_init__(self):
        if self.value < 1.0:
            raise ConfigError(f"Leaf cost must be >= 1, got {self.value}")

    def __call__(self, k: int) -> float:
        return 1.0 if k <= 1 else self.value


@dataclass(frozen=True)
class PowerLeafCost:
    """Smooth sub-linear growth: ``base + scale * k ** exponent``."""
    base: float = 1.0
    scale: float = 0.2
    exponent: float = 0.55

    def __post_init__(self):
        if self.base < 1.0 or self.scale < 0.0:
            raise ConfigError("Power leaf cost needs base >= 1 and scale >= 0")

    def __call__(self, k: int) -> float:
        if k <= 1:
            return 1.0
        return self.base + self.scale * k ** self.exponent


# ============================================================================
# EVALUATOR
# ============================================================================

class LookaheadEvaluator(BaseEvaluator):
    """
    Depth-limited greedy expectimax with a closed-form leaf estimate.

    Results are memoized per (candidate set, remaining ply).
    """

    policy = GuessPolicy.CLOSED

    def __init__(self, table: PatternTable, max_ply: int = 1,
                 leaf_cost: Optional[LeafCost] = None,
                 cache: Optional[BoundedMemoCache] = None,
                 memoize: bool = True, verbose: bool = False):
        """
        Args:
            table: pattern table over the universe
            max_ply: levels of explicit lookahead below a guess
            leaf_cost: expected guesses for a bucket of size k beyond the
                horizon; must be >= 1 (default: ConstantLeafCost())
            cache: memo cache for this evaluator
            memoize: disable to get a reference run without caching
            verbose: periodic status lines while evaluating
        """
        if max_ply < 0:
            raise ConfigError(f"max_ply must be >= 0, got {max_ply}")
        super().__init__(table, cache=cache, memoize=memoize, verbose=verbose)
        self.max_ply = max_ply
        self.horizon = max_ply
        self.leaf_cost = leaf_cost if leaf_cost is not None else ConstantLeafCost()

    def evaluate(self, candidates, guess: int, max_ply: Optional[int] = None) -> float:
        """
        Approximate expected guesses when playing ``guess`` on ``candidates``.

        Args:
            candidates: universe indices or words
            guess: universe index of the guess
            max_ply: horizon for this call (default: the evaluator's)
        """
        if max_ply is None:
            return self.evaluate_guess(candidates, guess)
        if max_ply < 0:
            raise ConfigError(f"max_ply must be >= 0, got {max_ply}")

        cands = candidate_set(self.table, candidates)
        self.table.check_index(guess)
        return self._guess_cost(cands, guess, max_ply, float("inf"), forced=True)

    def _solve(self, cands: np.ndarray, depth: Optional[int]) -> Solution:
        self.calls += 1
        n = cands.size

        if n == 1:
            return Solution(1.0, int(cands[0]))
        if depth <= 0:
            return Solution(float(self.leaf_cost(n)), int(cands[0]))

        key = (set_key(cands), depth)
        if self.memoize:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        self.states_evaluated += 1
        self._report_status(n)

        solution = self._best_of(cands, depth - 1)
        if self.memoize:
            self.cache.put(key, solution)
        return solution
