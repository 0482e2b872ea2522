"""
Exact Expectimax Solver
=======================

Computes the minimum expected number of guesses needed to find the secret
in a candidate set, assuming every candidate is equally likely:

    E(S) = 1                                   if |S| = 1
    E(S) = min_g  1 + sum_{s != GG..G} |S_s|/|S| * E(S_s)

where S_s is the bucket of S giving feedback s to guess g. The all-correct
bucket needs no further guesses, so it only contributes the leading 1.

Optimizations:
1. Memoization: results are cached per candidate set (the same set is
   reached through many guess sequences)
2. Branch and bound: while summing a guess's buckets, stop as soon as the
   cost cannot beat the best guess found so far
3. Largest buckets first, so the bound bites early

The guess policy decides which words may be tried next: ``closed`` (hard
mode) only allows words still in the candidate set, ``open`` allows any
word of a fixed pool. It never changes which words remain possible
answers. Closed and open results differ, so never share a cache between
solvers with different policies.
"""

import logging
import math
import time
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

from .cache import BoundedMemoCache, MemoEntry
from .errors import (ConfigError, IndexOutOfRangeError, InvariantViolation,
                     UnsolvableStateError)
from .partition import candidate_set, set_key, split
from .patterns import PatternTable


log = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

STATUS_INTERVAL = 2.0  # seconds between verbose status lines

# Costs closer than this count as ties; the first guess tried wins
COST_EPSILON = 1e-12


class GuessPolicy(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


Solution = MemoEntry


# ============================================================================
# SHARED EVALUATOR
# ============================================================================

class BaseEvaluator:
    """
    One-step expectimax machinery shared by the exact solver and the
    depth-limited lookahead evaluator.

    ``horizon`` is the lookahead below a forced guess: ``None`` means
    unlimited (exact). Picking the best guess for a set is the minimum of
    the forced-guess costs, so ``solve`` and ``evaluate_guess`` agree.
    """

    policy = GuessPolicy.CLOSED
    horizon: Optional[int] = None

    def __init__(self, table: PatternTable, cache: Optional[BoundedMemoCache] = None,
                 memoize: bool = True, verbose: bool = False):
        self.table = table
        self.cache = cache if cache is not None else BoundedMemoCache(name=type(self).__name__)
        self.memoize = memoize
        self.verbose = verbose

        self.calls = 0
        self.states_evaluated = 0
        self._last_status_time = time.time()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def solve(self, candidates) -> Solution:
        """
        Best guess for a candidate set and its expected number of guesses.

        Args:
            candidates: universe indices or words

        Returns:
            Solution(expected_steps, best_guess)
        """
        cands = candidate_set(self.table, candidates)
        return self._solve(cands, self._top_depth())

    def expected_steps(self, candidates) -> float:
        return self.solve(candidates).expected_steps

    def best_guess(self, candidates) -> int:
        return self.solve(candidates).best_guess

    def evaluate_guess(self, candidates, guess: int) -> float:
        """
        Expected number of guesses if ``guess`` is forced now and play
        continues with this evaluator afterwards.
        """
        cands = candidate_set(self.table, candidates)
        self.table.check_index(guess)
        return self._guess_cost(cands, guess, self.horizon, math.inf, forced=True)

    def play(self, secret: int, candidates=None) -> List[int]:
        """
        Follow the evaluator's policy until ``secret`` is guessed.

        Returns:
            Guess indices in order; the last one is the secret
        """
        cands = self.table.all_indices() if candidates is None else candidate_set(self.table, candidates)
        secret = self.table.check_index(secret)
        if secret not in set(cands.tolist()):
            raise IndexOutOfRangeError(f"Secret {self.table.words[secret]!r} is not a candidate")

        correct = self.table.correct_pattern
        guesses = []
        while True:
            guess = self._solve(cands, self._top_depth()).best_guess
            guesses.append(guess)

            code = int(self.table.matrix[guess, secret])
            if code == correct:
                return guesses
            if len(guesses) > self.table.n_words:
                raise InvariantViolation("Play did not converge")
            cands = split(self.table, cands, guess)[code]

    def strategy_tree(self, candidates=None) -> Dict:
        """
        Decision tree of the evaluator's policy.

        Tree structure:
        {
            'word': 'abc',
            'expected_steps': 2.0,
            'children': {
                'GGB': {'word': 'abd', 'expected_steps': 1.0, 'children': {}},
                ...
            }
        }
        """
        cands = self.table.all_indices() if candidates is None else candidate_set(self.table, candidates)
        return self._tree(cands)

    def clear_cache(self) -> None:
        self.cache.clear()

    # ------------------------------------------------------------------
    # Recursion
    # ------------------------------------------------------------------

    def _solve(self, cands: np.ndarray, depth: Optional[int]) -> Solution:
        raise NotImplementedError

    def _guess_pool(self, cands: np.ndarray) -> np.ndarray:
        return cands

    def _top_depth(self) -> Optional[int]:
        # Choosing a guess spends one level on top of the forced-guess horizon
        return None if self.horizon is None else self.horizon + 1

    def _best_of(self, cands: np.ndarray, depth: Optional[int]) -> Solution:
        """Minimise the one-step cost over the guess pool."""
        best = math.inf
        best_guess = -1

        for guess in self._guess_pool(cands).tolist():
            threshold = best - COST_EPSILON
            cost = self._guess_cost(cands, guess, depth, threshold)
            if cost < threshold:
                best = cost
                best_guess = guess

        if best_guess < 0:
            raise UnsolvableStateError(
                f"No guess in the pool splits a set of {cands.size} candidates")
        return Solution(best, best_guess)

    def _guess_cost(self, cands: np.ndarray, guess: int, depth: Optional[int],
                    bound: float, forced: bool = False) -> float:
        """
        Expected guesses when playing ``guess`` on ``cands``.

        Returns early with a value >= ``bound`` once the guess cannot beat
        it. Unless ``forced``, a guess that leaves the whole set in a single
        unsolved bucket costs infinity.
        """
        n = cands.size
        buckets = split(self.table, cands, guess)
        hit = buckets.pop(self.table.correct_pattern, None)

        if not forced and hit is None and len(buckets) == 1:
            return math.inf

        # Every unsolved bucket needs at least one more guess
        left = n - (0 if hit is None else hit.size)
        total = 1.0
        if total + left / n >= bound:
            return total + left / n

        for bucket in sorted(buckets.values(), key=len, reverse=True):
            size = bucket.size
            left -= size
            total += size / n * self._solve(bucket, depth).expected_steps
            if total + left / n >= bound:
                return total + left / n

        return total

    def _tree(self, cands: np.ndarray) -> Dict:
        solution = self._solve(cands, self._top_depth())
        guess = solution.best_guess
        node = {
            'word': self.table.words[guess],
            'expected_steps': solution.expected_steps,
            'children': {},
        }
        if cands.size == 1:
            return node

        for code, bucket in split(self.table, cands, guess).items():
            if code != self.table.correct_pattern:
                node['children'][self.table.pattern_string(code)] = self._tree(bucket)
        return node

    def _report_status(self, n: int) -> None:
        if not self.verbose or time.time() - self._last_status_time <= STATUS_INTERVAL:
            return
        stats = self.cache.stats()
        log.info("[%s] calls=%d, states=%d, n=%d, cache=%d (%.0f%% hit)",
                 type(self).__name__, self.calls, self.states_evaluated, n,
                 stats.size, stats.hit_rate * 100)
        self._last_status_time = time.time()


# ============================================================================
# EXACT SOLVER
# ============================================================================

class ExactSolver(BaseEvaluator):
    """
    Memoized expectimax with branch-and-bound pruning.

    Worst case is exponential in the universe size; evaluate the root only
    for a bounded set of promising guesses (see RootEvaluator).
    """

    def __init__(self, table: PatternTable, policy: GuessPolicy = GuessPolicy.CLOSED,
                 guess_pool=None, cache: Optional[BoundedMemoCache] = None,
                 memoize: bool = True, verbose: bool = False):
        """
        Args:
            table: pattern table over the universe
            policy: ``closed`` (guess only from the candidates) or ``open``
            guess_pool: guesses allowed under the open policy (default: universe)
            cache: memo cache; must not be shared with a different policy
            memoize: disable to get a reference run without caching
            verbose: periodic status lines while solving
        """
        super().__init__(table, cache=cache, memoize=memoize, verbose=verbose)
        self.policy = GuessPolicy(policy)

        if self.policy is GuessPolicy.CLOSED:
            if guess_pool is not None:
                raise ConfigError("A guess pool only applies to the open policy")
            self.guess_pool = None
        else:
            self.guess_pool = (table.all_indices() if guess_pool is None
                               else candidate_set(table, guess_pool))

    def _guess_pool(self, cands: np.ndarray) -> np.ndarray:
        if self.policy is GuessPolicy.CLOSED:
            return cands
        return self.guess_pool

    def _solve(self, cands: np.ndarray, depth: Optional[int] = None) -> Solution:
        self.calls += 1
        n = cands.size

        if n == 1:
            return Solution(1.0, int(cands[0]))

        key = set_key(cands)
        if self.memoize:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        self.states_evaluated += 1
        self._report_status(n)

        solution = self._best_of(cands, None)
        if self.memoize:
            self.cache.put(key, solution)
        return solution
