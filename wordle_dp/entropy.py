"""
Entropy ranking of guesses.

The Shannon entropy of a guess's feedback distribution is a cheap proxy
for how much it narrows a candidate set. It is only used to decide which
guesses are worth an expensive exact evaluation and in what order; it
never feeds into an expected-step value.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np
from numba import jit

from .errors import InvariantViolation
from .partition import bucket_sizes, candidate_set
from .patterns import PatternTable


PROBABILITY_TOLERANCE = 1e-9


@jit(nopython=True, cache=True)
def partition_metrics(sizes: np.ndarray, total: int) -> Tuple[float, float, int, float]:
    """
    Entropy, expected bucket size and worst bucket of a partition.

    Returns:
        (entropy_bits, expected_bucket_size, max_bucket_size, probability_sum)
    """
    entropy = 0.0
    expected = 0.0
    worst = 0
    prob_sum = 0.0

    for s in sizes:
        if s > 0:
            p = s / total
            entropy -= p * np.log2(p)
            expected += p * s
            prob_sum += p
            if s > worst:
                worst = s

    return entropy, expected, worst, prob_sum


@dataclass(frozen=True)
class GuessStats:
    """Partition statistics for one guess against one candidate set."""
    guess: int
    word: str
    entropy: float
    expected_bucket_size: float
    max_bucket_size: int
    n_buckets: int

    def sort_key(self):
        # Higher entropy first, then smaller expected bucket, then word
        return (-self.entropy, self.expected_bucket_size, self.word)


def _stats(table: PatternTable, candidates: np.ndarray, guess: int) -> GuessStats:
    _, sizes = bucket_sizes(table, candidates, guess)
    n = int(candidates.size)
    entropy, expected, worst, prob_sum = partition_metrics(sizes.astype(np.int64), n)
    if abs(prob_sum - 1.0) > PROBABILITY_TOLERANCE or int(sizes.sum()) != n:
        raise InvariantViolation(
            f"Bucket probabilities for guess {table.words[guess]!r} sum to {prob_sum}")
    return GuessStats(
        guess=int(guess),
        word=table.words[guess],
        entropy=max(0.0, float(entropy)),
        expected_bucket_size=float(expected),
        max_bucket_size=int(worst),
        n_buckets=int(sizes.size),
    )


def guess_stats(table: PatternTable, candidates, guess: int) -> GuessStats:
    """
    Score one guess against a candidate set.

    Args:
        table: pattern table
        candidates: universe indices or words
        guess: universe index of the guess

    Returns:
        GuessStats with entropy (bits), expected bucket size and max bucket size
    """
    cands = candidate_set(table, candidates)
    table.check_index(guess)
    return _stats(table, cands, guess)


def entropy(table: PatternTable, candidates, guess: int) -> float:
    return guess_stats(table, candidates, guess).entropy


def rank_guesses(table: PatternTable, candidates, pool: Optional[Iterable] = None,
                 limit: Optional[int] = None, offset: int = 0,
                 cancel=None) -> List[GuessStats]:
    """
    Order guesses by entropy against a candidate set.

    Ties are broken by smaller expected bucket size, then lexicographically
    by word, so the order is fully deterministic.

    Args:
        table: pattern table
        candidates: the set being split
        pool: guesses to rank (defaults to the candidates themselves)
        limit: keep at most this many after ``offset``
        offset: number of top-ranked guesses to skip
        cancel: optional object with ``is_set()``; ranking stops early when set

    Returns:
        GuessStats, best first
    """
    cands = candidate_set(table, candidates)
    guesses = cands if pool is None else candidate_set(table, pool)

    scored = []
    for g in guesses.tolist():
        if cancel is not None and cancel.is_set():
            break
        scored.append(_stats(table, cands, g))

    scored.sort(key=GuessStats.sort_key)
    end = None if limit is None else offset + limit
    return scored[offset:end]
