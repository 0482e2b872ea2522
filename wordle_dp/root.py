"""
Opening Guess Ranking
=====================

Scores candidate opening guesses by the expected number of guesses when
the opening is forced and play continues optimally (or with lookahead):

    E(g) = 1 + sum_{s != GG..G} |U_s|/|U| * E(U_s)

Evaluating every opening exactly is rarely feasible, so openings are first
ordered by entropy and only a block of the best ``limit`` of them is
evaluated (block 1 = ranks 1..limit, block 2 = the next ``limit``, ...).
The opening pool itself can be capped: the best ``candidate_limit``
candidates plus, under the open policy, the best ``pool_limit`` words of
the guess pool that are not candidates.

Long runs can be stopped through any object with ``is_set()`` (e.g. a
``threading.Event``); it is checked while ranking by entropy and before
each opening, and the openings finished so far are returned.
"""

import logging
import multiprocessing
import os
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import numpy as np

from .cache import CacheStats
from .config import SolverConfig, build_evaluator
from .entropy import GuessStats, guess_stats, rank_guesses
from .errors import EmptyCandidateSetError, IndexOutOfRangeError
from .partition import candidate_set
from .patterns import PatternTable
from .solver import BaseEvaluator, GuessPolicy


log = logging.getLogger(__name__)


# Forked children inherit numba's threading layer from the parent and hang it
# on exit, so workers always start fresh
WORKER_START_METHOD = "spawn"


@dataclass(frozen=True)
class RootResult:
    guess: int
    word: str
    expected_steps: float
    entropy: float
    expected_bucket_size: float
    max_bucket_size: int
    entropy_rank: Optional[int] = None

    def sort_key(self):
        # Fewer expected guesses first, then more information, then word
        return (self.expected_steps, -self.entropy, self.expected_bucket_size, self.word)


@dataclass
class RankingReport:
    results: List[RootResult] = field(default_factory=list)
    requested: int = 0
    cancelled: bool = False
    states_evaluated: int = 0
    cache: Optional[CacheStats] = None
    horizon: Optional[int] = None  # lookahead ply used; None = exact

    @property
    def evaluated(self) -> int:
        return len(self.results)

    @property
    def best(self) -> Optional[RootResult]:
        return self.results[0] if self.results else None


# ============================================================================
# WORKER PROCESS STATE
# ============================================================================

# Each worker gets its own evaluator (and memo cache) via the pool initializer
_worker_evaluator: Optional[BaseEvaluator] = None
_worker_candidates: Optional[np.ndarray] = None


def _init_worker(evaluator: BaseEvaluator, candidates: np.ndarray) -> None:
    global _worker_evaluator, _worker_candidates
    _worker_evaluator = evaluator
    _worker_candidates = candidates


def _evaluate_in_worker(guess: int) -> Tuple[int, float, int, int, CacheStats]:
    """Return (guess, expected_steps, states evaluated for it, pid, cache stats)."""
    before = _worker_evaluator.states_evaluated
    cost = _worker_evaluator.evaluate_guess(_worker_candidates, guess)
    return (guess, cost, _worker_evaluator.states_evaluated - before,
            os.getpid(), _worker_evaluator.cache.stats())


def _is_cancelled(cancel) -> bool:
    return cancel is not None and cancel.is_set()


# ============================================================================
# ROOT EVALUATOR
# ============================================================================

class RootEvaluator:
    """Ranks opening guesses against a root candidate set."""

    def __init__(self, table: PatternTable, evaluator: BaseEvaluator, candidates=None):
        """
        Args:
            table: pattern table over the universe
            evaluator: ExactSolver or LookaheadEvaluator used below the opening
            candidates: root candidate set (default: the whole universe)
        """
        self.table = table
        self.evaluator = evaluator
        self.candidates = table.all_indices() if candidates is None else candidate_set(table, candidates)

    def forced_first_guess_cost(self, guess: int) -> float:
        """Expected guesses when ``guess`` must be played first."""
        return self.evaluator.evaluate_guess(self.candidates, guess)

    def opening_pool(self, candidate_limit: Optional[int] = None,
                     pool_limit: Optional[int] = None, cancel=None) -> np.ndarray:
        """
        Words allowed as an opening under the evaluator's policy.

        Args:
            candidate_limit: keep only this many candidates, best entropy first
            pool_limit: open policy only; keep this many guess-pool words
                that are not candidates, best entropy first
            cancel: object with ``is_set()``; a capped pool may come back short

        Returns:
            Canonical index array of openings
        """
        if self.evaluator.policy is GuessPolicy.OPEN:
            pool = self.evaluator.guess_pool
            inside = np.intersect1d(pool, self.candidates, assume_unique=True)
            outside = np.setdiff1d(pool, self.candidates, assume_unique=True)
        else:
            inside = self.candidates
            outside = self.candidates[:0]

        inside = self._top(inside, candidate_limit, cancel)
        outside = self._top(outside, pool_limit, cancel)
        return np.union1d(inside, outside).astype(np.int32)

    def _top(self, guesses: np.ndarray, limit: Optional[int], cancel) -> np.ndarray:
        if limit is None or guesses.size <= limit:
            return guesses
        if limit == 0:
            return guesses[:0]
        ranked = rank_guesses(self.table, self.candidates, guesses, limit=limit, cancel=cancel)
        return np.array([s.guess for s in ranked], dtype=np.int32)

    def select_openings(self, limit: Optional[int] = None, block_index: int = 1,
                        pool=None, cancel=None, candidate_limit: Optional[int] = None,
                        pool_limit: Optional[int] = None) -> List[GuessStats]:
        """Entropy-ranked openings of one block (empty if cancelled)."""
        _, block = self._select_block(limit, block_index, pool, cancel,
                                      candidate_limit, pool_limit)
        return block

    def _select_block(self, limit, block_index, pool, cancel,
                      candidate_limit=None, pool_limit=None) -> Tuple[int, List[GuessStats]]:
        if block_index < 1:
            raise IndexOutOfRangeError(f"Block index must be >= 1, got {block_index}")
        if pool is None:
            pool = self.opening_pool(candidate_limit, pool_limit, cancel)

        # A ranking cut short by cancellation has no meaningful blocks
        if _is_cancelled(cancel):
            return 0, []
        if len(pool) == 0:
            raise EmptyCandidateSetError("No openings left in the guess pool")
        ranked = rank_guesses(self.table, self.candidates, pool, cancel=cancel)
        if _is_cancelled(cancel):
            return 0, []

        if limit is None:
            if block_index != 1:
                raise IndexOutOfRangeError("Without a limit there is only block 1")
            return 0, ranked

        start = (block_index - 1) * limit
        if start >= len(ranked):
            raise IndexOutOfRangeError(
                f"Block index too large: startRank={start + 1} > total words={len(ranked)}")
        return start, ranked[start:start + limit]

    def rank(self, guesses: Optional[Iterable] = None, limit: Optional[int] = None,
             block_index: int = 1, cancel=None, workers: int = 1,
             candidate_limit: Optional[int] = None,
             pool_limit: Optional[int] = None) -> RankingReport:
        """
        Evaluate openings and sort them by expected guesses.

        Args:
            guesses: openings to evaluate (indices or words); default is the
                entropy-selected block
            limit: block size for entropy selection (None = all openings)
            block_index: 1-based block to evaluate
            cancel: object with ``is_set()``; stops before the next opening
            workers: number of worker processes (1 = in-process)
            candidate_limit: cap on candidates in the opening pool
            pool_limit: cap on non-candidate guess-pool words (open policy)

        Returns:
            RankingReport with results best first
        """
        if guesses is None:
            start, block = self._select_block(limit, block_index, None, cancel,
                                              candidate_limit, pool_limit)
            if _is_cancelled(cancel):
                log.warning("Ranking cancelled while selecting openings")
                return RankingReport(cancelled=True, cache=self.evaluator.cache.stats(),
                                     horizon=self.evaluator.horizon)
            entries = [(start + i + 1, stats) for i, stats in enumerate(block)]
        else:
            seen = set()
            entries = []
            for g in guesses:
                idx = self.table.index_of(g) if isinstance(g, str) else self.table.check_index(int(g))
                if idx not in seen:
                    seen.add(idx)
                    entries.append((None, guess_stats(self.table, self.candidates, idx)))

        if workers > 1 and len(entries) > 1:
            results, cancelled, states, cache = self._rank_parallel(entries, cancel, workers)
        else:
            states_before = self.evaluator.states_evaluated
            results, cancelled = self._rank_sequential(entries, cancel)
            states = self.evaluator.states_evaluated - states_before
            cache = self.evaluator.cache.stats()

        results.sort(key=RootResult.sort_key)
        return RankingReport(
            results=results,
            requested=len(entries),
            cancelled=cancelled,
            states_evaluated=states,
            cache=cache,
            horizon=self.evaluator.horizon,
        )

    def _rank_sequential(self, entries, cancel) -> Tuple[List[RootResult], bool]:
        results = []
        for rank, stats in entries:
            if _is_cancelled(cancel):
                log.warning("Ranking cancelled after %d of %d openings", len(results), len(entries))
                return results, True

            t0 = time.time()
            cost = self.forced_first_guess_cost(stats.guess)
            results.append(self._result(rank, stats, cost))
            log.info("#%s %s H=%.6f E=%.6f (took %.2fs)", rank if rank is not None else "-",
                     stats.word.upper(), stats.entropy, cost, time.time() - t0)
        return results, False

    def _rank_parallel(self, entries, cancel,
                       workers) -> Tuple[List[RootResult], bool, int, Optional[CacheStats]]:
        results = []
        cancelled = False
        states = 0
        worker_caches = {}

        ctx = multiprocessing.get_context(WORKER_START_METHOD)
        with ProcessPoolExecutor(max_workers=workers, mp_context=ctx, initializer=_init_worker,
                                 initargs=(self.evaluator, self.candidates)) as executor:
            futures = {executor.submit(_evaluate_in_worker, stats.guess): (rank, stats)
                       for rank, stats in entries}
            for future in as_completed(futures):
                if _is_cancelled(cancel):
                    for f in futures:
                        f.cancel()
                    cancelled = True
                    log.warning("Ranking cancelled after %d of %d openings", len(results), len(entries))
                    break

                rank, stats = futures[future]
                _, cost, n_states, pid, cache = future.result()
                states += n_states
                # Stats are cumulative per worker; results may arrive out of order
                prev = worker_caches.get(pid)
                if prev is None or cache.hits + cache.misses > prev.hits + prev.misses:
                    worker_caches[pid] = cache
                results.append(self._result(rank, stats, cost))
                log.info("#%s %s H=%.6f E=%.6f", rank if rank is not None else "-",
                         stats.word.upper(), stats.entropy, cost)

        cache = CacheStats.combine(worker_caches.values()) if worker_caches else None
        return results, cancelled, states, cache

    @staticmethod
    def _result(rank: Optional[int], stats: GuessStats, cost: float) -> RootResult:
        return RootResult(
            guess=stats.guess,
            word=stats.word,
            expected_steps=cost,
            entropy=stats.entropy,
            expected_bucket_size=stats.expected_bucket_size,
            max_bucket_size=stats.max_bucket_size,
            entropy_rank=rank,
        )


def rank_openings(table: PatternTable, config: Optional[SolverConfig] = None,
                  candidates=None, guess_pool=None, guesses=None,
                  cancel=None) -> RankingReport:
    """
    Rank openings as configured: evaluator by ply and policy (the deep ply
    when the root set is small enough), a capped opening pool, a block of
    ``exact_limit`` entropy-selected openings, ``workers`` processes.
    """
    config = config or SolverConfig()
    cands = table.all_indices() if candidates is None else candidate_set(table, candidates)
    evaluator = build_evaluator(table, config, guess_pool=guess_pool, n_candidates=cands.size)
    root = RootEvaluator(table, evaluator, cands)
    return root.rank(guesses=guesses, limit=config.exact_limit,
                     block_index=config.block_index, cancel=cancel,
                     workers=config.workers, candidate_limit=config.candidate_limit,
                     pool_limit=config.pool_limit)
