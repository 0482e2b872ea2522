"""
Wordle DP - Exact Expected-Guess Solver
=======================================

Computes the minimum expected number of guesses to find a Wordle-style
secret, exactly (memoized expectimax with branch and bound) or with a
depth-limited lookahead, and ranks opening guesses by that number.
"""

__version__ = "1.0.0"

from .cache import BoundedMemoCache, CacheStats, MemoEntry
from .config import SolverConfig, build_evaluator
from .entropy import GuessStats, entropy, guess_stats, rank_guesses
from .errors import (ConfigError, EmptyCandidateSetError, IndexOutOfRangeError,
                     InvariantViolation, UniverseError, UnsolvableStateError,
                     WordleDPError)
from .lookahead import ConstantLeafCost, LookaheadEvaluator, PowerLeafCost
from .partition import candidate_set, partition
from .patterns import PatternTable, feedback, pattern_from_string, pattern_to_string
from .root import RankingReport, RootEvaluator, RootResult, rank_openings
from .solver import ExactSolver, GuessPolicy, Solution
