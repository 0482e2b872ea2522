"""
Solver configuration.

Values only - the caller owns where they come from. ``build_evaluator``
turns a config into the right evaluator, so callers never special-case
exact and approximate evaluation: ply 0 is exact, ply > 0 is lookahead.
"""

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional

from .cache import DEFAULT_CAPACITY, DEFAULT_EVICT_FRACTION, BoundedMemoCache
from .errors import ConfigError
from .lookahead import ConstantLeafCost, LeafCost, LookaheadEvaluator, PowerLeafCost
from .patterns import PatternTable
from .solver import BaseEvaluator, ExactSolver, GuessPolicy


log = logging.getLogger(__name__)


LEAF_COSTS = ("constant", "power")


@dataclass
class SolverConfig:
    policy: GuessPolicy = GuessPolicy.CLOSED
    ply: int = 0                       # 0 = exact, > 0 = lookahead horizon
    deep_ply: Optional[int] = None     # ply used instead once the root set is small
    deep_threshold: int = 0            # root sets of at most this size use deep_ply; 0 = off
    exact_limit: Optional[int] = 200   # openings evaluated per block; None = all
    block_index: int = 1               # 1-based block of exact_limit openings
    candidate_limit: Optional[int] = None  # best candidates kept as openings; None = all
    pool_limit: Optional[int] = None       # best non-candidate pool words kept (open policy)
    memo_capacity: int = DEFAULT_CAPACITY
    evict_fraction: float = DEFAULT_EVICT_FRACTION
    leaf_cost: str = "constant"
    leaf_constant: float = 2.0
    leaf_base: float = 1.0
    leaf_scale: float = 0.2
    leaf_exponent: float = 0.55
    workers: int = 1
    verbose: bool = False

    def __post_init__(self):
        try:
            self.policy = GuessPolicy(self.policy)
        except ValueError:
            raise ConfigError(f"Unknown policy: {self.policy!r}") from None

        if self.ply < 0:
            raise ConfigError(f"ply must be >= 0, got {self.ply}")
        if self.ply > 0 and self.policy is GuessPolicy.OPEN:
            raise ConfigError("Lookahead evaluation only supports the closed policy")
        if self.deep_threshold < 0:
            raise ConfigError(f"deep_threshold must be >= 0, got {self.deep_threshold}")
        if self.deep_ply is not None:
            if self.deep_ply < 0:
                raise ConfigError(f"deep_ply must be >= 0, got {self.deep_ply}")
            if self.deep_ply > 0 and self.policy is GuessPolicy.OPEN:
                raise ConfigError("Lookahead evaluation only supports the closed policy")
        elif self.deep_threshold > 0:
            raise ConfigError("deep_threshold needs a deep_ply")
        if self.exact_limit is not None and self.exact_limit < 1:
            raise ConfigError(f"exact_limit must be >= 1, got {self.exact_limit}")
        if self.block_index < 1:
            raise ConfigError(f"block_index must be >= 1, got {self.block_index}")
        if self.candidate_limit is not None and self.candidate_limit < 1:
            raise ConfigError(f"candidate_limit must be >= 1, got {self.candidate_limit}")
        if self.pool_limit is not None and self.pool_limit < 0:
            raise ConfigError(f"pool_limit must be >= 0, got {self.pool_limit}")
        if self.memo_capacity < 1:
            raise ConfigError(f"memo_capacity must be >= 1, got {self.memo_capacity}")
        if not 0.0 < self.evict_fraction <= 1.0:
            raise ConfigError(f"evict_fraction must be in (0, 1], got {self.evict_fraction}")
        if self.leaf_cost not in LEAF_COSTS:
            raise ConfigError(f"leaf_cost must be one of {LEAF_COSTS}, got {self.leaf_cost!r}")
        if self.workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.workers}")

        # Fail on bad leaf parameters now rather than mid-search
        self.make_leaf_cost()

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "SolverConfig":
        """Build a config from plain values, e.g. parsed JSON."""
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigError(f"Unknown config keys: {sorted(unknown)}")
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['policy'] = self.policy.value
        return d

    @property
    def exact(self) -> bool:
        return self.ply == 0

    def ply_for(self, n_candidates: Optional[int]) -> int:
        """Ply to use for a root set of this size (None = unknown size)."""
        if (self.deep_threshold > 0 and n_candidates is not None
                and n_candidates <= self.deep_threshold):
            return self.deep_ply
        return self.ply

    def make_cache(self, name: str = "memo") -> BoundedMemoCache:
        return BoundedMemoCache(self.memo_capacity, self.evict_fraction, name=name)

    def make_leaf_cost(self) -> LeafCost:
        if self.leaf_cost == "power":
            return PowerLeafCost(self.leaf_base, self.leaf_scale, self.leaf_exponent)
        return ConstantLeafCost(self.leaf_constant)


def build_evaluator(table: PatternTable, config: Optional[SolverConfig] = None,
                    guess_pool=None, n_candidates: Optional[int] = None) -> BaseEvaluator:
    """
    Create the evaluator a config asks for, with its own memo cache.

    Args:
        table: pattern table over the universe
        config: solver configuration (default: exact, closed policy)
        guess_pool: guesses allowed under the open policy (default: universe)
        n_candidates: size of the root set; selects ``deep_ply`` when it is
            within ``deep_threshold``
    """
    config = config or SolverConfig()
    ply = config.ply_for(n_candidates)
    if ply != config.ply:
        log.info("Root set of %d candidates: using ply %d instead of %d",
                 n_candidates, ply, config.ply)

    if ply == 0:
        return ExactSolver(table, policy=config.policy, guess_pool=guess_pool,
                           cache=config.make_cache(f"exact-{config.policy.value}"),
                           verbose=config.verbose)

    if guess_pool is not None:
        raise ConfigError("A guess pool only applies to the open policy")
    return LookaheadEvaluator(table, max_ply=ply,
                              leaf_cost=config.make_leaf_cost(),
                              cache=config.make_cache(f"lookahead-{ply}"),
                              verbose=config.verbose)
