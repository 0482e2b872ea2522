import unittest

from wordle_dp.cache import DEFAULT_CAPACITY
from wordle_dp.config import SolverConfig, build_evaluator
from wordle_dp.errors import ConfigError
from wordle_dp.lookahead import ConstantLeafCost, LookaheadEvaluator, PowerLeafCost
from wordle_dp.patterns import PatternTable
from wordle_dp.solver import ExactSolver, GuessPolicy

from universes import FIXTURE


class TestSolverConfig(unittest.TestCase):

    def test_defaults(self) -> None:
        config = SolverConfig()
        self.assertIs(config.policy, GuessPolicy.CLOSED)
        self.assertTrue(config.exact)
        self.assertEqual(config.exact_limit, 200)
        self.assertEqual(config.memo_capacity, DEFAULT_CAPACITY)
        self.assertEqual(config.make_leaf_cost(), ConstantLeafCost(2.0))

    def test_from_mapping(self) -> None:
        config = SolverConfig.from_mapping({"policy": "open", "workers": 4, "exact_limit": None})
        self.assertIs(config.policy, GuessPolicy.OPEN)
        self.assertEqual(config.workers, 4)
        self.assertIsNone(config.exact_limit)

    def test_unknown_key(self) -> None:
        with self.assertRaises(ConfigError):
            SolverConfig.from_mapping({"plies": 2})

    def test_invalid_values(self) -> None:
        bad = [
            {"policy": "hard"},
            {"ply": -1},
            {"exact_limit": 0},
            {"block_index": 0},
            {"memo_capacity": 0},
            {"evict_fraction": 0.0},
            {"evict_fraction": 1.5},
            {"leaf_cost": "cubic"},
            {"leaf_constant": 0.5},
            {"leaf_cost": "power", "leaf_scale": -1.0},
            {"workers": 0},
            {"policy": "open", "ply": 2},
            {"deep_threshold": -1},
            {"deep_threshold": 10},
            {"deep_ply": -1, "deep_threshold": 10},
            {"policy": "open", "deep_ply": 3, "deep_threshold": 10},
            {"candidate_limit": 0},
            {"pool_limit": -1},
        ]
        for values in bad:
            with self.subTest(values=values):
                with self.assertRaises(ConfigError):
                    SolverConfig(**values)

    def test_config_error_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            SolverConfig(ply=-3)

    def test_to_dict(self) -> None:
        d = SolverConfig(ply=2, leaf_cost="power").to_dict()
        self.assertEqual(d["policy"], "closed")
        self.assertEqual(d["ply"], 2)
        self.assertEqual(SolverConfig.from_mapping(d), SolverConfig(ply=2, leaf_cost="power"))

    def test_power_leaf(self) -> None:
        config = SolverConfig(leaf_cost="power", leaf_scale=0.5)
        self.assertEqual(config.make_leaf_cost(), PowerLeafCost(1.0, 0.5, 0.55))


class TestBuildEvaluator(unittest.TestCase):

    @classmethod
    def setUpClass(cls) -> None:
        cls.table = PatternTable(FIXTURE)

    def test_exact(self) -> None:
        evaluator = build_evaluator(self.table, SolverConfig(memo_capacity=10))
        self.assertIsInstance(evaluator, ExactSolver)
        self.assertEqual(evaluator.cache.capacity, 10)
        self.assertAlmostEqual(evaluator.expected_steps(FIXTURE), 2.0, places=12)

    def test_open_with_pool(self) -> None:
        evaluator = build_evaluator(self.table, SolverConfig(policy="open"), guess_pool=["abc", "ghi"])
        self.assertIs(evaluator.policy, GuessPolicy.OPEN)
        self.assertEqual(evaluator.guess_pool.tolist(), [0, 3])

    def test_lookahead(self) -> None:
        evaluator = build_evaluator(self.table, SolverConfig(ply=3, leaf_cost="power"))
        self.assertIsInstance(evaluator, LookaheadEvaluator)
        self.assertEqual(evaluator.max_ply, 3)
        self.assertIsInstance(evaluator.leaf_cost, PowerLeafCost)

    def test_lookahead_rejects_pool(self) -> None:
        with self.assertRaises(ConfigError):
            build_evaluator(self.table, SolverConfig(ply=1), guess_pool=["abc"])

    def test_closed_rejects_pool(self) -> None:
        with self.assertRaises(ConfigError):
            build_evaluator(self.table, SolverConfig(), guess_pool=["abc"])

    def test_deep_threshold_picks_evaluator(self) -> None:
        config = SolverConfig(ply=2, deep_ply=0, deep_threshold=3)
        self.assertEqual(config.ply_for(3), 0)
        self.assertEqual(config.ply_for(4), 2)
        self.assertEqual(config.ply_for(None), 2)
        self.assertIsInstance(build_evaluator(self.table, config, n_candidates=3), ExactSolver)
        deep = build_evaluator(self.table, config, n_candidates=5)
        self.assertIsInstance(deep, LookaheadEvaluator)
        self.assertEqual(deep.max_ply, 2)

    def test_deep_lookahead_on_small_sets(self) -> None:
        config = SolverConfig(ply=1, deep_ply=4, deep_threshold=2)
        self.assertEqual(build_evaluator(self.table, config, n_candidates=2).max_ply, 4)
        self.assertEqual(build_evaluator(self.table, config, n_candidates=3).max_ply, 1)
