import unittest

import numpy as np

from wordle_dp.errors import IndexOutOfRangeError, UniverseError
from wordle_dp.patterns import (PatternTable, feedback, pattern_from_string,
                                pattern_to_string)


class TestFeedback(unittest.TestCase):

    def test_duplicate_letters(self) -> None:
        # One L is green, the second L only gets the remaining copy
        self.assertEqual(pattern_to_string(feedback("allow", "llama"), 5), "YGYBB")
        # E appears once in the answer: only the first E is credited
        self.assertEqual(pattern_to_string(feedback("speed", "abide"), 5), "BBYBY")
        self.assertEqual(pattern_to_string(feedback("eerie", "there"), 5), "YBYBG")

    def test_green_takes_priority_over_earlier_yellow(self) -> None:
        self.assertEqual(pattern_to_string(feedback("oopso", "xxxxo"), 5), "BBBBG")

    def test_asymmetric(self) -> None:
        self.assertEqual(pattern_to_string(feedback("allow", "loyal"), 5), "YYYYB")
        self.assertEqual(pattern_to_string(feedback("loyal", "allow"), 5), "YYBYY")

    def test_self_is_all_correct(self) -> None:
        for word in ["crane", "mamma", "eerie", "xyz", "a"]:
            self.assertEqual(feedback(word, word), 3 ** len(word) - 1)

    def test_length_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            feedback("abc", "abcd")

    def test_pattern_strings(self) -> None:
        self.assertEqual(pattern_from_string("GGGGG"), 242)
        self.assertEqual(pattern_from_string("BBBBB"), 0)
        self.assertEqual(pattern_from_string("01200"), pattern_from_string("BYGBB"))
        self.assertEqual(pattern_from_string("YBBBB"), 1)
        self.assertEqual(pattern_to_string(2 * 3 ** 4, 5), "BBBBG")
        with self.assertRaises(ValueError):
            pattern_from_string("BXG")


class TestPatternTable(unittest.TestCase):

    @classmethod
    def setUpClass(cls) -> None:
        cls.words = ["allow", "llama", "loyal", "speed", "abide", "eerie", "there"]
        cls.table = PatternTable(cls.words)

    def test_shape_and_dtype(self) -> None:
        self.assertEqual(self.table.matrix.shape, (7, 7))
        self.assertEqual(self.table.matrix.dtype, np.uint8)
        self.assertEqual(self.table.correct_pattern, 242)
        self.assertEqual(self.table.n_patterns, 243)

    def test_matches_pairwise_feedback(self) -> None:
        for g, guess in enumerate(self.words):
            for a, answer in enumerate(self.words):
                self.assertEqual(self.table.code(g, a), feedback(guess, answer))

    def test_diagonal_all_correct(self) -> None:
        self.assertTrue(np.all(np.diag(self.table.matrix) == self.table.correct_pattern))

    def test_read_only(self) -> None:
        with self.assertRaises(ValueError):
            self.table.matrix[0, 0] = 0

    def test_lookups(self) -> None:
        self.assertEqual(self.table.index_of("speed"), 3)
        self.assertEqual(self.table.word(4), "abide")
        self.assertEqual(self.table.words_for([1, 0]), ["llama", "allow"])
        self.assertEqual(self.table.pattern_string(self.table.code(0, 1)), "YGYBB")
        with self.assertRaises(IndexOutOfRangeError):
            self.table.index_of("zzzzz")
        with self.assertRaises(IndexOutOfRangeError):
            self.table.code(0, 7)

    def test_wider_codes(self) -> None:
        table = PatternTable(["abcdefg", "gfedcba"])
        self.assertEqual(table.matrix.dtype, np.uint16)
        self.assertEqual(table.code(0, 0), 3 ** 7 - 1)

    def test_bad_universe(self) -> None:
        with self.assertRaises(UniverseError):
            PatternTable([])
        with self.assertRaises(UniverseError):
            PatternTable(["abc", "abcd"])
        with self.assertRaises(UniverseError):
            PatternTable(["abc", "abc"])
