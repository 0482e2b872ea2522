"""
Feedback Patterns
=================

Computes the Wordle feedback for a (guess, secret) pair and precomputes the
full pairwise pattern table for a word universe.

Feedback is packed into a base-3 integer, position 0 least significant:

    0 = absent (gray)
    1 = present elsewhere (yellow)
    2 = correct (green)

so for 5-letter words there are 243 codes and 242 (GGGGG) means solved.
The alphabet is taken from the universe itself, which keeps the engine
independent of word length and character set.
"""

import logging
import time
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np
from numba import jit, prange

from .errors import IndexOutOfRangeError, UniverseError


log = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

GRAY = 0
YELLOW = 1
GREEN = 2

PATTERN_SYMBOLS = "BYG"
_SYMBOL_VALUES = {"B": GRAY, "Y": YELLOW, "G": GREEN,
                  "0": GRAY, "1": YELLOW, "2": GREEN}

# 3**40 - 1 no longer fits the int64 the kernel packs into
MAX_WORD_LENGTH = 39


# ============================================================================
# NUMBA-ACCELERATED FEEDBACK COMPUTATION
# ============================================================================

@jit(nopython=True, cache=True)
def compute_feedback(guess: np.ndarray, answer: np.ndarray, n_letters: int) -> int:
    """
    Compute the packed feedback code for a guess against an answer.

    Greens are marked first and only the unmatched answer letters are
    counted; yellows are then handed out left to right while a letter still
    has unmatched copies, so a repeated guess letter is never credited more
    often than the answer contains it.

    Args:
        guess: shape (L,) array of letter codes
        answer: shape (L,) array of letter codes
        n_letters: alphabet size (letter codes are 0..n_letters-1)

    Returns:
        Integer feedback pattern (0 .. 3^L - 1)
    """
    length = guess.shape[0]
    feedback = np.zeros(length, dtype=np.int64)
    answer_counts = np.zeros(n_letters, dtype=np.int32)

    # First pass: greens, count what is left of the answer
    for i in range(length):
        if guess[i] == answer[i]:
            feedback[i] = GREEN
        else:
            answer_counts[answer[i]] += 1

    # Second pass: yellows
    for i in range(length):
        if feedback[i] == GRAY:
            c = guess[i]
            if answer_counts[c] > 0:
                feedback[i] = YELLOW
                answer_counts[c] -= 1

    code = 0
    multiplier = 1
    for i in range(length):
        code += feedback[i] * multiplier
        multiplier *= 3
    return code


@jit(nopython=True, parallel=True, cache=True)
def fill_feedback_matrix(guess_chars: np.ndarray, answer_chars: np.ndarray,
                         n_letters: int, result: np.ndarray) -> None:
    """
    Compute feedback for all guess/answer pairs in parallel.

    Args:
        guess_chars: shape (n_guesses, L) array of letter codes
        answer_chars: shape (n_answers, L) array of letter codes
        n_letters: alphabet size
        result: preallocated (n_guesses, n_answers) output array
    """
    n_guesses = guess_chars.shape[0]
    n_answers = answer_chars.shape[0]

    for i in prange(n_guesses):
        for j in range(n_answers):
            result[i, j] = compute_feedback(guess_chars[i], answer_chars[j], n_letters)


# ============================================================================
# HELPERS
# ============================================================================

def pattern_dtype(length: int) -> np.dtype:
    """Smallest unsigned dtype that holds every code for words of this length."""
    top = 3 ** length - 1
    for dtype in (np.uint8, np.uint16, np.uint32, np.uint64):
        if top <= np.iinfo(dtype).max:
            return np.dtype(dtype)
    raise UniverseError(f"Word length {length} is too long to pack")


def words_to_chars(words: Sequence[str], alphabet: Sequence[str]) -> np.ndarray:
    """Convert words to an (n, L) array of letter codes."""
    letter_to_code = {c: i for i, c in enumerate(alphabet)}
    length = len(words[0]) if words else 0
    arr = np.zeros((len(words), length), dtype=np.int32)
    for i, w in enumerate(words):
        for j, c in enumerate(w):
            arr[i, j] = letter_to_code[c]
    return arr


def feedback(guess: str, secret: str) -> int:
    """Packed feedback code for two equal-length words."""
    if len(guess) != len(secret):
        raise ValueError(f"Length mismatch: {guess!r} vs {secret!r}")
    alphabet = sorted(set(guess) | set(secret))
    chars = words_to_chars([guess, secret], alphabet)
    return int(compute_feedback(chars[0], chars[1], max(1, len(alphabet))))


def pattern_to_string(code: int, length: int) -> str:
    """Convert a packed code to a pattern string such as 'BBYGG'."""
    chars = []
    for _ in range(length):
        chars.append(PATTERN_SYMBOLS[code % 3])
        code //= 3
    return "".join(chars)


def pattern_from_string(pattern: str) -> int:
    """Convert a pattern string ('BYG' or '012' symbols) to its packed code."""
    result = 0
    multiplier = 1
    for c in pattern:
        val = _SYMBOL_VALUES.get(c.upper())
        if val is None:
            raise ValueError(f"Invalid pattern char: {c}")
        result += val * multiplier
        multiplier *= 3
    return result


# ============================================================================
# PATTERN TABLE
# ============================================================================

class PatternTable:
    """
    Universe of words plus the precomputed table ``matrix[g, a]`` holding the
    feedback code when guessing word ``g`` against secret ``a``.

    Built once and read-only afterwards; word indices are the positions in
    the universe as passed in.
    """

    def __init__(self, universe: Iterable[str], verbose: bool = False):
        """
        Index the universe and precompute the pattern table.

        Args:
            universe: ordered, deduplicated words of equal length
            verbose: log table build progress at INFO instead of DEBUG
        """
        words = list(universe)
        self._check_universe(words)

        self.words: Tuple[str, ...] = tuple(words)
        self.word_to_idx: Dict[str, int] = {w: i for i, w in enumerate(self.words)}
        self.n_words = len(self.words)
        self.word_length = len(self.words[0])
        self.alphabet: Tuple[str, ...] = tuple(sorted(set("".join(self.words))))

        self.n_patterns = 3 ** self.word_length
        self.correct_pattern = self.n_patterns - 1

        self.chars = words_to_chars(self.words, self.alphabet)

        level = logging.INFO if verbose else logging.DEBUG
        log.log(level, "Computing feedback matrix (%d x %d)...", self.n_words, self.n_words)
        t0 = time.time()
        matrix = np.zeros((self.n_words, self.n_words), dtype=pattern_dtype(self.word_length))
        fill_feedback_matrix(self.chars, self.chars, len(self.alphabet), matrix)
        matrix.setflags(write=False)
        self.matrix = matrix
        log.log(level, "Done in %.1fs", time.time() - t0)

    @staticmethod
    def _check_universe(words: List[str]) -> None:
        if not words:
            raise UniverseError("Universe is empty")
        length = len(words[0])
        if length == 0:
            raise UniverseError("Words must not be empty")
        if length > MAX_WORD_LENGTH:
            raise UniverseError(f"Words longer than {MAX_WORD_LENGTH} are not supported")
        for w in words:
            if len(w) != length:
                raise UniverseError(f"Word {w!r} does not have length {length}")
        if len(set(words)) != len(words):
            raise UniverseError("Universe contains duplicate words")

    def __len__(self) -> int:
        return self.n_words

    def __repr__(self) -> str:
        return f"PatternTable(n_words={self.n_words}, word_length={self.word_length})"

    def code(self, guess: int, secret: int) -> int:
        """Feedback code for guess index vs secret index."""
        self.check_index(guess)
        self.check_index(secret)
        return int(self.matrix[guess, secret])

    def check_index(self, idx: int) -> int:
        if not 0 <= idx < self.n_words:
            raise IndexOutOfRangeError(f"Index {idx} outside universe of {self.n_words} words")
        return int(idx)

    def index_of(self, word: str) -> int:
        """Universe index of a word."""
        idx = self.word_to_idx.get(word)
        if idx is None:
            raise IndexOutOfRangeError(f"Word {word!r} is not in the universe")
        return idx

    def word(self, idx: int) -> str:
        return self.words[self.check_index(idx)]

    def words_for(self, indices: Iterable[int]) -> List[str]:
        return [self.words[i] for i in indices]

    def all_indices(self) -> np.ndarray:
        """Every universe index as a canonical candidate array."""
        return np.arange(self.n_words, dtype=np.int32)

    def pattern_string(self, code: int) -> str:
        return pattern_to_string(code, self.word_length)
