"""
Exceptions raised by the solver core.

Precondition violations (empty sets, bad indices) subclass the builtin
error a caller would expect, so ``except ValueError`` keeps working.
"""


class WordleDPError(Exception):
    """Base class for all solver errors."""


class EmptyCandidateSetError(WordleDPError, ValueError):
    """A candidate set with no members was passed in."""


class IndexOutOfRangeError(WordleDPError, IndexError):
    """A word index (or word) is not part of the universe."""


class InvariantViolation(WordleDPError, RuntimeError):
    """Internal consistency check failed - this is a bug, not a game state."""


class UnsolvableStateError(WordleDPError, ValueError):
    """No guess in the pool can split the candidate set."""


class ConfigError(WordleDPError, ValueError):
    """Invalid solver configuration."""


class UniverseError(WordleDPError, ValueError):
    """The word universe cannot be indexed (empty, mixed lengths, duplicates)."""
