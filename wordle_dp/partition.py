"""
Candidate sets and partitioning.

A candidate set is a sorted, deduplicated int32 array of universe indices;
that array (or its bytes, for hashing) is the set's identity. Partitioning
splits a set into feedback-code buckets for one guess. Buckets come back in
ascending code order and each bucket is itself a canonical candidate set.
"""

from typing import Dict, Iterable, Tuple, Union

import numpy as np

from .errors import EmptyCandidateSetError, IndexOutOfRangeError, InvariantViolation
from .patterns import PatternTable


Buckets = Dict[int, np.ndarray]


def candidate_set(table: PatternTable, items: Union[np.ndarray, Iterable]) -> np.ndarray:
    """
    Canonicalise a candidate set.

    Args:
        table: pattern table the indices refer to
        items: universe indices or words, in any order, duplicates allowed

    Returns:
        Sorted, deduplicated int32 index array
    """
    if isinstance(items, np.ndarray):
        values = items.astype(np.int64, copy=False).ravel()
    else:
        values = np.array(
            [table.index_of(x) if isinstance(x, str) else int(x) for x in items],
            dtype=np.int64,
        )
    arr = np.unique(values)
    if arr.size == 0:
        raise EmptyCandidateSetError("Candidate set is empty")
    if arr[0] < 0 or arr[-1] >= table.n_words:
        bad = arr[0] if arr[0] < 0 else arr[-1]
        raise IndexOutOfRangeError(f"Index {bad} outside universe of {table.n_words} words")
    return arr.astype(np.int32)


def set_key(candidates: np.ndarray) -> bytes:
    """Exact hashable identity of a canonical candidate set."""
    return candidates.tobytes()


def check_partition(buckets: Buckets, total: int) -> None:
    """Buckets must account for every candidate exactly once."""
    size = sum(len(b) for b in buckets.values())
    if size != total:
        raise InvariantViolation(
            f"Partition sizes sum to {size}, expected {total}")


def split(table: PatternTable, candidates: np.ndarray, guess: int) -> Buckets:
    """
    Partition a canonical candidate set by feedback to ``guess``.

    No argument validation - this is the solver hot path.
    """
    codes = table.matrix[guess, candidates]
    if candidates.size == 1:
        return {int(codes[0]): candidates}

    # Stable sort keeps each bucket in ascending index order
    order = np.argsort(codes, kind="stable")
    sorted_codes = codes[order]
    members = candidates[order]
    boundaries = np.flatnonzero(sorted_codes[1:] != sorted_codes[:-1]) + 1

    buckets = {}
    start = 0
    for end in boundaries.tolist() + [members.size]:
        buckets[int(sorted_codes[start])] = members[start:end]
        start = end

    check_partition(buckets, candidates.size)
    return buckets


def partition(table: PatternTable, candidates, guess: int) -> Buckets:
    """
    Split a candidate set into buckets keyed by feedback code for one guess.

    Args:
        table: pattern table
        candidates: universe indices (canonicalised here)
        guess: universe index of the guess

    Returns:
        Dict of feedback code -> canonical candidate set; buckets are
        disjoint and their sizes sum to the size of the input set
    """
    cands = candidate_set(table, candidates)
    table.check_index(guess)
    return split(table, cands, guess)


def bucket_sizes(table: PatternTable, candidates: np.ndarray, guess: int) -> Tuple[np.ndarray, np.ndarray]:
    """Return (codes, sizes) of the non-empty buckets, in ascending code order."""
    codes = table.matrix[guess, candidates]
    return np.unique(codes, return_counts=True)
