"""Small synthetic universes shared by the tests."""

import math

# Hand-computed: opening ABC or ABD costs 2.0, every other opening 2.2
FIXTURE = ["abc", "abd", "aef", "ghi", "ghj"]

# Any guess only identifies itself, so E(first n words) = (n + 1) / 2
RHYMES = ["bat", "cat", "hat", "mat", "pat", "rat", "sat"]

# BCH tells BAT/CAT/HAT/MAT apart in one go but is never the answer
RHYMES_WITH_PROBE = ["bat", "cat", "hat", "mat", "bch"]

SMALL = ["crane", "crone", "crate", "trace", "caret", "react", "slate"]


def brute_force(table, cands, pool=None):
    """Expected guesses by plain enumeration - no memo, no pruning."""
    cands = list(cands)
    n = len(cands)
    if n == 1:
        return 1.0

    correct = table.correct_pattern
    best = math.inf
    for g in (cands if pool is None else pool):
        buckets = {}
        for a in cands:
            buckets.setdefault(int(table.matrix[g, a]), []).append(a)
        if correct not in buckets and len(buckets) == 1:
            continue
        cost = 1.0
        for code, bucket in buckets.items():
            if code != correct:
                cost += len(bucket) / n * brute_force(table, bucket, pool)
        best = min(best, cost)
    return best
