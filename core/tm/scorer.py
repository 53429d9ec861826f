"""
TM Similarity Scorer
Character-level Levenshtein similarity on a 0-100 scale.
"""
import math


def levenshtein_distance(s1: str, s2: str) -> int:
    """
    Calculate Levenshtein edit distance.

    Two-row dynamic programming: O(len(s1) * len(s2)) time,
    O(min(len(s1), len(s2))) memory.
    """
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)
    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def score(a: str, b: str) -> int:
    """
    Similarity between two strings as an integer in [0, 100].

    Equal strings (including two empty ones) score 100. Otherwise the edit
    distance is normalized by the longer length and rounded half up, so
    ``score("abcd", "abce") == 75``.
    """
    if a == b:
        return 100

    max_len = max(len(a), len(b))
    distance = levenshtein_distance(a, b)
    return math.floor(100 * (max_len - distance) / max_len + 0.5)


def score_upper_bound(len_a: int, len_b: int) -> int:
    """
    Highest ``score`` two strings of these lengths can reach.

    The edit distance is at least the length difference, so this bounds
    ``score`` without computing the distance.
    """
    if len_a == len_b:
        return 100

    max_len = max(len_a, len_b)
    return math.floor(100 * min(len_a, len_b) / max_len + 0.5)
