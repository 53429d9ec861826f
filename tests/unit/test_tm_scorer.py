"""Tests for core/tm/scorer.py - edit-distance similarity."""

import pytest

from core.tm.scorer import levenshtein_distance, score, score_upper_bound


PAIRS = [
    ("", ""),
    ("", "abc"),
    ("kitten", "sitting"),
    ("flaw", "lawn"),
    ("하나님의 은혜", "하나님의 사랑"),
    ("abcdefgh", "abcdeXYZ"),
    ("The Lord is my shepherd", "The Lord is our shepherd"),
    ("a", "b"),
]


class TestLevenshteinDistance:

    @pytest.mark.parametrize("a,b,expected", [
        ("", "", 0),
        ("abc", "", 3),
        ("", "abc", 3),
        ("kitten", "sitting", 3),
        ("flaw", "lawn", 2),
        ("same", "same", 0),
        ("하나님", "하느님", 1),
    ])
    def test_known_distances(self, a, b, expected):
        assert levenshtein_distance(a, b) == expected

    @pytest.mark.parametrize("a,b", PAIRS)
    def test_symmetric(self, a, b):
        assert levenshtein_distance(a, b) == levenshtein_distance(b, a)


class TestScore:

    @pytest.mark.parametrize("s", ["", "a", "하나님의 은혜", "Bible Study", "  spaced  "])
    def test_identical_is_100(self, s):
        assert score(s, s) == 100

    def test_both_empty_is_100(self):
        assert score("", "") == 100

    def test_against_empty_is_0(self):
        assert score("abc", "") == 0
        assert score("", "abc") == 0

    def test_completely_different(self):
        assert score("abc", "xyz") == 0

    def test_normalized_by_longer_string(self):
        # distance 3, longer length 7 -> 57.14
        assert score("kitten", "sitting") == 57

    def test_rounds_half_up(self):
        # distance 3 of 8 -> 62.5
        assert score("abcdefgh", "abcdeXYZ") == 63
        # distance 1 of 8 -> 87.5
        assert score("abcdefgh", "abcdefgX") == 88

    def test_eighty_percent(self):
        assert score("하나님의 은총입니까", "하나님의 은혜입니다") == 80

    def test_case_sensitive(self):
        assert score("Grace", "grace") == 80

    @pytest.mark.parametrize("a,b", PAIRS)
    def test_symmetric(self, a, b):
        assert score(a, b) == score(b, a)

    @pytest.mark.parametrize("a,b", PAIRS)
    def test_in_range(self, a, b):
        result = score(a, b)
        assert isinstance(result, int)
        assert 0 <= result <= 100

    def test_one_substitution_in_two_chars(self):
        assert score("ab", "ac") == 50


class TestScoreUpperBound:

    @pytest.mark.parametrize("a,b", PAIRS)
    def test_bounds_score(self, a, b):
        assert score(a, b) <= score_upper_bound(len(a), len(b))

    def test_values(self):
        assert score_upper_bound(0, 0) == 100
        assert score_upper_bound(0, 5) == 0
        assert score_upper_bound(1000, 4000) == 25
        assert score_upper_bound(5, 8) == 63

    def test_reached_by_prefix(self):
        assert score("abcde", "abcdefgh") == score_upper_bound(5, 8)
