"""Unit tests for the fuzzy matching helpers used on OCR text."""
import pytest

from game_sensor.matching import (
    best_match,
    edit_distance,
    loose_match_score,
    normalize,
    token_match_score,
    tokenize,
)


class TestEditDistance:
    """Test suite for Levenshtein distance."""

    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ("", "", 0),
            ("", "abc", 3),
            ("kitten", "sitting", 3),
            ("cels", "cells", 1),
            ("flaw", "lawn", 2),
        ],
    )
    def test_known_distances(self, a, b, expected):
        assert edit_distance(a, b) == expected

    @pytest.mark.parametrize("a,b", [("spaceport", "spceport"), ("dam", "damn"), ("arc", "raider")])
    def test_symmetric(self, a, b):
        assert edit_distance(a, b) == edit_distance(b, a)

    def test_identity(self):
        assert edit_distance("buried city", "buried city") == 0


class TestNormalisation:
    def test_normalize_strips_punctuation_and_case(self):
        assert normalize("  Objective Complete: Retrieve 3 Power Cells! ") == "objective complete retrieve 3 power cells"

    def test_tokenize(self):
        assert tokenize("Kill -- 2 Wasps") == ["kill", "2", "wasps"]
        assert tokenize("!!!") == []


class TestTokenMatchScore:
    """Test suite for the strict objective matcher."""

    def test_objective_with_ocr_slips(self):
        score = token_match_score("Objectiv Complete: Retrieve 3 Power Cels", "Retrieve 3 Power Cells")
        assert score > 0.7

    def test_exact_match(self):
        assert token_match_score("destroy 2 wasps", "Destroy 2 Wasps") == 1.0

    def test_empty_target_scores_zero(self):
        assert token_match_score("anything", "") == 0.0
        assert token_match_score("anything", "?!") == 0.0

    def test_score_in_unit_range(self):
        for ocr, target in [("", "a b c"), ("a", "a b"), ("x y z", "x y z")]:
            assert 0.0 <= token_match_score(ocr, target) <= 1.0

    def test_partial_match(self):
        assert token_match_score("Retrieve something", "Retrieve 3 Power Cells") == pytest.approx(0.25)


class TestLooseMatchScore:
    """Test suite for the map name matcher."""

    def test_case_insensitive_exact(self):
        assert loose_match_score("SPACEPORT", "Spaceport") == 1.0

    def test_containment(self):
        assert loose_match_score("Now entering Buried City...", "Buried City") == 1.0

    def test_per_token_containment(self):
        assert loose_match_score("DAM BATTLEGRNDS", "Dam Battlegrounds") == pytest.approx(0.5)

    def test_empty_text_never_matches(self):
        assert loose_match_score("", "Spaceport") == 0.0
        assert loose_match_score("...", "Spaceport") == 0.0

    def test_short_name_tokens_only(self):
        assert loose_match_score("xyz", "A B") == 0.0


class TestBestMatch:
    def test_highest_score_above_threshold(self):
        names = ["Dam Battlegrounds", "Spaceport", "Buried City"]
        match = best_match("SPACEPORT", names, key=lambda n: n, threshold=0.6)
        assert match == ("Spaceport", 1.0)

    def test_nothing_above_threshold(self):
        assert best_match("Blue Gate", ["Spaceport"], key=lambda n: n, threshold=0.6) is None

    def test_ties_keep_first_candidate(self):
        match = best_match("city", ["Buried City", "City Ruins"], key=lambda n: n)
        assert match[0] == "Buried City"
