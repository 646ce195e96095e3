"""Tests for name similarity helpers."""

import pytest

from pkgrouter.utils.similarity import rank_by_similarity, similarity_score


class TestSimilarityScore:
    """Tests for similarity_score."""

    @pytest.mark.parametrize(
        ("a", "b", "distance", "longest"),
        [
            ("kitten", "sitting", 3, 7),
            ("flaw", "lawn", 2, 4),
            ("tokio", "toml", 3, 5),
        ],
    )
    def test_edit_distance_is_normalized(self, a: str, b: str, distance: int, longest: int) -> None:
        assert similarity_score(a, b) == pytest.approx(1 - distance / longest)

    def test_identical_strings_score_one(self) -> None:
        assert similarity_score("react", "react") == 1.0

    def test_two_empty_strings_are_identical(self) -> None:
        assert similarity_score("", "") == 1.0

    def test_empty_against_non_empty_scores_zero(self) -> None:
        """An empty string is not treated as contained in every other string."""
        assert similarity_score("", "x") == 0.0
        assert similarity_score("x", "") == 0.0

    def test_containment_scores_point_nine(self) -> None:
        assert similarity_score("lodash", "lodash-es") == 0.9
        assert similarity_score("lodash-es", "lodash") == 0.9

    def test_containment_is_case_insensitive(self) -> None:
        assert similarity_score("React", "react") == 0.9

    def test_normalized_distance(self) -> None:
        assert similarity_score("kitten", "sitting") == pytest.approx(1 - 3 / 7)

    @pytest.mark.parametrize(
        ("a", "b"),
        [
            ("react", "preact"),
            ("django", "flask"),
            ("", "abc"),
            ("Symfony", "symfony/console"),
            ("tokio", "toml"),
        ],
    )
    def test_symmetric_and_bounded(self, a: str, b: str) -> None:
        score = similarity_score(a, b)
        assert score == similarity_score(b, a)
        assert 0.0 <= score <= 1.0


class TestRankBySimilarity:
    """Tests for rank_by_similarity."""

    def test_best_match_first(self) -> None:
        ranked = rank_by_similarity("lodash", ["underscore", "lodash-es", "ramda"])

        assert ranked[0] == ("lodash-es", 0.9)

    def test_ties_keep_input_order(self) -> None:
        ranked = rank_by_similarity("lodash", ["lodash.merge", "underscore", "lodash-es"])

        assert [name for name, _ in ranked] == ["lodash.merge", "lodash-es", "underscore"]

    def test_empty_candidates(self) -> None:
        assert rank_by_similarity("react", []) == []
