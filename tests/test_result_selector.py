"""Tests for best-result selection and alternative ranking."""

from typing import Any

import pytest

from pkgrouter.models.package import BackendResult, ManagerDetection
from pkgrouter.routing.selection import (
    ResultSelector,
    alternative_similarity,
    brief_info,
    completeness_score,
    format_downloads,
    selection_score,
    speed_score,
)


def _ok(manager_id: str, payload: dict[str, Any], latency_ms: float = 100.0) -> BackendResult:
    return BackendResult(manager_id=manager_id, success=True, payload=payload, latency_ms=latency_ms)


def _detections(**confidences: float) -> list[ManagerDetection]:
    return [ManagerDetection(manager_id=m, confidence=c) for m, c in confidences.items()]


class TestScoring:
    """Tests for the score components."""

    def test_worked_example(self) -> None:
        """A confident but sparse, slow result loses to a complete, fast one."""
        score_a = selection_score(0.9, 0.2, speed_score(9000))
        score_b = selection_score(0.5, 1.0, speed_score(100))

        assert score_a == pytest.approx(0.53)
        assert score_b == pytest.approx(0.748)
        assert score_b > score_a

    @pytest.mark.parametrize(
        ("latency", "expected"),
        [(0, 1.0), (100, 0.99), (5000, 0.5), (10000, 0.0), (20000, 0.0)],
    )
    def test_speed_score(self, latency: float, expected: float) -> None:
        assert speed_score(latency) == pytest.approx(expected)

    def test_completeness_counts_fields(self, full_payload: dict[str, Any]) -> None:
        assert completeness_score(None) == 0.0
        assert completeness_score({}) == 0.0
        assert completeness_score({"description": "x", "license": "MIT"}) == pytest.approx(0.25)
        assert completeness_score(full_payload) == pytest.approx(1.0)

    def test_completeness_ignores_empty_values(self) -> None:
        assert completeness_score({"description": "", "keywords": [], "author": None}) == 0.0

    def test_completeness_bonus_is_half_a_field(self) -> None:
        assert completeness_score({"versions": ["1.0.0"]}) == pytest.approx(0.0625)
        payload = {
            "description": "x",
            "homepage": "https://example.com",
            "license": "MIT",
            "author": "me",
            "dependencies": {"a": "^1.0"},
        }
        assert completeness_score(payload) == pytest.approx(4.5 / 8)

    def test_completeness_bonuses_are_capped(self, full_payload: dict[str, Any]) -> None:
        payload = {**full_payload, "versions": ["1.0.0"], "dependencies": {"a": "^1.0"}}

        assert completeness_score(payload) == pytest.approx(1.0)

    def test_bonus_does_not_outweigh_checklist_fields(self) -> None:
        """A versions list alone scores below two real checklist fields."""
        results = [
            _ok("pip", {"versions": ["1.0.0", "2.0.0"]}),
            _ok("npm", {"description": "x", "license": "MIT"}),
        ]

        primary, _ = ResultSelector().select_best(results, _detections(pip=0.6, npm=0.6), "x")

        assert primary is not None
        assert primary.result.manager_id == "npm"


class TestBriefInfo:
    """Tests for brief_info and format_downloads."""

    @pytest.mark.parametrize(
        ("downloads", "expected"),
        [(1_234_567, "1.2M"), (3_400, "3.4K"), (999, "999")],
    )
    def test_format_downloads(self, downloads: int, expected: str) -> None:
        assert format_downloads(downloads) == expected

    def test_all_parts(self) -> None:
        payload = {
            "description": "Lodash modular utilities",
            "latest_version": "4.17.21",
            "downloads": 1_234_567,
            "license": "MIT",
        }

        assert brief_info(payload, "npm") == (
            "Lodash modular utilities | v4.17.21 | 1.2M downloads | MIT license"
        )

    def test_description_truncated(self) -> None:
        assert brief_info({"description": "d" * 150}, "npm") == "d" * 100

    def test_empty_payload(self) -> None:
        assert brief_info({}, "pip") == "Package from pip"
        assert brief_info(None, "pip") == "Package from pip"


class TestAlternativeSimilarity:
    """Tests for alternative_similarity."""

    def test_declared_name(self) -> None:
        assert alternative_similarity("lodash", {"name": "lodash-es"}) == pytest.approx(0.9)

    def test_description_mention(self) -> None:
        payload = {"description": "A faster Lodash replacement"}
        assert alternative_similarity("lodash", payload) == pytest.approx(0.8)

    def test_fallback(self) -> None:
        assert alternative_similarity("lodash", {"description": "Utilities"}) == pytest.approx(0.5)
        assert alternative_similarity("lodash", None) == pytest.approx(0.5)


class TestSelectBest:
    """Tests for ResultSelector.select_best."""

    def test_complete_fast_result_wins(self, full_payload: dict[str, Any]) -> None:
        results = [
            _ok("npm", {"description": "sparse"}, latency_ms=9000),
            _ok("pip", full_payload, latency_ms=100),
        ]

        primary, alternatives = ResultSelector().select_best(
            results, _detections(npm=0.9, pip=0.5), "react"
        )

        assert primary is not None
        assert primary.result.manager_id == "pip"
        assert primary.score == pytest.approx(0.748)
        assert [a.manager_id for a in alternatives] == ["npm"]

    def test_failures_are_ignored(self) -> None:
        results = [
            BackendResult(manager_id="npm", success=False, error="boom"),
            _ok("pip", {"description": "ok"}),
        ]

        primary, alternatives = ResultSelector().select_best(
            results, _detections(npm=0.9, pip=0.5), "react"
        )

        assert primary.result.manager_id == "pip"
        assert alternatives == []

    def test_no_success(self) -> None:
        results = [BackendResult(manager_id="npm", success=False, error="boom")]

        assert ResultSelector().select_best(results, _detections(npm=0.9), "react") == (None, [])

    def test_ties_keep_dispatch_order(self) -> None:
        results = [_ok("npm", {"description": "x"}), _ok("pip", {"description": "x"})]

        primary, _ = ResultSelector().select_best(results, _detections(npm=0.5, pip=0.5), "x")

        assert primary.result.manager_id == "npm"

    def test_alternatives_ranked_by_similarity(self, full_payload: dict[str, Any]) -> None:
        results = [
            _ok("npm", {**full_payload, "name": "lodash"}),
            _ok("gem", {"name": "underscore"}),
            _ok("pip", {"description": "Port of lodash to Python"}),
            _ok("cargo", {"name": "lodash-es", "latest_version": "1.0.0"}),
        ]

        primary, alternatives = ResultSelector().select_best(
            results, _detections(npm=0.9, gem=0.5, pip=0.5, cargo=0.5), "lodash"
        )

        assert primary.result.manager_id == "npm"
        assert [a.manager_id for a in alternatives] == ["cargo", "pip", "gem"]
        assert alternatives[0].package_name == "lodash-es"
        assert alternatives[1].package_name == "lodash"
        assert alternatives[0].brief_info == "v1.0.0"
