"""Tests for confidence aggregation and execution strategy selection."""

import pytest

from pkgrouter.config import ConfidenceWeights, RouterSettings
from pkgrouter.detection import (
    ConfidenceAggregator,
    ContextMatcher,
    ExecutionStrategySelector,
    PatternMatcher,
)
from pkgrouter.detection.confidence import merge_detections
from pkgrouter.detection.tables import DetectionTables
from pkgrouter.models.package import (
    DetectionReason,
    ExecutionMode,
    ManagerDetection,
    ReasonKind,
)


def _reason(kind: ReasonKind, weight: float) -> DetectionReason:
    return DetectionReason(kind=kind, description=f"{kind.value} test", weight=weight)


def _pattern(manager_id: str, confidence: float, weight: float = 0.8) -> ManagerDetection:
    return ManagerDetection(
        manager_id=manager_id,
        confidence=confidence,
        reasons=[_reason(ReasonKind.NAME_PATTERN_MATCH, weight)],
    )


def _detection(manager_id: str, confidence: float) -> ManagerDetection:
    return ManagerDetection(manager_id=manager_id, confidence=confidence)


@pytest.fixture
def aggregator() -> ConfidenceAggregator:
    return ConfidenceAggregator(RouterSettings())


class TestMergeDetections:
    """Tests for merge_detections."""

    def test_union_concatenates_reasons_and_keeps_max(self) -> None:
        first = [_pattern("npm", 0.6)]
        second = [
            ManagerDetection(
                manager_id="npm",
                confidence=0.4,
                reasons=[_reason(ReasonKind.KEYWORD_HINT, 0.2)],
            ),
            _pattern("pip", 0.5),
        ]

        merged = merge_detections(first, second)

        assert [d.manager_id for d in merged] == ["npm", "pip"]
        assert merged[0].confidence == pytest.approx(0.6)
        assert [r.kind for r in merged[0].reasons] == [
            ReasonKind.NAME_PATTERN_MATCH,
            ReasonKind.KEYWORD_HINT,
        ]
        # Inputs untouched
        assert len(first[0].reasons) == 1


class TestCalculateOverallConfidence:
    """Tests for ConfidenceAggregator.calculate_overall_confidence."""

    def test_pattern_only(self, aggregator: ConfidenceAggregator) -> None:
        result = aggregator.calculate_overall_confidence([_pattern("npm", 0.65)], [])

        # 0.8 * 0.4 + 0.8 * 0.75 * 0.3
        assert result[0].confidence == pytest.approx(0.5)

    def test_context_adds_to_pattern(self, aggregator: ConfidenceAggregator) -> None:
        context = [
            ManagerDetection(
                manager_id="npm",
                confidence=1.1,
                reasons=[
                    _reason(ReasonKind.KEYWORD_HINT, 0.2),
                    _reason(ReasonKind.FRAMEWORK_HINT, 0.4),
                ],
            )
        ]

        result = aggregator.calculate_overall_confidence([_pattern("npm", 0.65)], context)

        assert result[0].confidence == pytest.approx(0.62)

    def test_exact_and_pattern_saturate_match_group(self, aggregator: ConfidenceAggregator) -> None:
        exact = ManagerDetection(
            manager_id="pip",
            confidence=0.95,
            reasons=[_reason(ReasonKind.EXACT_NAME_MATCH, 1.0)],
        )

        result = aggregator.calculate_overall_confidence([exact, _pattern("pip", 0.7)], [])

        assert result[0].confidence == pytest.approx(0.625)

    def test_preference_bonus(self, aggregator: ConfidenceAggregator) -> None:
        result = aggregator.calculate_overall_confidence(
            [_pattern("npm", 0.65), _pattern("pip", 0.7)], [], ["npm"]
        )

        assert [d.manager_id for d in result] == ["npm", "pip"]
        assert result[0].confidence == pytest.approx(0.6)
        assert result[0].reasons[-1].kind == ReasonKind.USER_PREFERENCE

    def test_preference_for_undetected_manager_is_ignored(
        self, aggregator: ConfidenceAggregator
    ) -> None:
        result = aggregator.calculate_overall_confidence([_pattern("npm", 0.65)], [], ["cargo"])

        assert [d.manager_id for d in result] == ["npm"]

    def test_context_only_falls_below_minimum(self, aggregator: ConfidenceAggregator) -> None:
        context = [
            ManagerDetection(
                manager_id="cran",
                confidence=0.4,
                reasons=[_reason(ReasonKind.KEYWORD_HINT, 0.2)],
            )
        ]

        assert aggregator.calculate_overall_confidence([], context) == []

    def test_lower_clamp(self) -> None:
        aggregator = ConfidenceAggregator(RouterSettings(minimum_confidence=0.05))
        context = [
            ManagerDetection(
                manager_id="cran",
                confidence=0.4,
                reasons=[_reason(ReasonKind.KEYWORD_HINT, 0.2)],
            )
        ]

        result = aggregator.calculate_overall_confidence([], context)

        assert result[0].confidence == pytest.approx(0.1)

    def test_context_sums_above_one_end_up_bounded(
        self, aggregator: ConfidenceAggregator, tables: DetectionTables
    ) -> None:
        context = ContextMatcher(tables).detect_by_hints(["python", "django"])
        assert context[0].confidence > 1.0

        result = aggregator.calculate_overall_confidence([_pattern("pip", 0.6)], context)

        assert [d.manager_id for d in result] == ["pip"]
        assert 0.0 <= result[0].confidence <= 1.0

    def test_upper_clamp(self) -> None:
        weights = ConfidenceWeights(
            exact_match=1.0, pattern_match=1.0, context_hints=1.0, user_preference=1.0
        )
        aggregator = ConfidenceAggregator(RouterSettings(weights=weights))

        result = aggregator.calculate_overall_confidence([_pattern("npm", 0.65)], [])

        assert result[0].confidence == pytest.approx(0.95)

    def test_ties_break_on_merged_confidence(self, aggregator: ConfidenceAggregator) -> None:
        """Equal final scores keep the stronger raw detection first."""
        result = aggregator.calculate_overall_confidence(
            [_pattern("docker_hub", 0.65), _pattern("composer", 0.7)], []
        )

        assert [d.manager_id for d in result] == ["composer", "docker_hub"]
        assert result[0].confidence == pytest.approx(result[1].confidence)

    def test_inputs_not_mutated(self, aggregator: ConfidenceAggregator) -> None:
        pattern = [_pattern("npm", 0.65)]

        aggregator.calculate_overall_confidence(pattern, [], ["npm"])

        assert pattern[0].confidence == pytest.approx(0.65)
        assert len(pattern[0].reasons) == 1

    @pytest.mark.parametrize(
        ("name", "hints", "files"),
        [
            ("react", ["react javascript webpack"], ["package.json"]),
            ("@types/node", [], []),
            ("symfony/console", ["php laravel"], ["composer.json"]),
            ("requests", ["python django flask"], ["requirements.txt", "setup.py"]),
            ("DBIx::Class", ["perl"], []),
            ("org.springframework:spring-core", ["java spring"], ["pom.xml"]),
        ],
    )
    def test_full_detection_stays_in_bounds(
        self,
        tables: DetectionTables,
        aggregator: ConfidenceAggregator,
        name: str,
        hints: list[str],
        files: list[str],
    ) -> None:
        patterns = PatternMatcher(tables)
        context = ContextMatcher(tables)

        result = aggregator.calculate_overall_confidence(
            patterns.detect_by_name(name),
            [*context.detect_by_hints(hints, name), *context.detect_from_file_patterns(files)],
        )
        confidences = [d.confidence for d in result]

        assert result
        assert all(0.3 <= c <= 0.95 for c in confidences)
        assert confidences == sorted(confidences, reverse=True)


class TestConfidenceLevel:
    """Tests for ConfidenceAggregator.confidence_level."""

    @pytest.mark.parametrize(
        ("confidence", "level"),
        [(0.95, "high"), (0.8, "high"), (0.7, "medium"), (0.6, "medium"), (0.5, "low")],
    )
    def test_levels(self, aggregator: ConfidenceAggregator, confidence: float, level: str) -> None:
        assert aggregator.confidence_level(confidence) == level


class TestExecutionStrategySelector:
    """Tests for ExecutionStrategySelector.select_strategy."""

    @pytest.fixture
    def selector(self) -> ExecutionStrategySelector:
        return ExecutionStrategySelector(RouterSettings())

    def test_empty_input(self, selector: ExecutionStrategySelector) -> None:
        plan = selector.select_strategy([])

        assert plan.mode == ExecutionMode.SINGLE
        assert plan.candidates == []
        assert plan.parallel is False

    def test_high_confidence_is_single(self, selector: ExecutionStrategySelector) -> None:
        plan = selector.select_strategy([_detection("npm", 0.85), _detection("pip", 0.5)])

        assert plan.mode == ExecutionMode.SINGLE
        assert plan.candidates == ["npm"]
        assert plan.parallel is False

    def test_high_threshold_is_inclusive(self, selector: ExecutionStrategySelector) -> None:
        assert selector.select_strategy([_detection("npm", 0.8)]).mode == ExecutionMode.SINGLE

    def test_medium_confidence_is_limited(self, selector: ExecutionStrategySelector) -> None:
        detections = [
            _detection("npm", 0.65),
            _detection("pip", 0.62),
            _detection("cargo", 0.61),
            _detection("gem", 0.4),
        ]

        plan = selector.select_strategy(detections)

        assert plan.mode == ExecutionMode.LIMITED
        assert plan.candidates == ["npm", "pip", "cargo"]
        assert plan.parallel is True

    def test_medium_threshold_is_inclusive(self, selector: ExecutionStrategySelector) -> None:
        assert selector.select_strategy([_detection("npm", 0.6)]).mode == ExecutionMode.LIMITED

    def test_low_confidence_is_all(self, selector: ExecutionStrategySelector) -> None:
        plan = selector.select_strategy([_detection("npm", 0.5), _detection("pip", 0.4)])

        assert plan.mode == ExecutionMode.ALL
        assert plan.candidates == ["npm", "pip"]
        assert plan.parallel is True

    def test_limited_count_setting(self) -> None:
        selector = ExecutionStrategySelector(RouterSettings(limited_count=2))
        detections = [_detection("npm", 0.7), _detection("pip", 0.6), _detection("gem", 0.6)]

        assert selector.select_strategy(detections).candidates == ["npm", "pip"]
