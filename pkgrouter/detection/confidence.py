"""Confidence aggregation across detection sources.

Pattern confidence is intrinsic to the name while context confidence grows
with every hint, so the two are not comparable. The aggregator merges both
lists, applies the preference bonus, and then recomputes each ecosystem's
score from its categorized reasons. It is a pure fold: inputs are never
mutated and every returned detection is a new object.
"""

from pkgrouter.config import RouterSettings
from pkgrouter.models.package import DetectionReason, ManagerDetection, ReasonKind

MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 0.95
PREFERENCE_BONUS = 0.1

_MATCH_KINDS = frozenset({ReasonKind.EXACT_NAME_MATCH, ReasonKind.NAME_PATTERN_MATCH})
_CONTEXT_KINDS = frozenset(
    {ReasonKind.FILE_PATTERN, ReasonKind.KEYWORD_HINT, ReasonKind.FRAMEWORK_HINT}
)
_PREFERENCE_KINDS = frozenset({ReasonKind.USER_PREFERENCE})


def merge_detections(*sources: list[ManagerDetection]) -> list[ManagerDetection]:
    """Union detections by manager id.

    Duplicates concatenate their reasons and keep the higher confidence.
    First-seen order is preserved.
    """
    merged: dict[str, ManagerDetection] = {}
    for detections in sources:
        for detection in detections:
            existing = merged.get(detection.manager_id)
            if existing is None:
                merged[detection.manager_id] = detection.model_copy(
                    update={"reasons": list(detection.reasons)}
                )
            else:
                merged[detection.manager_id] = existing.model_copy(
                    update={
                        "confidence": max(existing.confidence, detection.confidence),
                        "reasons": [*existing.reasons, *detection.reasons],
                        "available": existing.available and detection.available,
                    }
                )
    return list(merged.values())


def _group_sum(reasons: list[DetectionReason], kinds: frozenset[ReasonKind]) -> float:
    return min(1.0, sum(r.weight for r in reasons if r.kind in kinds))


class ConfidenceAggregator:
    """Combine pattern, context and preference evidence into one score."""

    def __init__(self, settings: RouterSettings | None = None) -> None:
        self._settings = settings or RouterSettings()

    def calculate_overall_confidence(
        self,
        pattern_detections: list[ManagerDetection],
        context_detections: list[ManagerDetection],
        preferred_managers: list[str] | None = None,
    ) -> list[ManagerDetection]:
        """Merge, adjust and rescore detections.

        Args:
            pattern_detections: Name-based detections (patterns and exact matches).
            context_detections: Hint and file-based detections.
            preferred_managers: Ecosystems the caller asked to favour.

        Returns:
            Detections at or above the minimum confidence, highest first.
            Ties keep the order of the pre-recompute confidence, then input order.
        """
        merged = merge_detections(pattern_detections, context_detections)
        adjusted = self._apply_preferences(merged, preferred_managers or [])

        scored: list[tuple[ManagerDetection, float]] = []
        for detection in adjusted:
            final = self._recompute(detection.reasons)
            if final < self._settings.minimum_confidence:
                continue
            scored.append((detection.model_copy(update={"confidence": final}), detection.confidence))

        scored.sort(key=lambda pair: (pair[0].confidence, pair[1]), reverse=True)
        return [detection for detection, _ in scored]

    def confidence_level(self, confidence: float) -> str:
        """Map a score to ``high``, ``medium`` or ``low``."""
        if confidence >= self._settings.high_confidence:
            return "high"
        if confidence >= self._settings.medium_confidence:
            return "medium"
        return "low"

    def _apply_preferences(
        self,
        detections: list[ManagerDetection],
        preferred_managers: list[str],
    ) -> list[ManagerDetection]:
        preferred = set(preferred_managers)
        adjusted = []
        for detection in detections:
            if detection.manager_id in preferred:
                detection = detection.model_copy(
                    update={
                        "confidence": min(MAX_CONFIDENCE, detection.confidence + PREFERENCE_BONUS),
                        "reasons": [
                            *detection.reasons,
                            DetectionReason(
                                kind=ReasonKind.USER_PREFERENCE,
                                description=f"User prefers {detection.manager_id}",
                                weight=1.0,
                            ),
                        ],
                    }
                )
            adjusted.append(detection)
        return adjusted

    def _recompute(self, reasons: list[DetectionReason]) -> float:
        weights = self._settings.weights
        match = _group_sum(reasons, _MATCH_KINDS)
        context = _group_sum(reasons, _CONTEXT_KINDS)
        preference = _group_sum(reasons, _PREFERENCE_KINDS)

        final = (
            match * weights.exact_match
            + match * 0.75 * weights.pattern_match
            + context * weights.context_hints
            + preference * weights.user_preference
        )
        return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, final))
