"""Best-result selection among backend responses.

Each successful result is scored as::

    score = 0.5 * confidence + 0.3 * completeness + 0.2 * speed_score

where ``confidence`` is the detection confidence of the result's manager,
``completeness`` measures how many descriptive fields the payload carries and
``speed_score`` decays linearly to zero at 10 seconds of latency. The
highest score becomes the primary result; the remaining successes are
returned as alternatives ranked by name similarity to the query.
"""

from typing import Any

from pkgrouter.models.package import (
    AlternativeResult,
    BackendResult,
    ManagerDetection,
    ScoredResult,
)
from pkgrouter.utils.similarity import similarity_score

CONFIDENCE_WEIGHT = 0.5
COMPLETENESS_WEIGHT = 0.3
SPEED_WEIGHT = 0.2

COMPLETENESS_FIELDS = (
    "description",
    "homepage",
    "repository",
    "license",
    "author",
    "keywords",
    "latest_version",
    "downloads",
)
COLLECTION_BONUS = 0.5
SPEED_DECAY_MS = 10000.0
BRIEF_DESCRIPTION_LENGTH = 100

# Fallback similarities when a payload does not declare its name
_DESCRIPTION_MENTION_SIMILARITY = 0.8
_BASE_SIMILARITY = 0.5


def _present(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, (str, list, dict, tuple)):
        return len(value) > 0
    return True


def selection_score(confidence: float, completeness: float, speed: float) -> float:
    """Weighted total used to rank successful results."""
    return CONFIDENCE_WEIGHT * confidence + COMPLETENESS_WEIGHT * completeness + SPEED_WEIGHT * speed


def completeness_score(payload: dict[str, Any] | None) -> float:
    """Share of checklist fields present, plus bonuses for dependencies and versions.

    Each bonus counts as half a checklist field.

    Examples:
        >>> completeness_score({"description": "x", "license": "MIT"})
        0.25
        >>> completeness_score({"versions": ["1.0.0"], "dependencies": {"a": "1"}})
        0.125
    """
    if not payload:
        return 0.0

    points = float(sum(1 for name in COMPLETENESS_FIELDS if _present(payload.get(name))))

    dependencies = payload.get("dependencies")
    if isinstance(dependencies, dict) and dependencies:
        points += COLLECTION_BONUS
    versions = payload.get("versions")
    if isinstance(versions, list) and versions:
        points += COLLECTION_BONUS

    return min(1.0, points / len(COMPLETENESS_FIELDS))


def speed_score(latency_ms: float) -> float:
    """Linear decay from 1.0 at 0 ms to 0.0 at 10 s."""
    return max(0.0, 1.0 - latency_ms / SPEED_DECAY_MS)


def format_downloads(downloads: int | float) -> str:
    """Format a download count as ``1.2M``, ``3.4K`` or the plain number."""
    if downloads >= 1_000_000:
        return f"{downloads / 1_000_000:.1f}M"
    if downloads >= 1_000:
        return f"{downloads / 1_000:.1f}K"
    return str(downloads)


def brief_info(payload: dict[str, Any] | None, manager_id: str) -> str:
    """One-line summary of a payload for alternative listings."""
    if not payload:
        return f"Package from {manager_id}"

    parts: list[str] = []
    description = payload.get("description")
    if isinstance(description, str) and description:
        parts.append(description[:BRIEF_DESCRIPTION_LENGTH])

    version = payload.get("latest_version")
    if _present(version):
        parts.append(f"v{version}")

    downloads = payload.get("downloads")
    if isinstance(downloads, (int, float)) and not isinstance(downloads, bool) and downloads:
        parts.append(f"{format_downloads(downloads)} downloads")

    license_name = payload.get("license")
    if _present(license_name):
        parts.append(f"{license_name} license")

    return " | ".join(parts) if parts else f"Package from {manager_id}"


def declared_name(payload: dict[str, Any] | None) -> str | None:
    """The package name a payload reports for itself, if any."""
    if not payload:
        return None
    for key in ("package_name", "name"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def alternative_similarity(query_name: str, payload: dict[str, Any] | None) -> float:
    """How closely a non-chosen result matches the query.

    Uses the declared package name when present. Otherwise a description
    mentioning the query scores 0.8, then the best keyword similarity (never
    below 0.5), then 0.5.
    """
    name = declared_name(payload)
    if name is not None:
        return similarity_score(query_name, name)
    if not payload:
        return _BASE_SIMILARITY

    description = payload.get("description")
    if isinstance(description, str) and query_name.lower() in description.lower():
        return _DESCRIPTION_MENTION_SIMILARITY

    keywords = payload.get("keywords")
    if isinstance(keywords, list):
        scores = [similarity_score(query_name, k) for k in keywords if isinstance(k, str) and k]
        if scores:
            return max(_BASE_SIMILARITY, max(scores))

    return _BASE_SIMILARITY


class ResultSelector:
    """Pick the primary result and rank the rest as alternatives."""

    def score(self, result: BackendResult, detections: list[ManagerDetection]) -> ScoredResult:
        confidence = next(
            (d.confidence for d in detections if d.manager_id == result.manager_id),
            0.0,
        )
        completeness = completeness_score(result.payload)
        speed = speed_score(result.latency_ms)
        return ScoredResult(
            result=result,
            score=selection_score(confidence, completeness, speed),
            confidence=confidence,
            completeness=completeness,
            speed_score=speed,
        )

    def select_best(
        self,
        results: list[BackendResult],
        detections: list[ManagerDetection],
        query_name: str,
    ) -> tuple[ScoredResult | None, list[AlternativeResult]]:
        """Choose the best successful result.

        Args:
            results: Backend results in dispatch order.
            detections: Detections used to look up each manager's confidence.
            query_name: The package name the caller asked for.

        Returns:
            ``(primary, alternatives)``; ``(None, [])`` when nothing succeeded.
            Ties keep dispatch order.
        """
        scored = [self.score(r, detections) for r in results if r.success]
        if not scored:
            return None, []

        ranked = sorted(scored, key=lambda s: s.score, reverse=True)
        primary, others = ranked[0], ranked[1:]

        alternatives = [
            AlternativeResult(
                manager_id=s.result.manager_id,
                package_name=declared_name(s.result.payload) or query_name,
                similarity_score=alternative_similarity(query_name, s.result.payload),
                brief_info=brief_info(s.result.payload, s.result.manager_id),
            )
            for s in others
        ]
        alternatives.sort(key=lambda a: a.similarity_score, reverse=True)
        return primary, alternatives
