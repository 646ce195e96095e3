"""Name-based ecosystem detection.

Tests a package name against each ecosystem's ordered regex list and turns
the matches into scored detections.
"""

import re

from pkgrouter.detection.tables import DetectionTables
from pkgrouter.logging import logger
from pkgrouter.models.package import DetectionReason, ManagerDetection, ReasonKind

MAX_NAME_LENGTH = 214

_SAFE_NAME = re.compile(r"^[A-Za-z0-9@/._~:-]+$")
_BLOCKED_SUBSTRINGS = ("..", "<script", "javascript:", "data:", "\x00", "//")

# Confidence shaping for pattern matches
_BASE_CONFIDENCE = 0.6
_MATCH_BONUS = 0.1
_SPECIFICITY_BONUS = 0.05
_MAX_PATTERN_CONFIDENCE = 0.9
_EXACT_MATCH_CONFIDENCE = 0.95


def is_valid_package_name(name: object) -> bool:
    """Check whether a package name is safe to route.

    Args:
        name: Candidate package name.

    Returns:
        True if the name has 1-214 safe characters, contains no traversal or
        script-injection fragments, no double slash, and does not start or
        end with a dot.
    """
    if not isinstance(name, str):
        return False
    if not 1 <= len(name) <= MAX_NAME_LENGTH:
        return False
    if not _SAFE_NAME.match(name):
        return False
    lowered = name.lower()
    if any(fragment in lowered for fragment in _BLOCKED_SUBSTRINGS):
        return False
    return not (name.startswith(".") or name.endswith("."))


class PatternMatcher:
    """Match package names against per-ecosystem name patterns."""

    def __init__(self, tables: DetectionTables) -> None:
        self._tables = tables
        self._compiled: dict[str, list[re.Pattern[str]]] = {}
        for manager_id, patterns in tables.name_patterns.items():
            compiled = []
            for pattern in patterns:
                try:
                    compiled.append(re.compile(pattern))
                except re.error as e:
                    logger.warning("Skipping invalid %s name pattern %r: %s", manager_id, pattern, e)
            self._compiled[manager_id] = compiled

    def detect_by_name(self, name: str) -> list[ManagerDetection]:
        """Detect ecosystems whose name patterns match ``name``.

        Args:
            name: Package name to test.

        Returns:
            Detections sorted by confidence, highest first. Ecosystems with
            no matching pattern are omitted.
        """
        detections: list[ManagerDetection] = []

        for manager_id, patterns in self._compiled.items():
            matched = [p for p in patterns if p.search(name)]
            if not matched:
                continue

            confidence = (
                _BASE_CONFIDENCE
                + (len(matched) - 1) * _MATCH_BONUS
                + max(0, 3 - len(patterns)) * _SPECIFICITY_BONUS
            )
            reasons = [
                DetectionReason(
                    kind=ReasonKind.NAME_PATTERN_MATCH,
                    description=f"Package name matches {manager_id} pattern: {p.pattern}",
                    weight=max(0.0, 0.8 - 0.1 * rank),
                )
                for rank, p in enumerate(matched)
            ]
            detections.append(
                ManagerDetection(
                    manager_id=manager_id,
                    confidence=min(_MAX_PATTERN_CONFIDENCE, confidence),
                    reasons=reasons,
                )
            )

        return sorted(detections, key=lambda d: d.confidence, reverse=True)

    def detect_exact_match(self, name: str) -> list[ManagerDetection]:
        """Detect ecosystems that list ``name`` among their known packages."""
        detections = []
        for manager_id, known in self._tables.known_packages.items():
            if name in known:
                detections.append(
                    ManagerDetection(
                        manager_id=manager_id,
                        confidence=_EXACT_MATCH_CONFIDENCE,
                        reasons=[
                            DetectionReason(
                                kind=ReasonKind.EXACT_NAME_MATCH,
                                description=f"'{name}' is a known {manager_id} package",
                                weight=1.0,
                            )
                        ],
                    )
                )
        return detections

    def test_against_manager(self, name: str, manager_id: str) -> bool:
        """Return True if any of ``manager_id``'s patterns match ``name``."""
        return any(p.search(name) for p in self._compiled.get(manager_id, []))

    def patterns_for(self, manager_id: str) -> list[str]:
        return [p.pattern for p in self._compiled.get(manager_id, [])]
