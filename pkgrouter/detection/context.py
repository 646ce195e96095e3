"""Context-based ecosystem detection.

Scans free-text hints for file extensions, ecosystem keywords and well-known
framework packages, and matches manifest file names against per-ecosystem
globs.
"""

import re
from fnmatch import fnmatchcase

from pkgrouter.detection.tables import DetectionTables
from pkgrouter.models.package import DetectionReason, ManagerDetection, ReasonKind
from pkgrouter.utils.similarity import similarity_score

MAX_HINT_LENGTH = 100

_STRIP_CHARS = re.compile(r"[<>\"'`\x00]")
_WHITESPACE = re.compile(r"\s+")
_PATH_SEPARATORS = re.compile(r"[\\/]")

# (reason weight, base confidence) per pass
_EXTENSION_SCORING = (0.3, 0.4)
_KEYWORD_SCORING = (0.2, 0.3)
_FRAMEWORK_SCORING = (0.4, 0.5)
_FILE_PATTERN_SCORING = (0.5, 0.6)
_PER_MATCH_BONUS = 0.1
_MAX_FILE_CONFIDENCE = 0.9


def sanitize_hint(hint: object) -> str | None:
    """Clean a free-text hint before analysis.

    Caps the hint at 100 characters, removes angle brackets, quotes,
    backticks and NUL bytes, and collapses whitespace.

    Returns:
        The cleaned hint, or None if nothing usable remains.
    """
    if not isinstance(hint, str):
        return None
    cleaned = _STRIP_CHARS.sub("", hint[:MAX_HINT_LENGTH])
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned or None


def _contains_term(text: str, term: str) -> bool:
    # Very short terms ("r") only count as whole words.
    if len(term) < 3:
        return re.search(rf"(?<![a-z0-9]){re.escape(term)}(?![a-z0-9])", text) is not None
    return term in text


def _contains_extension(text: str, extension: str) -> bool:
    return re.search(rf"{re.escape(extension)}(?![a-z0-9])", text) is not None


class ContextMatcher:
    """Infer ecosystems from hints and file names."""

    def __init__(self, tables: DetectionTables) -> None:
        self._tables = tables

    def detect_by_hints(
        self,
        hints: list[str],
        package_name: str | None = None,
    ) -> list[ManagerDetection]:
        """Detect ecosystems mentioned by free-text hints.

        Every sanitized hint runs through three passes (file extensions,
        keywords, framework packages). Confidences from all passes and hints
        are summed per ecosystem; the aggregator bounds them later.

        Args:
            hints: Raw hint strings.
            package_name: Optional query name; matched keywords and frameworks
                are listed closest to it first.

        Returns:
            Detections sorted by confidence, highest first.
        """
        accumulated: dict[str, ManagerDetection] = {}

        for raw in hints:
            hint = sanitize_hint(raw)
            if hint is None:
                continue
            text = hint.lower()

            for manager_id, extensions in self._tables.file_extensions.items():
                unique = list(dict.fromkeys(e.lower() for e in extensions))
                matched = [e for e in unique if _contains_extension(text, e)]
                self._accumulate(
                    accumulated, manager_id, matched, ReasonKind.FILE_PATTERN,
                    "File extension", _EXTENSION_SCORING,
                )

            for manager_id, keywords in self._tables.keywords.items():
                matched = [k for k in keywords if _contains_term(text, k.lower())]
                self._accumulate(
                    accumulated, manager_id, self._closest_first(matched, package_name),
                    ReasonKind.KEYWORD_HINT, "Keyword", _KEYWORD_SCORING,
                )

            for manager_id, frameworks in self._tables.framework_packages.items():
                matched = [f for f in frameworks if f.lower() in text]
                self._accumulate(
                    accumulated, manager_id, self._closest_first(matched, package_name),
                    ReasonKind.FRAMEWORK_HINT, "Framework package", _FRAMEWORK_SCORING,
                )

        return sorted(accumulated.values(), key=lambda d: d.confidence, reverse=True)

    def detect_from_file_patterns(self, paths: list[str]) -> list[ManagerDetection]:
        """Detect ecosystems from manifest and lock file names.

        Only the basename of each path is considered. Globs use ``*`` as a
        wildcard and match case-insensitively.
        """
        detections: dict[str, ManagerDetection] = {}

        for path in paths:
            basename = _PATH_SEPARATORS.split(path)[-1].lower()
            if not basename:
                continue

            for manager_id, patterns in self._tables.file_patterns.items():
                matched = [p for p in patterns if fnmatchcase(basename, p.lower())]
                if not matched:
                    continue

                weight, base = _FILE_PATTERN_SCORING
                reasons = [
                    DetectionReason(
                        kind=ReasonKind.FILE_PATTERN,
                        description=f"File '{basename}' matches {manager_id} pattern {p}",
                        weight=weight,
                    )
                    for p in matched
                ]
                confidence = base + _PER_MATCH_BONUS * len(matched)

                existing = detections.get(manager_id)
                if existing is None:
                    detections[manager_id] = ManagerDetection(
                        manager_id=manager_id,
                        confidence=min(_MAX_FILE_CONFIDENCE, confidence),
                        reasons=reasons,
                    )
                else:
                    detections[manager_id] = existing.model_copy(
                        update={
                            "confidence": min(_MAX_FILE_CONFIDENCE, existing.confidence + confidence),
                            "reasons": [*existing.reasons, *reasons],
                        }
                    )

        return sorted(detections.values(), key=lambda d: d.confidence, reverse=True)

    @staticmethod
    def _closest_first(matched: list[str], package_name: str | None) -> list[str]:
        if not package_name or len(matched) < 2:
            return matched
        return sorted(matched, key=lambda m: similarity_score(m, package_name), reverse=True)

    @staticmethod
    def _accumulate(
        accumulated: dict[str, ManagerDetection],
        manager_id: str,
        matched: list[str],
        kind: ReasonKind,
        label: str,
        scoring: tuple[float, float],
    ) -> None:
        if not matched:
            return

        weight, base = scoring
        reasons = [
            DetectionReason(kind=kind, description=f"{label} '{m}' suggests {manager_id}", weight=weight)
            for m in matched
        ]
        confidence = base + _PER_MATCH_BONUS * len(matched)

        existing = accumulated.get(manager_id)
        if existing is None:
            accumulated[manager_id] = ManagerDetection(
                manager_id=manager_id, confidence=confidence, reasons=reasons
            )
        else:
            accumulated[manager_id] = existing.model_copy(
                update={
                    "confidence": existing.confidence + confidence,
                    "reasons": [*existing.reasons, *reasons],
                }
            )
