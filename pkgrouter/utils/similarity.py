"""String similarity helpers for ranking alternatives and suggestions."""

from rapidfuzz.distance import Levenshtein


def similarity_score(a: str, b: str) -> float:
    """Similarity in [0, 1] between two names.

    Identical strings score 1.0. When both are non-empty and one contains the
    other (case-insensitive) the score is 0.9. Otherwise it is the normalized
    Levenshtein distance of the lower-cased strings.

    Examples:
        >>> similarity_score("react", "react")
        1.0
        >>> similarity_score("react", "react-dom")
        0.9
        >>> similarity_score("", "x")
        0.0
    """
    if a == b:
        return 1.0

    lower_a, lower_b = a.lower(), b.lower()
    if lower_a and lower_b and (lower_a in lower_b or lower_b in lower_a):
        return 0.9

    longest = max(len(a), len(b))
    return max(0.0, 1.0 - Levenshtein.distance(lower_a, lower_b) / longest)


def rank_by_similarity(query: str, candidates: list[str]) -> list[tuple[str, float]]:
    """Score each candidate against ``query``, best first.

    Ties keep the candidates' input order.
    """
    scored = [(candidate, similarity_score(query, candidate)) for candidate in candidates]
    return sorted(scored, key=lambda pair: pair[1], reverse=True)
