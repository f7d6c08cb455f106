"""Team name similarity based on Levenshtein distance."""
from typing import Optional


def levenshtein_distance(s1: str, s2: str) -> int:
    """Edit distance with unit-cost insertion, deletion and substitution."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            current.append(min(
                previous[j] + 1,  # deletion
                current[j - 1] + 1,  # insertion
                previous[j - 1] + (c1 != c2),  # substitution
            ))
        previous = current
    return previous[-1]


def string_similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Case-insensitive similarity of two labels.

    Args:
        a: First label (e.g. a team name)
        b: Second label

    Returns:
        ``1 - distance / max(len(a), len(b))`` in [0, 1]; 0 if either label
        is empty or missing
    """
    if not a or not b:
        return 0.0

    s1 = a.lower()
    s2 = b.lower()
    return 1 - levenshtein_distance(s1, s2) / max(len(s1), len(s2))
