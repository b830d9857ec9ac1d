from typing import AbstractSet


def jaccard(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    """|A & B| / |A | B|, and 0.0 (not 1.0) when both sets are empty."""
    union = len(a | b)
    if union == 0:
        return 0.0
    return len(a & b) / union


def covers_all(candidate: AbstractSet[str], required: AbstractSet[str]) -> bool:
    """Hard gate: the candidate must contain every required token."""
    return required <= candidate
