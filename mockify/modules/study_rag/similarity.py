"""
Vector similarity helpers (numpy).
"""

import logging
from typing import Any, Dict, List, Sequence

import numpy as np

logger = logging.getLogger(__name__)


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Raises:
        ValueError: vectors have different lengths

    Returns 0.0 when either vector has zero magnitude.
    """
    a = np.asarray(vec_a, dtype=float)
    b = np.asarray(vec_b, dtype=float)

    if a.shape != b.shape:
        raise ValueError("Vectors must have the same length")

    magnitude = np.linalg.norm(a) * np.linalg.norm(b)
    if magnitude == 0:
        return 0.0
    return float(np.dot(a, b) / magnitude)


def find_most_similar(
    query_embedding: Sequence[float],
    items: List[Dict[str, Any]],
    top_k: int = 5
) -> List[Dict[str, Any]]:
    """
    Rank items carrying an "embedding" key by similarity to the query.

    Returns copies of the top_k items with a "similarity" key added,
    highest first.
    """
    scored = [
        {**item, "similarity": cosine_similarity(query_embedding, item["embedding"])}
        for item in items
    ]
    scored.sort(key=lambda item: item["similarity"], reverse=True)
    return scored[:top_k]


def find_duplicates(
    query_embedding: Sequence[float],
    items: List[Dict[str, Any]],
    threshold: float = 0.85
) -> List[Dict[str, Any]]:
    """Items among the ten most similar whose similarity reaches threshold"""
    return [
        item for item in find_most_similar(query_embedding, items, top_k=10)
        if item["similarity"] >= threshold
    ]
