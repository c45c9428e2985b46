"""Similarity functions used to score vectors against a query.

All functions are pure. A vector with zero magnitude has a cosine similarity
of 0 with every other vector (and therefore a cosine distance of 1), rather
than NaN.
"""

from collections.abc import Sequence
from enum import Enum

import numpy as np
import numpy.typing as npt

from .errors import DimensionMismatchError

FloatArray = npt.NDArray[np.float64]


class SimilarityMetric(str, Enum):
    COSINE_SIMILARITY = "cosine_similarity"
    COSINE_DISTANCE = "cosine_distance"
    DOT_PRODUCT = "dot_product"
    EUCLIDEAN_DISTANCE = "euclidean_distance"
    EUCLIDEAN_SQUARED_DISTANCE = "euclidean_squared_distance"

    @property
    def higher_is_better(self) -> bool:
        """Whether a larger score means a closer match."""
        return self in (
            SimilarityMetric.COSINE_SIMILARITY,
            SimilarityMetric.DOT_PRODUCT,
        )


def as_vector(values: Sequence[float] | FloatArray) -> FloatArray:
    """Convert a sequence of numbers to a 1-d float64 array."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"Expected a 1-d vector, got shape {arr.shape}")
    return arr


def _check_dimensions(a: FloatArray, b: FloatArray) -> None:
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(expected=a.shape[0], actual=b.shape[0])


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    va, vb = as_vector(a), as_vector(b)
    _check_dimensions(va, vb)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    # Rounding can push parallel vectors just past the [-1, 1] range.
    return float(np.clip(np.dot(va, vb) / denom, -1.0, 1.0))


def dot_product(a: Sequence[float], b: Sequence[float]) -> float:
    va, vb = as_vector(a), as_vector(b)
    _check_dimensions(va, vb)
    return float(np.dot(va, vb))


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    va, vb = as_vector(a), as_vector(b)
    _check_dimensions(va, vb)
    return float(np.linalg.norm(va - vb))


def similarity(
    metric: SimilarityMetric, a: Sequence[float], b: Sequence[float]
) -> float:
    """Score two vectors of equal length with the given metric."""
    if metric is SimilarityMetric.COSINE_SIMILARITY:
        return cosine_similarity(a, b)
    if metric is SimilarityMetric.COSINE_DISTANCE:
        return 1.0 - cosine_similarity(a, b)
    if metric is SimilarityMetric.DOT_PRODUCT:
        return dot_product(a, b)
    if metric is SimilarityMetric.EUCLIDEAN_DISTANCE:
        return euclidean_distance(a, b)
    if metric is SimilarityMetric.EUCLIDEAN_SQUARED_DISTANCE:
        return euclidean_distance(a, b) ** 2
    raise ValueError(f"Unknown similarity metric: {metric}")


def score_many(
    metric: SimilarityMetric, query: FloatArray, matrix: FloatArray
) -> FloatArray:
    """
    Score every row of `matrix` against `query` in a single pass.

    Args:
        metric: Metric to score with.
        query: 1-d query vector of length d.
        matrix: 2-d array of shape (n, d), one candidate per row.

    Returns:
        1-d array of n scores, in row order.
    """
    if matrix.shape[0] == 0:
        return np.empty(0, dtype=np.float64)
    if matrix.shape[1] != query.shape[0]:
        raise DimensionMismatchError(expected=matrix.shape[1], actual=query.shape[0])

    if metric in (SimilarityMetric.COSINE_SIMILARITY, SimilarityMetric.COSINE_DISTANCE):
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        cosine = np.divide(
            dots, norms, out=np.zeros_like(dots), where=norms != 0.0
        )
        np.clip(cosine, -1.0, 1.0, out=cosine)
        if metric is SimilarityMetric.COSINE_DISTANCE:
            return 1.0 - cosine
        return cosine
    if metric is SimilarityMetric.DOT_PRODUCT:
        return matrix @ query
    if metric is SimilarityMetric.EUCLIDEAN_DISTANCE:
        return np.linalg.norm(matrix - query, axis=1)
    if metric is SimilarityMetric.EUCLIDEAN_SQUARED_DISTANCE:
        diff = matrix - query
        return np.einsum("ij,ij->i", diff, diff)
    raise ValueError(f"Unknown similarity metric: {metric}")
