"""Brute-force top-k search over stored records."""

import heapq
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np

from .filters import FilterExpression, evaluate
from .schema import VectorField
from .similarity import FloatArray, score_many

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredRecord:
    """Immutable stored form of a record; replaced wholesale on upsert."""

    key: Any
    payload: Mapping[str, Any]
    vectors: Mapping[str, FloatArray]


def search_records(
    candidates: Iterable[StoredRecord],
    *,
    query: FloatArray,
    vector_field: VectorField,
    top_k: int,
    skip: int = 0,
    filter_expr: FilterExpression | None = None,
) -> tuple[list[tuple[StoredRecord, float]], int]:
    """
    Rank candidates against a query vector, best match first.

    Steps:
        1. Drop candidates that do not satisfy `filter_expr`.
        2. Score the rest with the vector field's metric.
        3. Order best-first for the metric's polarity, ties by ascending key.
        4. Skip `skip` results and return at most `top_k`.

    The filter is expected to have been validated against the schema.

    Returns:
        The ranked (record, score) pairs, and how many candidates were
        scored after filtering.
    """
    if filter_expr is None:
        retained = list(candidates)
    else:
        retained = [c for c in candidates if evaluate(filter_expr, c.payload)]

    if not retained:
        return [], 0

    matrix = np.stack([c.vectors[vector_field.name] for c in retained])
    scores = score_many(vector_field.metric, query, matrix)
    logger.debug(
        "Scored %d candidates on field %s with %s",
        len(retained),
        vector_field.name,
        vector_field.metric.value,
    )

    sign = -1.0 if vector_field.metric.higher_is_better else 1.0
    ranked = heapq.nsmallest(
        skip + top_k,
        zip(retained, (float(s) for s in scores)),
        key=lambda pair: (sign * pair[1], pair[0].key),
    )
    return ranked[skip:], len(retained)
