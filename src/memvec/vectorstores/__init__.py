from .base import VectorStore, VectorStoreCollection
from .errors import (
    CollectionNotFoundError,
    DimensionMismatchError,
    InvalidFilterFieldError,
    InvalidRecordError,
    SchemaMismatchError,
    VectorStoreError,
)
from .filters import And, EqualTo, FilterExpression, Not, Or, from_mapping
from .inmemorycollection import InMemoryCollection
from .inmemoryvectorstore import InMemoryVectorStore
from .schema import DataField, KeyField, RecordSchema, VectorField
from .similarity import SimilarityMetric, similarity
from .types import SearchResult, UpsertOutcome

__all__ = [
    "And",
    "CollectionNotFoundError",
    "DataField",
    "DimensionMismatchError",
    "EqualTo",
    "FilterExpression",
    "InMemoryCollection",
    "InMemoryVectorStore",
    "InvalidFilterFieldError",
    "InvalidRecordError",
    "KeyField",
    "Not",
    "Or",
    "RecordSchema",
    "SchemaMismatchError",
    "SearchResult",
    "SimilarityMetric",
    "UpsertOutcome",
    "VectorField",
    "VectorStore",
    "VectorStoreCollection",
    "VectorStoreError",
    "from_mapping",
    "similarity",
]
