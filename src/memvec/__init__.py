# Embeddings
from .embeddings import (
    EmbedFanOutConfig,
    Embedding,
    EmbeddingFailure,
    EmbeddingsClient,
    FanOutResult,
    embed_records,
)

# Observability
from .observability import InMemoryMetricsHook, MetricsHook, NoOpMetricsHook

# Vector stores
from .vectorstores import (
    And,
    CollectionNotFoundError,
    DataField,
    DimensionMismatchError,
    EqualTo,
    FilterExpression,
    InMemoryCollection,
    InMemoryVectorStore,
    InvalidFilterFieldError,
    InvalidRecordError,
    KeyField,
    Not,
    Or,
    RecordSchema,
    SchemaMismatchError,
    SearchResult,
    SimilarityMetric,
    UpsertOutcome,
    VectorField,
    VectorStore,
    VectorStoreError,
)

__all__ = [
    # Embeddings
    "EmbedFanOutConfig",
    "Embedding",
    "EmbeddingFailure",
    "EmbeddingsClient",
    "FanOutResult",
    "embed_records",
    # Observability
    "InMemoryMetricsHook",
    "MetricsHook",
    "NoOpMetricsHook",
    # Vector stores
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
    "VectorStoreError",
]
